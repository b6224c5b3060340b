"""Base repository pattern implementation.

Domain repositories wrap a SQLAlchemy session and a model class so that
services receive an explicit data-access object instead of building queries
against module-level models. Repositories never commit; the calling service
owns the transaction.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Query, Session

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """
    Example:
        ```python
        class CouponRepository(BaseRepository[Coupon]):
            def __init__(self, db: Session):
                super().__init__(db, Coupon)

            def find_by_code(self, code: str) -> Coupon | None:
                return self.query().filter(Coupon.code == code.upper()).first()
        ```
    """

    def __init__(self, db: Session, model: type[ModelType]):
        self.db = db
        self.model = model

    def query(self) -> Query[Any]:
        return self.db.query(self.model)
