import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.models.user import User
from app.auth.services.user_provisioning import BuyerContact
from app.core.rate_limit import limiter
from app.db.session import get_db
from app.store.schemas.checkout import (
    BookCheckoutRequest,
    BookDownloadResponse,
    CheckoutResponse,
    MyBookResponse,
    OrderStatusResponse,
    build_checkout_response,
)
from app.store.services.book_order_service import BookOrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def checkout_book(
    request: Request,
    checkout_request: BookCheckoutRequest,
    db: Session = Depends(get_db),
) -> CheckoutResponse:
    """
    Create (or refresh) a pending book order and return its payment QR.

    No login required: the buyer's account is created from the e-mail when
    missing and the credentials are mailed.
    """
    result = await BookOrderService(db).checkout(
        checkout_request.book_id,
        BuyerContact(
            email=checkout_request.email,
            name=checkout_request.name,
            phone=checkout_request.phone,
        ),
        coupon_code=checkout_request.coupon_code,
    )
    return build_checkout_response(result)


@router.get("/orders/{order_id}", response_model=OrderStatusResponse)
async def get_order_status(order_id: UUID, db: Session = Depends(get_db)) -> OrderStatusResponse:
    """Polled by the payment page until the transfer is confirmed."""
    order = BookOrderService(db).get_order(order_id)
    return OrderStatusResponse(
        order_id=order.id,
        transfer_code=order.transfer_code,
        status=order.status.value,
        amount=order.total_amount,
        qr_code_url=order.qr_code_url,
        paid_at=order.paid_at,
        created_at=order.created_at,
    )


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_order(order_id: UUID, db: Session = Depends(get_db)) -> None:
    BookOrderService(db).cancel(order_id)


@router.get("/my", response_model=list[MyBookResponse])
async def get_my_books(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[MyBookResponse]:
    accesses = BookOrderService(db).get_my_books(current_user.id)
    return [
        MyBookResponse(
            book_id=access.book_id,
            title=access.book.title,
            slug=access.book.slug,
            cover_url=access.book.cover_url,
            file_url=access.book.file_url,
            granted_at=access.granted_at,
        )
        for access in accesses
    ]


@router.get("/{book_id}/download", response_model=BookDownloadResponse)
async def download_book(
    book_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BookDownloadResponse:
    """File link for a book the user owns; 403 without an active grant."""
    book = BookOrderService(db).get_download(current_user.id, book_id)
    return BookDownloadResponse(book_id=book.id, title=book.title, file_url=book.file_url)
