import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)

_ACCENT = "#F59E0B"
_TEXT = "#1F2937"
_MUTED = "#6B7280"
_BORDER = "#E5E7EB"

PRODUCT_LABELS = {
    "book": "sách",
    "indicator": "indicator",
    "course": "khóa học",
}


@dataclass
class EmailMessage:
    to: str
    subject: str
    body_html: str
    body_text: str


class EmailService(ABC):
    @abstractmethod
    async def send_email(self, message: EmailMessage) -> bool:
        pass


class ConsoleEmailService(EmailService):
    """Development backend: logs the message instead of sending it."""

    async def send_email(self, message: EmailMessage) -> bool:
        logger.info(
            "email_console to=%s subject=%s\n%s", message.to, message.subject, message.body_text
        )
        return True


class SMTPEmailService(EmailService):
    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        username: str,
        password: str,
        from_email: str,
        from_name: str,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name

    async def send_email(self, message: EmailMessage) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = message.to
        msg.attach(MIMEText(message.body_text, "plain", "utf-8"))
        msg.attach(MIMEText(message.body_html, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.username,
                password=self.password,
                start_tls=True,
            )
        except aiosmtplib.SMTPException:
            logger.exception("email_send_failed to=%s subject=%s", message.to, message.subject)
            return False
        return True


def get_email_service() -> EmailService:
    if settings.EMAIL_BACKEND == "smtp":
        return SMTPEmailService(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
        )
    return ConsoleEmailService()


def _wrap_html(inner: str) -> str:
    return f"""\
<html>
<body style="margin: 0; padding: 24px; background-color: #F9FAFB; font-family: Arial, sans-serif;">
  <table width="600" cellpadding="0" cellspacing="0" align="center"
         style="max-width: 600px; background: #ffffff; border: 1px solid {_BORDER}; border-radius: 8px;">
    <tr><td style="padding: 32px;">{inner}</td></tr>
    <tr>
      <td align="center" style="padding: 16px; font-size: 12px; color: {_MUTED};">
        &copy; {settings.SMTP_FROM_NAME}
      </td>
    </tr>
  </table>
</body>
</html>"""


def build_account_credentials_email(name: str, email: str, temp_password: str) -> EmailMessage:
    login_url = f"{settings.FRONTEND_URL}/login"

    inner = f"""\
<h2 style="margin: 0 0 16px 0; color: {_TEXT};">Tài khoản của bạn đã được tạo</h2>
<p style="color: {_MUTED};">Xin chào {name},</p>
<p style="color: {_MUTED};">Chúng tôi đã tạo tài khoản cho đơn hàng của bạn. Thông tin đăng nhập:</p>
<p style="color: {_TEXT};"><strong>Email:</strong> {email}<br/>
<strong>Mật khẩu tạm thời:</strong> {temp_password}</p>
<p><a href="{login_url}" style="background: {_ACCENT}; color: #ffffff; padding: 10px 24px;
   border-radius: 6px; text-decoration: none;">Đăng nhập</a></p>
<p style="color: {_TEXT}; font-weight: bold;">Vui lòng đổi mật khẩu sau lần đăng nhập đầu tiên.</p>"""

    text_body = f"""\
Tài khoản của bạn đã được tạo

Xin chào {name},

Email: {email}
Mật khẩu tạm thời: {temp_password}

Đăng nhập: {login_url}

Vui lòng đổi mật khẩu sau lần đăng nhập đầu tiên."""

    return EmailMessage(
        to=email,
        subject="Thông tin tài khoản của bạn",
        body_html=_wrap_html(inner),
        body_text=text_body,
    )


def build_payment_confirmed_email(
    name: str, email: str, product_type: str, amount: int
) -> EmailMessage:
    label = PRODUCT_LABELS.get(product_type, product_type)
    amount_text = f"{amount:,}".replace(",", ".")

    inner = f"""\
<h2 style="margin: 0 0 16px 0; color: {_TEXT};">Thanh toán thành công</h2>
<p style="color: {_MUTED};">Xin chào {name},</p>
<p style="color: {_MUTED};">Chúng tôi đã nhận được {amount_text} VND cho đơn hàng {label} của bạn.
Quyền truy cập đã được kích hoạt.</p>"""

    text_body = f"""\
Thanh toán thành công

Xin chào {name},

Chúng tôi đã nhận được {amount_text} VND cho đơn hàng {label} của bạn.
Quyền truy cập đã được kích hoạt."""

    return EmailMessage(
        to=email,
        subject="Xác nhận thanh toán",
        body_html=_wrap_html(inner),
        body_text=text_body,
    )
