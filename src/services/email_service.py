# src/services/email_service.py
import logging
from smtplib import SMTP, SMTPException
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from sqlalchemy.orm import joinedload
from src.core.config import settings
from src.core.database import SessionLocal
from src.models.ecommerce import Order, OrderItem

logger = logging.getLogger(__name__)

class EmailService:

    @staticmethod
    def send_email(to_email: str, subject: str, html_content: str):
        try:
            msg = MIMEMultipart()
            msg['From'] = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_FROM))
            msg['To'] = to_email
            msg['Subject'] = subject
            msg.attach(MIMEText(html_content, 'html'))

            with SMTP(settings.SMTP_SERVER, settings.SMTP_PORT) as smtp:
                smtp.starttls()
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                smtp.send_message(msg)
        except SMTPException as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            raise

    @staticmethod
    def send_order_confirmation(email: str, name: str, order_id: int, total):
        subject = f"Order #{order_id} Confirmed"
        html = f"""
        <p>Hello {name},</p>
        <p>Your order <b>#{order_id}</b> has been placed. Total: {total}.</p>
        <p>Best regards,<br>The Oblito Team</p>
        """
        EmailService.send_email(email, subject, html)

    @staticmethod
    def send_order_status_update(email: str, name: str, product_name: str, status: str):
        subject = f"Order Status Update for {product_name}"
        html = f"""
        <p>Hello {name},</p>
        <p>The status of your order for <b>{product_name}</b> has been updated to <b>{status}</b>.</p>
        <p>Best regards,<br>The Oblito Team</p>
        """
        EmailService.send_email(email, subject, html)


# ================================
# NOTIFICATION SINKS
# ================================
class NotificationSink:
    """Receives post-commit order events. Never part of a transaction."""

    def order_created(self, order_id: int) -> None:
        raise NotImplementedError

    def status_changed(self, order_item_id: int, new_status: str) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):

    def order_created(self, order_id: int) -> None:
        logger.info(f"Order {order_id} created")

    def status_changed(self, order_item_id: int, new_status: str) -> None:
        logger.info(f"Order item {order_item_id} is now {new_status}")


class EmailNotificationSink(NotificationSink):
    """Emails the buyer. Opens its own session since it runs after commit."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def order_created(self, order_id: int) -> None:
        db = self.session_factory()
        try:
            order = db.query(Order).options(joinedload(Order.customer)).filter(Order.id == order_id).first()
            if not order:
                return
            EmailService.send_order_confirmation(
                order.customer.email, order.customer.full_name, order.id, order.total_amount
            )
        finally:
            db.close()

    def status_changed(self, order_item_id: int, new_status: str) -> None:
        db = self.session_factory()
        try:
            item = db.get(OrderItem, order_item_id)
            if not item:
                return
            customer = item.order.customer
            listing = item.shop_inventory or item.warehouse_inventory
            product_name = listing.product.name if listing and listing.product else f"item #{item.id}"
            EmailService.send_order_status_update(
                customer.email, customer.full_name, product_name, new_status
            )
        finally:
            db.close()


def dispatch_notification(notifier: NotificationSink, event: str, *args) -> None:
    """Best effort: a failing sink is logged and never reaches the caller."""
    if notifier is None:
        return
    try:
        getattr(notifier, event)(*args)
    except Exception as e:
        logger.error(f"Notification {event}{args} failed: {str(e)}")


def get_notification_sink() -> NotificationSink:
    if settings.NOTIFICATIONS_ENABLED:
        return EmailNotificationSink()
    return LoggingNotificationSink()
