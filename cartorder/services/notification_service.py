# cartorder/services/notification_service.py
from cartorder.celery_worker import celery_app
from cartorder.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order notifications, processed asynchronously by Celery.
    Best effort: the order is already committed when these are sent.
    """

    @staticmethod
    def send_order_notification(customer_id: int, order_number: str, status: str):
        try:
            send_order_notification_task.delay(customer_id, order_number, status)
        except Exception as e:
            #broker down must not fail a committed order
            logger.warning(f"Could not enqueue notification for order {order_number}: {e}")


@celery_app.task(name="cartorder.services.notification_service.send_order_notification_task")
def send_order_notification_task(customer_id: int, order_number: str, status: str):
    """
    In a real deployment this would go to an email/SMS/push gateway.
    For now it only logs.
    """
    logger.info(f"[NOTIFICATION] Customer {customer_id}: order {order_number} is now {status}")

    return {"customer_id": customer_id, "order_number": order_number, "status": status}
