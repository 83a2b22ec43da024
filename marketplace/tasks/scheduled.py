# marketplace/tasks/scheduled.py
from marketplace.celery_worker import celery_app
from marketplace.data.database import SessionLocal
from marketplace.services.loyalty_service import LoyaltyService
from marketplace.services.scheduled_order_service import ScheduledOrderService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="marketplace.tasks.scheduled.activate_scheduled_orders_task")
def activate_scheduled_orders_task():
    logger.info("Activate scheduled orders task started")

    db = SessionLocal()
    try:
        created = ScheduledOrderService(db).activate_due()
        logger.info(f"Activated {len(created)} scheduled orders")
        return [order.id for order in created]
    finally:
        db.close()


@celery_app.task(name="marketplace.tasks.scheduled.reset_monthly_points_task")
def reset_monthly_points_task():
    logger.info("Monthly loyalty reset task started")

    db = SessionLocal()
    try:
        return LoyaltyService(db).reset_monthly_points()
    finally:
        db.close()
