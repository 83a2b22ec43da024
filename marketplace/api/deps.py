# marketplace/api/deps.py
from fastapi import HTTPException

from marketplace.domain.errors import ConcurrencyConflict, MarketplaceError, RecordNotFound
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService


def get_lock_service() -> LockService:
    return LockService()


def get_notification_service() -> NotificationService:
    return NotificationService()


def http_error(e: Exception) -> HTTPException:
    #404 / 409 / reszta bledow domenowych 400
    if isinstance(e, RecordNotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConcurrencyConflict):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (MarketplaceError, ValueError)):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail="Internal error")
