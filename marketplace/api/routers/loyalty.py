# marketplace/api/routers/loyalty.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_lock_service, http_error
from marketplace.data.database import get_db
from marketplace.domain.entities import EarnedReward, UserLoyaltyPoints
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import LoyaltyProgressOut
from marketplace.services.lock_service import LockService
from marketplace.services.loyalty_service import LoyaltyService

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


def get_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
) -> LoyaltyService:
    return LoyaltyService(db, lock_service)


@router.get("/{user_id}", response_model=List[UserLoyaltyPoints])
def get_records(user_id: str, svc: LoyaltyService = Depends(get_service)):
    return svc.get_records(user_id)


@router.get("/{user_id}/rewards", response_model=List[EarnedReward])
def get_active_rewards(
    user_id: str,
    vendor_id: Optional[str] = Query(None),
    svc: LoyaltyService = Depends(get_service),
):
    return svc.get_active_rewards(user_id, vendor_id)


@router.get("/{user_id}/progress/{vendor_id}", response_model=LoyaltyProgressOut)
def get_progress(user_id: str, vendor_id: str, svc: LoyaltyService = Depends(get_service)):
    try:
        return svc.get_progress(user_id, vendor_id)
    except MarketplaceError as e:
        raise http_error(e)
