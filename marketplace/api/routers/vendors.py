# marketplace/api/routers/vendors.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import http_error
from marketplace.data.database import get_db
from marketplace.domain.entities import Vendor
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import VendorIn
from marketplace.services.vendor_service import VendorService

router = APIRouter(prefix="/vendors", tags=["vendors"])


@router.put("/{vendor_id}", response_model=Vendor)
def upsert_vendor(vendor_id: str, payload: VendorIn, db: Session = Depends(get_db)):
    svc = VendorService(db)
    return svc.upsert(Vendor(id=vendor_id, **payload.model_dump()))


@router.get("/{vendor_id}", response_model=Vendor)
def get_vendor(vendor_id: str, db: Session = Depends(get_db)):
    try:
        return VendorService(db).get(vendor_id)
    except MarketplaceError as e:
        raise http_error(e)
