from sqlalchemy.orm import Session

from marketplace.domain.entities import Vendor
from marketplace.domain.errors import RecordNotFound
from marketplace.repos.vendor_repo import VendorRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class VendorService:
    """Konfiguracja vendorow: nazwa, oplata za dostawe, program lojalnosciowy."""

    def __init__(self, db: Session):
        self.repo = VendorRepo(db)

    def get(self, vendor_id: str) -> Vendor:
        vendor = self.repo.get(vendor_id)
        if vendor is None:
            raise RecordNotFound("vendor", vendor_id)
        return vendor

    def upsert(self, vendor: Vendor) -> Vendor:
        try:
            self.repo.save(vendor)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        logger.info(f"Vendor {vendor.id} saved (loyalty={'on' if vendor.loyalty_program else 'off'})")
        return vendor
