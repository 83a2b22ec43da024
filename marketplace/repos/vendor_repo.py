# marketplace/repos/vendor_repo.py
from datetime import datetime, timezone
from sqlalchemy import select

from marketplace.data.models.vendor import VendorModel
from marketplace.domain.entities import Vendor
from marketplace.repos.base import VersionedRepo, to_payload


class VendorRepo(VersionedRepo):
    model = VendorModel

    def get(self, vendor_id: str) -> Vendor | None:
        row = self.db.get(VendorModel, vendor_id, populate_existing=True)
        if row is None:
            return None
        return Vendor.model_validate(row.payload)

    def save(self, vendor: Vendor) -> Vendor:
        """Upsert - konfiguracja vendora nadpisywana w calosci."""
        row = self.db.execute(
            select(VendorModel).where(VendorModel.id == vendor.id)
        ).scalar_one_or_none()
        now = datetime.now(timezone.utc)
        if row is None:
            self.db.add(VendorModel(id=vendor.id, name=vendor.name, payload=to_payload(vendor), version=1, updated_at=now))
            self.db.flush()
        else:
            self._update_versioned(vendor.id, row.version, {"name": vendor.name, "payload": to_payload(vendor), "updated_at": now})
        return vendor
