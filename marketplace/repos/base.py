# marketplace/repos/base.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from marketplace.domain.errors import ConcurrencyConflict


def to_payload(entity) -> dict:
    #version trzymany w kolumnie, nie w dokumencie
    return entity.model_dump(mode="json", exclude={"version"})


class VersionedRepo:
    """
    Optimistic locking na kolumnie version:
    UPDATE ... SET version = old + 1 WHERE id = :id AND version = :old
    """

    model = None

    def __init__(self, db: Session):
        self.db = db

    def _update_versioned(self, record_id, old_version: int, values: dict) -> int:
        stmt = (
            update(self.model)
            .where(self.model.id == record_id, self.model.version == old_version)
            .values(version=old_version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        rowcount = self.db.execute(stmt).rowcount
        if rowcount == 0:
            raise ConcurrencyConflict(
                f"{self.model.__tablename__} {record_id} was modified by another operation"
            )
        return old_version + 1

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
