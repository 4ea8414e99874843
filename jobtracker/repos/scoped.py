from typing import Any

from sqlalchemy.orm import Query, Session

from jobtracker.core.security import generate_id


class ScopedRepository:
    """
    Query access to one model restricted to a single owner.

    Every read goes through ``query()``, which always carries the
    ``user_id`` filter; ``add()`` stamps the owner on new rows. Rows of
    another user are indistinguishable from missing rows.
    """

    def __init__(self, db: Session, model: type, user_id: str):
        if not user_id:
            raise ValueError("ScopedRepository requires a user_id")
        self.db = db
        self.model = model
        self.user_id = user_id

    def query(self) -> Query:
        return self.db.query(self.model).filter(self.model.user_id == self.user_id)

    def get(self, record_id: str) -> Any | None:
        if not record_id:
            return None
        return self.query().filter(self.model.id == record_id).first()

    def get_many(self, record_ids: list[str]) -> list[Any]:
        if not record_ids:
            return []
        return self.query().filter(self.model.id.in_(record_ids)).all()

    def list(self, *criteria, order_by=None, offset: int = 0, limit: int | None = None) -> list[Any]:
        q = self.query().filter(*criteria)
        if order_by is not None:
            q = q.order_by(*order_by) if isinstance(order_by, (list, tuple)) else q.order_by(order_by)
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def count(self, *criteria) -> int:
        return self.query().filter(*criteria).count()

    def add(self, record: Any) -> Any:
        record.user_id = self.user_id
        if not getattr(record, "id", None):
            record.id = generate_id()
        self.db.add(record)
        return record

    def delete(self, record: Any) -> None:
        if record.user_id != self.user_id:
            raise ValueError("Refusing to delete a record owned by another user")
        self.db.delete(record)
