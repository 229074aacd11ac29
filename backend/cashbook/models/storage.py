from __future__ import annotations

from ..extensions import db


class StoredCollection(db.Model):
    """
    One whole entity collection, serialized as JSON text under its storage key.

    The unit of storage is the collection, not the record: every write
    replaces payload entirely (last full-collection write wins).
    """
    __tablename__ = "stored_collections"

    key = db.Column(db.String(64), primary_key=True)
    payload = db.Column(db.Text, nullable=False, default="[]")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StoredCollection key={self.key!r} version_id={self.version_id}>"
