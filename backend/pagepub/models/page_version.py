from sqlalchemy import event, inspect
from pagepub.extensions import db
from .base import BaseModel


class PageVersion(BaseModel):
    __tablename__ = "page_versions"

    page_id = db.Column(
        db.String(36),
        db.ForeignKey("pages.id", ondelete="CASCADE"),
        nullable=False
    )

    # Incremental per page (1, 2, 3...), never reused
    version_number = db.Column(db.Integer, nullable=False)
    version_name = db.Column(db.String(255), nullable=True)

    # Exactly one of these is set; see pagepub.utils.versioning.encode_snapshot
    page_json = db.Column(db.JSON, nullable=True)
    page_json_compressed = db.Column(db.LargeBinary, nullable=True)

    fingerprint = db.Column(db.String(64), nullable=False)

    created_by = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    # First activation only; unpublish never clears it
    published_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    # `metadata` is reserved on declarative classes
    change_metadata = db.Column("metadata", db.JSON, nullable=True)

    page = db.relationship("Page", foreign_keys=[page_id])
    author = db.relationship("User", foreign_keys=[created_by])

    __table_args__ = (
        db.UniqueConstraint("page_id", "version_number", name="uq_page_version_number"),
        db.Index("idx_page_version_page", "page_id"),
    )


@event.listens_for(PageVersion, "before_update")
def prevent_version_mutation(mapper, connection, target):
    """
    Snapshots are immutable once written.

    The only permitted update is stamping published_at the first time
    the version becomes the page's active pointer.
    """
    state = inspect(target)

    for attr in state.attrs:
        history = attr.history
        if not history.has_changes():
            continue

        if attr.key == "published_at" and all(v is None for v in history.deleted):
            continue

        raise RuntimeError(f"Page versions are immutable (attempted change to '{attr.key}')")
