# pagepub/application/versions/store.py
"""
VersionStore: immutable page snapshots and the page's publish pointer.

Methods stage changes and flush; committing is the caller's job (see
PublishController), so several steps can share one transaction.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pagepub.domain.errors import ConflictError, CorruptSnapshotError, NotFoundError, ValidationError
from pagepub.domain.invariants.snapshot import assert_snapshot
from pagepub.extensions import db
from pagepub.models.base import utc_now
from pagepub.models.page import Page
from pagepub.models.page_version import PageVersion
from pagepub.services.document_store import SqlDocumentStore
from pagepub.utils.versioning import decode_snapshot, encode_snapshot, fingerprint, next_version_number

logger = logging.getLogger(__name__)


class VersionStore:

    def __init__(
        self,
        *,
        documents: SqlDocumentStore,
        compression_threshold: int,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.documents = documents
        self.compression_threshold = compression_threshold
        self.clock = clock

    # -------------------------------------------------
    # writes
    # -------------------------------------------------

    def create_version(
        self,
        page_id: str,
        snapshot: Dict[str, Any],
        *,
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        author_id: Optional[str] = None,
    ) -> PageVersion:
        """
        Persist a new, unpublished version with the next number for the page.

        The number is read and the row inserted in the caller's transaction;
        a racing insert of the same number fails on uq_page_version_number.
        """
        assert_snapshot(snapshot)
        self.documents.get_page(page_id)

        page_json, compressed = encode_snapshot(snapshot, self.compression_threshold)

        version = PageVersion()
        version.page_id = page_id
        version.version_number = next_version_number(page_id)
        version.version_name = name
        version.page_json = page_json
        version.page_json_compressed = compressed
        version.fingerprint = fingerprint(snapshot)
        version.created_by = author_id
        version.change_metadata = metadata or {}

        db.session.add(version)
        db.session.flush()
        return version

    def set_publish_pointer(self, page_id: str, version_id: str) -> PageVersion:
        page = self.documents.get_page(page_id)
        version = db.session.get(PageVersion, version_id)
        if version is None or version.page_id != page.id:
            raise NotFoundError(f"Version {version_id} not found for page {page_id}")

        page.published_version_id = version.id
        if version.published_at is None:
            version.published_at = self.clock()

        db.session.flush()
        return version

    def clear_publish_pointer(self, page_id: str) -> Optional[str]:
        """Returns the version id that was active, if any."""
        page = self.documents.get_page(page_id)
        previous = page.published_version_id
        if previous is not None:
            page.published_version_id = None
            db.session.flush()
        return previous

    def delete_version(self, version_id: str) -> PageVersion:
        version = self.get_version(version_id)

        active = db.session.execute(
            db.select(Page.id).where(Page.published_version_id == version.id)
        ).first()
        if active is not None:
            raise ConflictError(
                "Cannot delete the currently published version. Unpublish or publish another version first."
            )

        db.session.delete(version)
        db.session.flush()
        return version

    # -------------------------------------------------
    # reads
    # -------------------------------------------------

    def get_version(self, version_id: str) -> PageVersion:
        version = db.session.get(PageVersion, version_id)
        if version is None:
            raise NotFoundError(f"Version {version_id} not found")
        return version

    def get_active_version(self, page_id: str) -> Optional[PageVersion]:
        page = self.documents.get_page(page_id)
        if page.published_version_id is None:
            return None
        return db.session.get(PageVersion, page.published_version_id)

    def list_versions(
        self, page_id: str, limit: Optional[int] = 20, offset: int = 0
    ) -> Tuple[List[PageVersion], int]:
        """Newest first. limit=None returns every version."""
        base = db.select(PageVersion).where(PageVersion.page_id == page_id)

        total = db.session.execute(
            db.select(db.func.count()).select_from(base.subquery())
        ).scalar_one()

        versions = db.session.execute(
            base.order_by(PageVersion.version_number.desc()).limit(limit).offset(offset)
        ).scalars().all()

        return list(versions), total

    def version_fingerprint(self, version_id: str) -> str:
        return self.get_version(version_id).fingerprint

    def draft_fingerprint(self, page_id: str) -> str:
        return self.documents.draft_fingerprint(page_id)

    def load_snapshot(self, version: PageVersion) -> Dict[str, Any]:
        """Decoded, validated snapshot of a stored version."""
        try:
            snapshot = decode_snapshot(version.page_json, version.page_json_compressed)
            assert_snapshot(snapshot)
        except (ValueError, ValidationError) as exc:
            logger.error(
                "Stored snapshot is corrupt",
                extra={"version_id": version.id, "page_id": version.page_id, "reason": str(exc)},
            )
            raise CorruptSnapshotError(f"Version {version.id} holds a corrupt snapshot") from exc
        return snapshot
