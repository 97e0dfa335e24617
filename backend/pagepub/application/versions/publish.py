# pagepub/application/versions/publish.py
"""
PublishController: atomic transitions of a page's publish state.

States are derived from the pointer alone:
NoPublishedVersion <-> Published(version_id). Every write below runs in one
transaction that starts by locking the page row, so two editors publishing
the same page are serialized; whoever loses a version-number race gets a
ConflictError and must re-read and retry.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pagepub.diff import DiffFormat, DiffResult, diff
from pagepub.domain.errors import NotFoundError
from pagepub.domain.lifecycle.page import PageEvent, next_page_state, page_state
from pagepub.models.page_version import PageVersion
from pagepub.rendering.cache import RenderCache
from pagepub.services.document_store import SqlDocumentStore
from pagepub.utils.audit import log_action
from pagepub.utils.transaction import transactional

from .store import VersionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishStatus:
    page_id: str
    current_published_version_id: Optional[str]
    has_unpublished_changes: bool


@dataclass(frozen=True)
class RetentionResult:
    page_id: str
    kept_numbers: List[int]
    deleted_numbers: List[int]
    dry_run: bool


class PublishController:

    def __init__(
        self,
        *,
        store: VersionStore,
        documents: SqlDocumentStore,
        cache: RenderCache,
        isolation_level: Optional[str] = None,
    ):
        self.store = store
        self.documents = documents
        self.cache = cache
        self.isolation_level = isolation_level

    # -------------------------------------------------
    # transitions
    # -------------------------------------------------

    def publish(
        self,
        page_id: str,
        *,
        version_name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        actor_id: Optional[str] = None,
    ) -> PageVersion:
        """Snapshot the live draft as a new version and make it active."""
        with transactional(self.isolation_level):
            # 1. Lock the page row
            page = self.documents.get_page(page_id, lock=True)
            next_page_state(current=page_state(page.published_version_id), event=PageEvent.PUBLISH)
            previous = page.published_version_id

            # 2. Capture and persist the draft
            snapshot = self.documents.load_draft(page.id)
            version = self.store.create_version(
                page.id,
                snapshot,
                name=version_name,
                metadata=metadata,
                author_id=actor_id,
            )

            # 3. Flip the pointer
            self.store.set_publish_pointer(page.id, version.id)

            log_action(
                action="page.publish",
                entity_type="page",
                entity_id=page.id,
                actor_id=actor_id,
                payload={
                    "version_id": version.id,
                    "version_number": version.version_number,
                    "previous_version_id": previous,
                },
            )

        self.cache.invalidate_page(page_id)
        logger.info(
            "Published page %s as version %s", page_id, version.version_number,
            extra={"page_id": page_id, "version_id": version.id},
        )
        return version

    def publish_existing(self, page_id: str, version_id: str, *, actor_id: Optional[str] = None) -> PageVersion:
        """Re-activate a stored version. No new row is created."""
        with transactional(self.isolation_level):
            page = self.documents.get_page(page_id, lock=True)
            next_page_state(current=page_state(page.published_version_id), event=PageEvent.PUBLISH_EXISTING)
            previous = page.published_version_id

            version = self.store.set_publish_pointer(page.id, version_id)

            log_action(
                action="page.publish_existing",
                entity_type="page",
                entity_id=page.id,
                actor_id=actor_id,
                payload={
                    "version_id": version.id,
                    "version_number": version.version_number,
                    "previous_version_id": previous,
                },
            )

        self.cache.invalidate_page(page_id)
        logger.info(
            "Re-published version %s of page %s", version.version_number, page_id,
            extra={"page_id": page_id, "version_id": version_id},
        )
        return version

    def unpublish(self, page_id: str, *, actor_id: Optional[str] = None) -> Optional[str]:
        """
        Clear the pointer. Returns the version that was active, or None when
        the page was not published (a no-op).
        """
        with transactional(self.isolation_level):
            page = self.documents.get_page(page_id, lock=True)
            next_page_state(current=page_state(page.published_version_id), event=PageEvent.UNPUBLISH)

            previous = self.store.clear_publish_pointer(page.id)
            if previous is not None:
                log_action(
                    action="page.unpublish",
                    entity_type="page",
                    entity_id=page.id,
                    actor_id=actor_id,
                    payload={"previous_version_id": previous},
                )

        if previous is not None:
            self.cache.invalidate_page(page_id)
            logger.info("Unpublished page %s", page_id, extra={"page_id": page_id, "version_id": previous})
        return previous

    def create_version(
        self,
        page_id: str,
        *,
        version_name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        actor_id: Optional[str] = None,
    ) -> PageVersion:
        """Snapshot the draft without publishing it."""
        with transactional(self.isolation_level):
            page = self.documents.get_page(page_id, lock=True)
            version = self.store.create_version(
                page.id,
                self.documents.load_draft(page.id),
                name=version_name,
                metadata=metadata,
                author_id=actor_id,
            )
            log_action(
                action="page.version_create",
                entity_type="page",
                entity_id=page.id,
                actor_id=actor_id,
                payload={"version_id": version.id, "version_number": version.version_number},
            )
        return version

    def delete_version(self, page_id: str, version_id: str, *, actor_id: Optional[str] = None) -> None:
        with transactional(self.isolation_level):
            page = self.documents.get_page(page_id, lock=True)
            version = self._version_of(page.id, version_id)
            number = version.version_number

            self.store.delete_version(version.id)

            log_action(
                action="page.version_delete",
                entity_type="page",
                entity_id=page.id,
                actor_id=actor_id,
                payload={"version_id": version_id, "version_number": number},
            )

        logger.info(
            "Deleted version %s of page %s", number, page_id,
            extra={"page_id": page_id, "version_id": version_id},
        )

    # -------------------------------------------------
    # retention
    # -------------------------------------------------

    def retention_candidates(self, page_id: str, keep: int) -> RetentionResult:
        """Newest `keep` versions plus the active one survive."""
        if keep < 0:
            raise ValueError("keep must be zero or positive")

        page = self.documents.get_page(page_id)
        versions, _ = self.store.list_versions(page.id, limit=None)

        kept: List[int] = []
        deleted: List[int] = []
        for index, version in enumerate(versions):
            if index < keep or version.id == page.published_version_id:
                kept.append(version.version_number)
            else:
                deleted.append(version.version_number)

        return RetentionResult(page_id=page.id, kept_numbers=kept, deleted_numbers=deleted, dry_run=True)

    def apply_retention(
        self,
        page_id: str,
        keep: int,
        *,
        dry_run: bool = False,
        actor_id: Optional[str] = None,
    ) -> RetentionResult:
        if dry_run:
            return self.retention_candidates(page_id, keep)

        with transactional(self.isolation_level):
            self.documents.get_page(page_id, lock=True)
            plan = self.retention_candidates(page_id, keep)

            doomed = set(plan.deleted_numbers)
            versions, _ = self.store.list_versions(page_id, limit=None)
            for version in versions:
                if version.version_number in doomed:
                    self.store.delete_version(version.id)

            if plan.deleted_numbers:
                log_action(
                    action="page.version_retention",
                    entity_type="page",
                    entity_id=page_id,
                    actor_id=actor_id,
                    payload={"keep": keep, "deleted_version_numbers": plan.deleted_numbers},
                )

        logger.info(
            "Retention removed %d version(s) of page %s", len(plan.deleted_numbers), page_id,
            extra={"page_id": page_id, "keep": keep},
        )
        return RetentionResult(
            page_id=page_id,
            kept_numbers=plan.kept_numbers,
            deleted_numbers=plan.deleted_numbers,
            dry_run=False,
        )

    # -------------------------------------------------
    # queries
    # -------------------------------------------------

    def has_unpublished_changes(self, page_id: str) -> bool:
        return self.status(page_id).has_unpublished_changes

    def status(self, page_id: str) -> PublishStatus:
        """Fingerprint comparison only, never a full diff."""
        active = self.store.get_active_version(page_id)
        if active is None:
            changed = not self.documents.is_empty(self.documents.load_draft(page_id))
        else:
            changed = self.store.draft_fingerprint(page_id) != self.store.version_fingerprint(active.id)

        return PublishStatus(
            page_id=page_id,
            current_published_version_id=active.id if active else None,
            has_unpublished_changes=changed,
        )

    def get_version(self, page_id: str, version_id: str) -> PageVersion:
        return self._version_of(page_id, version_id)

    def compare_versions(self, page_id: str, version_a_id: str, version_b_id: str, fmt: Any) -> DiffResult:
        diff_format = DiffFormat.parse(fmt)

        version_a = self._version_of(page_id, version_a_id)
        version_b = self._version_of(page_id, version_b_id)

        return diff(
            self.store.load_snapshot(version_a),
            self.store.load_snapshot(version_b),
            diff_format,
            labels=(f"v{version_a.version_number}", f"v{version_b.version_number}"),
        )

    def compare_draft(self, page_id: str, version_id: str, fmt: Any) -> DiffResult:
        diff_format = DiffFormat.parse(fmt)

        version = self._version_of(page_id, version_id)

        return diff(
            self.store.load_snapshot(version),
            self.documents.load_draft(page_id),
            diff_format,
            labels=(f"v{version.version_number}", "draft"),
        )

    def _version_of(self, page_id: str, version_id: str) -> PageVersion:
        version = self.store.get_version(version_id)
        if version.page_id != page_id:
            raise NotFoundError(f"Version {version_id} not found for page {page_id}")
        return version
