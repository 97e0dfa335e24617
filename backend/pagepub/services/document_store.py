# pagepub/services/document_store.py
"""
Read side of the live draft.

Editors change pages, sections and translations directly; this store only
turns the current rows into a self-contained snapshot.
"""
from typing import Any, Dict, List, Optional

from pagepub.domain.errors import NotFoundError, ValidationError
from pagepub.extensions import db
from pagepub.models.page import Page
from pagepub.models.section import Section, SectionTranslation, StyleFieldDefault
from pagepub.utils.versioning import fingerprint

SNAPSHOT_SCHEMA_VERSION = 1


class SqlDocumentStore:

    def get_page(self, page_id: str, *, lock: bool = False) -> Page:
        query = db.select(Page).where(Page.id == page_id)
        if lock:
            query = query.with_for_update()

        page = db.session.execute(query).scalar_one_or_none()
        if page is None:
            raise NotFoundError(f"Page {page_id} not found")
        return page

    def get_page_by_keyword(self, keyword: str) -> Page:
        page = db.session.execute(
            db.select(Page).where(Page.keyword == keyword)
        ).scalar_one_or_none()
        if page is None:
            raise NotFoundError("Page not found")
        return page

    def load_draft(self, page_id: str) -> Dict[str, Any]:
        page = self.get_page(page_id)

        sections = db.session.execute(
            db.select(Section)
            .where(Section.page_id == page.id)
            .order_by(Section.position, Section.id)
        ).scalars().all()

        parent_by_id = {s.id: s.parent_id for s in sections}
        translations = self._translations([s.id for s in sections])

        return {
            "schema_version": SNAPSHOT_SCHEMA_VERSION,
            "page": {
                "id": page.id,
                "keyword": page.keyword,
                "url": page.url,
                "parent_page_id": page.parent_page_id,
                "is_headless": page.is_headless,
                "nav_position": page.nav_position,
                "footer_position": page.footer_position,
            },
            "sections": [
                {
                    "id": s.id,
                    "name": s.name,
                    "style_name": s.style_name,
                    "parent_path": self._parent_path(s.id, parent_by_id),
                    "position": s.position,
                    "translations": translations.get(s.id, {}),
                    "data_config": s.data_config or [],
                    "condition": s.condition,
                    "css": s.css,
                    "css_mobile": s.css_mobile,
                    "debug": bool(s.debug),
                }
                for s in sections
            ],
            "style_defaults": self._style_defaults({s.style_name for s in sections}),
        }

    def draft_fingerprint(self, page_id: str) -> str:
        return fingerprint(self.load_draft(page_id))

    @staticmethod
    def is_empty(snapshot: Dict[str, Any]) -> bool:
        return not snapshot.get("sections")

    # -------------------------------------------------
    # helpers
    # -------------------------------------------------

    @staticmethod
    def _parent_path(section_id: str, parent_by_id: Dict[str, Optional[str]]) -> List[str]:
        path: List[str] = []
        seen = {section_id}
        parent = parent_by_id.get(section_id)

        while parent is not None:
            if parent in seen:
                raise ValidationError(f"Section {section_id} is part of a parent cycle.")
            if parent not in parent_by_id:
                raise ValidationError(
                    f"Section {section_id} has a parent outside of its page ({parent})."
                )
            seen.add(parent)
            path.append(parent)
            parent = parent_by_id[parent]

        path.reverse()
        return path

    @staticmethod
    def _translations(section_ids: List[str]) -> Dict[str, Dict[str, Dict[str, Any]]]:
        if not section_ids:
            return {}

        rows = db.session.execute(
            db.select(SectionTranslation)
            .where(SectionTranslation.section_id.in_(section_ids))
            .order_by(SectionTranslation.language_id, SectionTranslation.field_name)
        ).scalars()

        result: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for row in rows:
            languages = result.setdefault(row.section_id, {})
            fields = languages.setdefault(str(row.language_id), {})
            fields[row.field_name] = {"content": row.content, "meta": row.meta}
        return result

    @staticmethod
    def _style_defaults(style_names) -> Dict[str, Dict[str, Any]]:
        if not style_names:
            return {}

        rows = db.session.execute(
            db.select(StyleFieldDefault).where(StyleFieldDefault.style_name.in_(style_names))
        ).scalars()

        result: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            result.setdefault(row.style_name, {})[row.field_name] = row.default_value
        return result
