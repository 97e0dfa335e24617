# pagepub/rendering/renderer.py
"""
HybridRenderer: stored structure, live dynamics.

Rendering runs in two phases:

1. replay   the snapshot's section tree is rebuilt and each section's
            fields are layered for the requested language. Depends only
            on (version, language), so the published path caches it.
2. hydrate  per request: data-configs run against the data source,
            conditions are evaluated, and fields are interpolated with the
            system variables and the retrieved data.

Neither phase writes anything.
"""
import copy
import logging
from typing import Any, Dict, List, Optional

from pagepub.application.versions.store import VersionStore
from pagepub.domain.errors import ConditionError, DataSourceError, NotFoundError
from pagepub.domain.sections import SectionKind, SectionNode, SectionTree
from pagepub.services.conditions import ConditionEvaluator
from pagepub.services.data_source import DataSource
from pagepub.services.document_store import SqlDocumentStore
from pagepub.services.interpolation import Interpolator

from .cache import RenderCache
from .context import RenderContext
from .data import prepare_config, retrieve, scope_name

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class HybridRenderer:

    def __init__(
        self,
        *,
        store: VersionStore,
        documents: SqlDocumentStore,
        data_source: DataSource,
        conditions: ConditionEvaluator,
        interpolator: Interpolator,
        cache: RenderCache,
        default_language_id: int,
        property_language_id: int,
    ):
        self.store = store
        self.documents = documents
        self.data_source = data_source
        self.conditions = conditions
        self.interpolator = interpolator
        self.cache = cache
        self.default_language_id = default_language_id
        self.property_language_id = property_language_id

    # -------------------------------------------------
    # entry points
    # -------------------------------------------------

    def render(self, page_id: str, language_id: int, context: RenderContext) -> Document:
        """Published path. NotFoundError when the page has no active version."""
        version = self.store.get_active_version(page_id)
        if version is None:
            raise NotFoundError("Page not found")

        key = (page_id, version.id, language_id)
        replayed = self.cache.get(key)
        if replayed is None:
            # CorruptSnapshotError propagates: serve nothing rather than a partial page
            snapshot = self.store.load_snapshot(version)
            replayed = self.replay(snapshot, language_id)
            self.cache.put(key, replayed)

        document = self.hydrate(replayed, context, draft=False)
        document["version"] = {
            "id": version.id,
            "version_number": version.version_number,
            "published_at": version.published_at.isoformat() if version.published_at else None,
        }
        return document

    def render_draft(self, page_id: str, language_id: int, context: RenderContext) -> Document:
        """Draft path. Only DraftGuard calls this; output is never cached."""
        snapshot = self.documents.load_draft(page_id)
        document = self.hydrate(self.replay(snapshot, language_id), context, draft=True)
        document["version"] = None
        return document

    # -------------------------------------------------
    # phase 1: replay
    # -------------------------------------------------

    def replay(self, snapshot: Dict[str, Any], language_id: int) -> Document:
        tree = SectionTree.build(snapshot["sections"])
        style_defaults = snapshot.get("style_defaults") or {}

        def build(node: SectionNode) -> Dict[str, Any]:
            raw = node.data
            return {
                "id": node.id,
                "name": raw.get("name"),
                "style_name": raw.get("style_name"),
                "kind": node.kind.value,
                "position": node.position,
                "css": raw.get("css"),
                "css_mobile": raw.get("css_mobile"),
                "debug": bool(raw.get("debug")),
                "condition": raw.get("condition"),
                "data_config": raw.get("data_config") or [],
                "fields": self.layer_fields(raw, style_defaults.get(raw.get("style_name")) or {}, language_id),
                "children": [build(child) for child in tree.children(node)],
            }

        return {
            "page": dict(snapshot["page"]),
            "language_id": language_id,
            "sections": [build(root) for root in tree.roots()],
        }

    def layer_fields(
        self,
        section: Dict[str, Any],
        defaults: Dict[str, Any],
        language_id: int,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Field values for one language, lowest layer first:
        style defaults, property language, default language, requested language.
        """
        translations = section.get("translations") or {}

        fields: Dict[str, Dict[str, Any]] = {
            name: {"content": value, "meta": None} for name, value in defaults.items()
        }

        layers: List[int] = []
        for lang in (self.property_language_id, self.default_language_id, language_id):
            if lang not in layers:
                layers.append(lang)

        for lang in layers:
            for name, value in (translations.get(str(lang)) or {}).items():
                if isinstance(value, dict):
                    fields[name] = {"content": value.get("content"), "meta": value.get("meta")}
                else:
                    fields[name] = {"content": value, "meta": None}

        return fields

    # -------------------------------------------------
    # phase 2: hydrate
    # -------------------------------------------------

    def hydrate(self, replayed: Document, context: RenderContext, *, draft: bool) -> Document:
        system = context.system_variables()
        inherited = {"system": system, "globals": dict(context.globals)}

        return {
            "page": copy.deepcopy(replayed["page"]),
            "language_id": replayed["language_id"],
            "draft": draft,
            "sections": self._hydrate_list(replayed["sections"], context, system, inherited, draft),
        }

    def _hydrate_list(self, sections, context, system, inherited, draft) -> List[Dict[str, Any]]:
        result = []
        for section in sections:
            hydrated = self._hydrate_section(section, context, system, inherited, draft)
            if hydrated is not None:
                result.append(hydrated)
        return result

    def _hydrate_section(
        self,
        section: Dict[str, Any],
        context: RenderContext,
        system: Dict[str, Any],
        inherited: Dict[str, Any],
        draft: bool,
    ) -> Optional[Dict[str, Any]]:
        # Children see their ancestors' scopes
        retrieved = dict(inherited)
        own_scopes: Dict[str, Any] = {}
        for config in section["data_config"]:
            if not isinstance(config, dict):
                continue
            scope = scope_name(config)
            own_scopes[scope] = self._retrieve(section["id"], config, context)
        retrieved.update(own_scopes)

        passed, debug_info = self._check_condition(section, system, retrieved)
        if not passed and not (draft and section["debug"]):
            return None

        hydrated = {
            "id": section["id"],
            "name": section["name"],
            "style_name": section["style_name"],
            "position": section["position"],
            "css": section["css"],
            "css_mobile": section["css_mobile"],
            "fields": self.interpolator.interpolate_value(copy.deepcopy(section["fields"]), system, retrieved),
            "retrieved_data": own_scopes,
            "section_data": self._section_data(section, context),
            "children": [],
        }

        if passed:
            hydrated["children"] = self._hydrate_list(section["children"], context, system, retrieved, draft)
        if draft and section["debug"]:
            hydrated["condition_debug"] = debug_info

        return hydrated

    def _retrieve(self, section_id: str, config: Dict[str, Any], context: RenderContext) -> Any:
        try:
            prepared = prepare_config(config, context, self.interpolator)
            return retrieve(prepared, data_source=self.data_source, context=context)
        except DataSourceError as exc:
            logger.warning(
                "Data retrieval degraded to empty",
                extra={"section_id": section_id, "table": config.get("table"), "reason": str(exc)},
            )
            return {}

    def _section_data(self, section: Dict[str, Any], context: RenderContext) -> List[Dict[str, Any]]:
        kind = SectionKind(section["kind"])
        if kind is SectionKind.GENERIC:
            return []
        if kind is SectionKind.FORM_RECORD:
            if context.is_guest or not section["name"]:
                return []
            try:
                return self.data_source.fetch(
                    section["name"],
                    user_id=context.user_id,
                    own_entries_only=True,
                )
            except DataSourceError as exc:
                logger.warning(
                    "Form records unavailable",
                    extra={"section_id": section["id"], "reason": str(exc)},
                )
                return []
        raise ValueError(f"Unhandled section kind {kind}")

    def _check_condition(self, section, system, retrieved):
        condition = section["condition"]
        if condition in (None, "", {}, []):
            return True, {"result": True, "condition": None}

        interpolated = self.interpolator.interpolate_value(condition, system, retrieved)
        try:
            passed = self.conditions.evaluate(interpolated, system)
            error = None
        except ConditionError as exc:
            logger.warning(
                "Condition evaluation failed; section hidden",
                extra={"section_id": section["id"], "reason": str(exc)},
            )
            passed, error = False, str(exc)

        return passed, {
            "result": passed,
            "condition": condition,
            "interpolated": interpolated,
            "error": error,
        }
