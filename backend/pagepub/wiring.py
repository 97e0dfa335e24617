# pagepub/wiring.py
"""
Builds the publishing core from the app's config and collaborators.

Everything here is cheap; controllers are assembled per call and share
only the process-wide render cache.
"""
from flask import current_app

from pagepub.application.versions.publish import PublishController
from pagepub.application.versions.store import VersionStore
from pagepub.rendering import DraftGuard, HybridRenderer, RenderCache
from pagepub.services import get_collaborators


def render_cache() -> RenderCache:
    return current_app.extensions["pagepub_render_cache"]


def version_store() -> VersionStore:
    collaborators = get_collaborators()
    return VersionStore(
        documents=collaborators.documents,
        compression_threshold=current_app.config["SNAPSHOT_COMPRESSION_THRESHOLD"],
        clock=collaborators.clock,
    )


def publish_controller() -> PublishController:
    return PublishController(
        store=version_store(),
        documents=get_collaborators().documents,
        cache=render_cache(),
        isolation_level=current_app.config.get("PUBLISH_ISOLATION_LEVEL"),
    )


def hybrid_renderer() -> HybridRenderer:
    collaborators = get_collaborators()
    return HybridRenderer(
        store=version_store(),
        documents=collaborators.documents,
        data_source=collaborators.data_source,
        conditions=collaborators.conditions,
        interpolator=collaborators.interpolator,
        cache=render_cache(),
        default_language_id=current_app.config["DEFAULT_LANGUAGE_ID"],
        property_language_id=current_app.config["PROPERTY_LANGUAGE_ID"],
    )


def draft_guard() -> DraftGuard:
    collaborators = get_collaborators()
    return DraftGuard(
        renderer=hybrid_renderer(),
        documents=collaborators.documents,
        access_policy=collaborators.access_policy,
    )
