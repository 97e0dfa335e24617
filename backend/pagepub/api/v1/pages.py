# pagepub/api/v1/pages.py
"""
Page delivery.

GET /pages/<keyword>          published document, anyone
GET /pages/<keyword>/preview  live draft, preview roles only, never cached
"""
from datetime import timezone

from dateutil.parser import isoparse
from flask import current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from pagepub.extensions import db
from pagepub.models.user import User
from pagepub.rendering import RenderContext
from pagepub.services import get_collaborators
from pagepub.services.access import optional_identity
from pagepub.wiring import draft_guard, hybrid_renderer
from . import v1_bp

# Query args that steer rendering and are not passed on as parameters
RESERVED_ARGS = {"language", "at", "platform"}


def _language_id(user):
    requested = request.args.get("language")
    if requested is not None:
        try:
            return int(requested)
        except ValueError as exc:
            raise BadRequest("language must be an integer id") from exc
    if user is not None and user.language_id:
        return user.language_id
    return current_app.config["DEFAULT_LANGUAGE_ID"]


def _render_time(allow_override):
    now = get_collaborators().clock()
    raw = request.args.get("at")
    if not allow_override or not raw:
        return now
    try:
        at = isoparse(raw)
    except ValueError as exc:
        raise BadRequest("at must be an ISO 8601 timestamp") from exc
    return at if at.tzinfo else at.replace(tzinfo=timezone.utc)


def build_render_context(keyword, *, allow_time_override=False):
    identity, _ = optional_identity()
    user = db.session.get(User, identity) if identity else None
    if user is not None and not user.is_active:
        user = None

    context = RenderContext(
        now=_render_time(allow_time_override),
        language_id=_language_id(user),
        user_id=user.id if user else None,
        user_name=user.name if user else None,
        user_email=user.email if user else None,
        user_groups=tuple(user.groups or ()) if user else (),
        last_login=user.last_login_at if user else None,
        page_keyword=keyword,
        platform=request.args.get("platform", "web"),
        params={k: v for k, v in request.args.items() if k not in RESERVED_ARGS},
        globals=current_app.config.get("RENDER_GLOBALS") or {},
    )
    return context


@v1_bp.route("/pages/<keyword>", methods=["GET"])
def get_published_page(keyword):
    page = get_collaborators().documents.get_page_by_keyword(keyword)
    context = build_render_context(keyword)

    document = hybrid_renderer().render(page.id, context.language_id, context)
    return jsonify(document)


@v1_bp.route("/pages/<keyword>/preview", methods=["GET"])
def preview_page(keyword):
    guard = draft_guard()
    guard.authorize(keyword)
    context = build_render_context(keyword, allow_time_override=True)

    document = guard.preview(keyword, context.language_id, context)
    return jsonify(document)
