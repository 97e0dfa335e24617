# pagepub/rendering/guard.py
from flask import g

from pagepub.services.access import AccessPolicy
from pagepub.services.document_store import SqlDocumentStore

from .context import RenderContext
from .renderer import Document, HybridRenderer

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Robots-Tag": "noindex, nofollow",
}


class DraftGuard:
    """
    The only way to reach HybridRenderer.render_draft.

    Access is checked before the page is even looked up, so a denied
    caller and a missing page produce the same 404.
    """

    def __init__(self, *, renderer: HybridRenderer, documents: SqlDocumentStore, access_policy: AccessPolicy):
        self.renderer = renderer
        self.documents = documents
        self.access_policy = access_policy

    def authorize(self, subject: str) -> None:
        """Marks the response as a draft response, then checks access."""
        mark_draft_response()
        self.access_policy.assert_can_preview(subject)

    def render_draft(self, page_id: str, language_id: int, context: RenderContext) -> Document:
        self.authorize(page_id)
        return self.renderer.render_draft(page_id, language_id, context)

    def preview(self, keyword: str, language_id: int, context: RenderContext) -> Document:
        self.authorize(keyword)
        page = self.documents.get_page_by_keyword(keyword)
        return self.renderer.render_draft(page.id, language_id, context)


def mark_draft_response() -> None:
    g.pagepub_draft_response = True


def apply_no_store(response):
    for header, value in NO_STORE_HEADERS.items():
        response.headers[header] = value
    return response


def register_draft_headers(app) -> None:
    """Attach no-store headers to every draft response, error responses included."""

    @app.after_request
    def draft_headers(response):
        if g.get("pagepub_draft_response"):
            apply_no_store(response)
        return response
