from .cache import RenderCache
from .context import RenderContext
from .guard import NO_STORE_HEADERS, DraftGuard, register_draft_headers
from .renderer import HybridRenderer

__all__ = [
    "DraftGuard",
    "HybridRenderer",
    "NO_STORE_HEADERS",
    "RenderCache",
    "RenderContext",
    "register_draft_headers",
]
