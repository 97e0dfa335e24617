from enum import Enum
from typing import Dict, Optional, Tuple


class PageState(str, Enum):
    NO_PUBLISHED_VERSION = "no_published_version"
    PUBLISHED = "published"


class PageEvent(str, Enum):
    PUBLISH = "publish"
    PUBLISH_EXISTING = "publish_existing"
    UNPUBLISH = "unpublish"


# Explicit allowed state transitions. Every state accepts a publish;
# unpublishing an unpublished page is a no-op rather than an error.
PAGE_TRANSITIONS: Dict[Tuple[PageState, PageEvent], PageState] = {
    (PageState.NO_PUBLISHED_VERSION, PageEvent.PUBLISH): PageState.PUBLISHED,
    (PageState.NO_PUBLISHED_VERSION, PageEvent.PUBLISH_EXISTING): PageState.PUBLISHED,
    (PageState.NO_PUBLISHED_VERSION, PageEvent.UNPUBLISH): PageState.NO_PUBLISHED_VERSION,
    (PageState.PUBLISHED, PageEvent.PUBLISH): PageState.PUBLISHED,
    (PageState.PUBLISHED, PageEvent.PUBLISH_EXISTING): PageState.PUBLISHED,
    (PageState.PUBLISHED, PageEvent.UNPUBLISH): PageState.NO_PUBLISHED_VERSION,
}


def page_state(published_version_id: Optional[str]) -> PageState:
    """Derive the state from the pointer alone, never from published_at."""
    if published_version_id is None:
        return PageState.NO_PUBLISHED_VERSION
    return PageState.PUBLISHED


def next_page_state(*, current: PageState, event: PageEvent) -> PageState:
    """
    Guards page lifecycle transitions.
    Single source of truth for status changes.
    """
    try:
        return PAGE_TRANSITIONS[(current, event)]
    except KeyError:
        raise ValueError(f"Illegal page transition: {current.value} -> {event.value}")
