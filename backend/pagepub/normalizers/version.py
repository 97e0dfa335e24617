# pagepub/normalizers/version.py
from typing import Any, Dict, Optional

from pagepub.models.page_version import PageVersion


def _iso(value):
    return value.isoformat() if value else None


def normalize_version(
    version: PageVersion,
    *,
    active_version_id: Optional[str] = None,
    snapshot: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    data = {
        "id": version.id,
        "page_id": version.page_id,
        "version_number": version.version_number,
        "version_name": version.version_name,
        "fingerprint": version.fingerprint,
        "created_by": version.created_by,
        "created_at": _iso(version.created_at),
        "published_at": _iso(version.published_at),
        "metadata": version.change_metadata or {},
        # Live state comes from the pointer, never from published_at
        "is_published": active_version_id is not None and active_version_id == version.id,
        "is_compressed": version.page_json_compressed is not None,
    }

    if version.author is not None:
        data["author"] = {"id": version.author.id, "name": version.author.name, "email": version.author.email}

    if snapshot is not None:
        data["page_json"] = snapshot

    return data
