import hashlib
import json
import zlib
from typing import Any, Dict, Optional, Tuple

from pagepub.diff.normalizer import canonical_json, normalize_snapshot


def fingerprint(snapshot: Dict[str, Any]) -> str:
    """
    Cheap structural hash of a snapshot.

    Hashes the canonical (key-sorted, compact) JSON form, so two snapshots
    that only differ in key order or JSON layout match. String contents are
    hashed as stored.
    """
    normalized = normalize_snapshot(snapshot)
    return hashlib.sha256(canonical_json(normalized).encode("utf-8")).hexdigest()


def encode_snapshot(snapshot: Dict[str, Any], threshold: int) -> Tuple[Optional[Dict[str, Any]], Optional[bytes]]:
    """
    Returns (page_json, page_json_compressed); exactly one is set.
    """
    raw = json.dumps(snapshot, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    if len(raw) <= threshold:
        return snapshot, None
    return None, zlib.compress(raw, level=6)


def decode_snapshot(page_json: Optional[Dict[str, Any]], compressed: Optional[bytes]) -> Any:
    """
    Raises ValueError when the stored payload cannot be decoded.
    """
    if compressed is not None:
        try:
            return json.loads(zlib.decompress(compressed).decode("utf-8"))
        except (zlib.error, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError(f"Compressed snapshot is unreadable: {exc}") from exc
    if page_json is None:
        raise ValueError("Version carries no snapshot payload")
    return page_json


def next_version_number(page_id: str) -> int:
    """
    Highest committed number for the page plus one.

    Must run inside the publish transaction, after the page row is locked.
    """
    from pagepub.extensions import db
    from pagepub.models.page_version import PageVersion

    current = (
        db.session.query(db.func.max(PageVersion.version_number))
        .filter(PageVersion.page_id == page_id)
        .scalar()
    )
    return (current or 0) + 1
