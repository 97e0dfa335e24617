# pagepub/diff/normalizer.py
"""
Snapshot normalization for comparison and hashing.

- stable (alphabetical) key ordering
- string contents kept byte for byte; only the JSON layout is canonical
- integral floats written as integers (1.0 -> 1)
- sections re-keyed by their id, so trees are matched by identity
  rather than by list position
"""
from __future__ import annotations

import json
import math
from typing import Any, Dict


def normalize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): normalize_value(value[key]) for key in sorted(value, key=str)}

    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]

    # bool is an int subclass; leave it alone
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)

    return value


def normalize_snapshot(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalized form of a snapshot with `sections` as an id-keyed mapping.

    Position and parent_path stay inside each section, so a moved section
    differs from its old self only in those two fields.
    """
    normalized = normalize_value(snapshot)

    sections = normalized.get("sections")
    if isinstance(sections, list):
        keyed: Dict[str, Any] = {}
        for index, section in enumerate(sections):
            if isinstance(section, dict) and "id" in section:
                key = str(section["id"])
            else:
                key = f"#{index}"
            keyed[key] = section
        normalized["sections"] = {key: keyed[key] for key in sorted(keyed)}

    return normalized


def canonical_json(data: Any) -> str:
    """Compact, key-sorted JSON used for hashing."""
    return json.dumps(
        normalize_value(data),
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    )


def pretty_json(data: Any) -> str:
    """Two-space indented JSON used for line-oriented diffs."""
    return json.dumps(normalize_value(data), ensure_ascii=False, sort_keys=True, indent=2)
