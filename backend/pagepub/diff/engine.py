# pagepub/diff/engine.py
"""
Structural diffs between two page snapshots.

Every format works on the normalized form (see normalizer.normalize_snapshot),
so sections are matched by id: a section present on both sides is diffed
field by field, one present only on the right is an addition, only on the
left a removal, and a section that only changed position or parent is
reported as a move.
"""
from __future__ import annotations

import copy
import difflib
from dataclasses import dataclass
from enum import Enum
from itertools import zip_longest
from typing import Any, Dict, List, Sequence, Tuple

from pagepub.domain.errors import DiffFormatError
from .normalizer import canonical_json, normalize_snapshot, pretty_json

# Fields whose change alone means "moved", not "modified"
PLACEMENT_FIELDS = ("parent_path", "position")


class DiffFormat(str, Enum):
    JSON_PATCH = "json_patch"
    JSON_MERGE_PATCH = "json_merge_patch"
    UNIFIED = "unified"
    SIDE_BY_SIDE = "side_by_side"
    SUMMARY = "summary"

    @classmethod
    def parse(cls, value: Any) -> "DiffFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise DiffFormatError(
                f"Invalid format '{value}'. Must be one of: {', '.join(SUPPORTED_FORMATS)}"
            )


SUPPORTED_FORMATS: Tuple[str, ...] = tuple(f.value for f in DiffFormat)


@dataclass(frozen=True)
class DiffResult:
    format: DiffFormat
    diff: Any

    @property
    def is_empty(self) -> bool:
        if self.format is DiffFormat.SUMMARY:
            return bool(self.diff["are_equal"])
        return not self.diff


def diff(
    snapshot_a: Dict[str, Any],
    snapshot_b: Dict[str, Any],
    fmt: Any = DiffFormat.UNIFIED,
    *,
    labels: Sequence[str] = ("a", "b"),
) -> DiffResult:
    # Reject unknown formats before touching the inputs
    diff_format = DiffFormat.parse(fmt)

    a = normalize_snapshot(snapshot_a)
    b = normalize_snapshot(snapshot_b)

    if diff_format is DiffFormat.JSON_PATCH:
        ops: List[Dict[str, Any]] = []
        _patch_ops(a, b, "", ops)
        return DiffResult(diff_format, ops)

    if diff_format is DiffFormat.JSON_MERGE_PATCH:
        return DiffResult(diff_format, _merge_patch(a, b) if not _same(a, b) else {})

    if diff_format is DiffFormat.UNIFIED:
        return DiffResult(diff_format, unified_diff(a, b, labels))

    if diff_format is DiffFormat.SIDE_BY_SIDE:
        return DiffResult(diff_format, side_by_side_diff(a, b))

    if diff_format is DiffFormat.SUMMARY:
        return DiffResult(diff_format, summarize(a, b))

    raise DiffFormatError(f"Unhandled diff format {diff_format}")


# -------------------------------------------------
# JSON Patch (RFC 6902)
# -------------------------------------------------

def _escape_pointer(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def _same(a: Any, b: Any) -> bool:
    # 1 == True in Python but not in JSON
    if type(a) is not type(b):
        return False
    if isinstance(a, (dict, list)):
        return canonical_json(a) == canonical_json(b)
    return a == b


def _patch_ops(a: Any, b: Any, path: str, ops: List[Dict[str, Any]]) -> None:
    if isinstance(a, dict) and isinstance(b, dict):
        for key in sorted(a.keys() - b.keys()):
            ops.append({"op": "remove", "path": f"{path}/{_escape_pointer(key)}"})
        for key in sorted(a.keys() & b.keys()):
            _patch_ops(a[key], b[key], f"{path}/{_escape_pointer(key)}", ops)
        for key in sorted(b.keys() - a.keys()):
            ops.append({
                "op": "add",
                "path": f"{path}/{_escape_pointer(key)}",
                "value": copy.deepcopy(b[key]),
            })
        return

    # Lists (parent paths, data configs) are replaced whole
    if not _same(a, b):
        ops.append({"op": "replace", "path": path, "value": copy.deepcopy(b)})


# -------------------------------------------------
# JSON Merge Patch (RFC 7386)
# -------------------------------------------------

def _merge_patch(a: Any, b: Any) -> Any:
    """
    Coarse overlay: removed keys become null. Cannot express list
    reordering or a value that is itself null on the right.
    """
    if not (isinstance(a, dict) and isinstance(b, dict)):
        return copy.deepcopy(b)

    patch: Dict[str, Any] = {}
    for key in sorted(a.keys() - b.keys()):
        patch[key] = None
    for key in sorted(b):
        if key not in a:
            patch[key] = copy.deepcopy(b[key])
        elif not _same(a[key], b[key]):
            patch[key] = _merge_patch(a[key], b[key])
    return patch


# -------------------------------------------------
# Line-oriented renderings
# -------------------------------------------------

def unified_diff(a: Dict[str, Any], b: Dict[str, Any], labels: Sequence[str] = ("a", "b")) -> str:
    lines = difflib.unified_diff(
        pretty_json(a).splitlines(),
        pretty_json(b).splitlines(),
        fromfile=labels[0],
        tofile=labels[1],
        lineterm="",
    )
    return "\n".join(lines)


def side_by_side_diff(a: Dict[str, Any], b: Dict[str, Any], context: int = 3) -> List[List[Dict[str, Any]]]:
    """
    Hunks of paired rows. Each row carries 1-based line numbers
    (None where a side has no line) and a tag: equal, replace, delete, insert.
    """
    left = pretty_json(a).splitlines()
    right = pretty_json(b).splitlines()
    matcher = difflib.SequenceMatcher(None, left, right, autojunk=False)

    hunks: List[List[Dict[str, Any]]] = []
    for group in matcher.get_grouped_opcodes(context):
        rows: List[Dict[str, Any]] = []
        for tag, i1, i2, j1, j2 in group:
            left_numbers = range(i1 + 1, i2 + 1)
            right_numbers = range(j1 + 1, j2 + 1)
            for left_no, right_no in zip_longest(left_numbers, right_numbers):
                rows.append({
                    "tag": tag,
                    "left_line": left_no,
                    "left": left[left_no - 1] if left_no else None,
                    "right_line": right_no,
                    "right": right[right_no - 1] if right_no else None,
                })
        hunks.append(rows)
    return hunks


# -------------------------------------------------
# Summary
# -------------------------------------------------

def _languages(section: Dict[str, Any]) -> set:
    translations = section.get("translations") or {}
    return set(translations) if isinstance(translations, dict) else set()


def summarize(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    sections_a = a.get("sections") or {}
    sections_b = b.get("sections") or {}

    added = sorted(sections_b.keys() - sections_a.keys())
    removed = sorted(sections_a.keys() - sections_b.keys())
    modified: List[str] = []
    moved: List[str] = []
    languages: set = set()

    for section_id in added:
        languages |= _languages(sections_b[section_id])
    for section_id in removed:
        languages |= _languages(sections_a[section_id])

    for section_id in sorted(sections_a.keys() & sections_b.keys()):
        old, new = sections_a[section_id], sections_b[section_id]

        if any(not _same(old.get(f), new.get(f)) for f in PLACEMENT_FIELDS):
            moved.append(section_id)

        rest_old = {k: v for k, v in old.items() if k not in PLACEMENT_FIELDS}
        rest_new = {k: v for k, v in new.items() if k not in PLACEMENT_FIELDS}
        if not _same(rest_old, rest_new):
            modified.append(section_id)

        old_tr = old.get("translations") or {}
        new_tr = new.get("translations") or {}
        for language in set(old_tr) | set(new_tr):
            if not _same(old_tr.get(language), new_tr.get(language)):
                languages.add(language)

    other_keys = sorted(
        key for key in (a.keys() | b.keys())
        if key != "sections" and not _same(a.get(key), b.get(key))
    )

    return {
        "are_equal": _same(a, b),
        "sections_added": len(added),
        "sections_removed": len(removed),
        "sections_modified": len(modified),
        "sections_moved": len(moved),
        "added_section_ids": added,
        "removed_section_ids": removed,
        "modified_section_ids": modified,
        "moved_section_ids": moved,
        "languages_changed": sorted(languages, key=str),
        "page_changed": "page" in other_keys,
        "other_changes": [key for key in other_keys if key != "page"],
    }
