from typing import Any, Dict

from pagepub.domain.errors import ValidationError

REQUIRED_TOP_LEVEL_KEYS = ("page", "sections")
REQUIRED_SECTION_KEYS = ("id", "style_name", "parent_path", "position")


def assert_snapshot(snapshot: Any) -> None:
    """
    Structural checks shared by the write path (new versions) and the
    read path (replaying a stored version).

    Raises ValidationError; the read path re-raises it as CorruptSnapshotError.
    """
    if not isinstance(snapshot, dict):
        raise ValidationError("Snapshot must be a JSON object.")

    missing = [key for key in REQUIRED_TOP_LEVEL_KEYS if key not in snapshot]
    if missing:
        raise ValidationError(f"Snapshot is missing required keys: {missing}")

    if not isinstance(snapshot["page"], dict) or "id" not in snapshot["page"]:
        raise ValidationError("Snapshot page block must be an object with an id.")

    sections = snapshot["sections"]
    if not isinstance(sections, list):
        raise ValidationError("Snapshot sections must be a list.")

    by_id: Dict[str, Dict[str, Any]] = {}
    for section in sections:
        assert_section_shape(section)
        section_id = str(section["id"])
        if section_id in by_id:
            raise ValidationError(f"Duplicate section id {section_id} in snapshot.")
        by_id[section_id] = section

    for section_id, section in by_id.items():
        path = [str(ancestor) for ancestor in section["parent_path"]]

        if section_id in path:
            raise ValidationError(f"Section {section_id} appears in its own parent path (cycle).")
        if len(set(path)) != len(path):
            raise ValidationError(f"Section {section_id} has a repeating parent path: {path}")

        for ancestor in path:
            if ancestor not in by_id:
                raise ValidationError(
                    f"Section {section_id} references missing ancestor {ancestor}."
                )

        # The parent's own path must be a prefix of ours
        if path:
            parent_path = [str(a) for a in by_id[path[-1]]["parent_path"]]
            if parent_path != path[:-1]:
                raise ValidationError(
                    f"Section {section_id} parent path disagrees with its parent's path."
                )


def assert_section_shape(section: Any) -> None:
    if not isinstance(section, dict):
        raise ValidationError("Every section must be an object.")

    missing = [key for key in REQUIRED_SECTION_KEYS if key not in section]
    if missing:
        raise ValidationError(f"Section is missing required keys: {missing}")

    if not isinstance(section["parent_path"], list):
        raise ValidationError(f"Section {section['id']} parent_path must be a list.")

    # bool is an int subclass
    position = section["position"]
    if not isinstance(position, int) or isinstance(position, bool):
        raise ValidationError(f"Section {section['id']} position must be an integer.")

    translations = section.get("translations", {})
    if not isinstance(translations, dict):
        raise ValidationError(f"Section {section['id']} translations must be an object.")
    for language, fields in translations.items():
        assert_translation_block(section["id"], language, fields)

    data_config = section.get("data_config") or []
    if not isinstance(data_config, list):
        raise ValidationError(f"Section {section['id']} data_config must be a list.")


def assert_translation_block(section_id: Any, language: Any, fields: Any) -> None:
    """Fields map to a string, a {content, meta} object or null."""
    if not isinstance(fields, dict):
        raise ValidationError(f"Section {section_id} translations for language {language} must be an object.")

    for name, value in fields.items():
        if not isinstance(name, str):
            raise ValidationError(f"Section {section_id} has a non-string field name in language {language}.")
        if value is None or isinstance(value, str):
            continue
        if isinstance(value, dict) and set(value) <= {"content", "meta"}:
            continue
        raise ValidationError(f"Section {section_id} field {name} in language {language} has an invalid value.")
