# pagepub/rendering/data.py
"""
Data retrieval for a stored section data-config.

A config looks like:

    {"scope": "orders", "table": "orders", "retrieve": "all",
     "filter": {"status": "#status"}, "current_user": true,
     "all_fields": false,
     "fields": [{"field_name": "total", "field_holder": "sum", "not_found_text": "-"}],
     "map_fields": [{"field_name": "id", "field_new_name": "order_id"}]}

Retrieve modes and the shape each one returns:

    first / last   one record (projected), {} when there is none
    all            one record => that record;
                   several    => one object whose values are the records'
                                 values joined with commas
    all_as_array   one object of per-field value lists
    JSON           list of records (mapped and projected)

The `all` switch between a record and comma-joined strings is part of the
public document shape and is kept on purpose.
"""
import re
from enum import Enum
from typing import Any, Dict, List, Mapping

from pagepub.domain.errors import DataSourceError
from pagepub.services.data_source import DataSource
from pagepub.services.interpolation import Interpolator

from .context import RenderContext

PARAM_PLACEHOLDER = re.compile(r"#(\w+)\b")


class RetrieveMode(str, Enum):
    FIRST = "first"
    LAST = "last"
    ALL = "all"
    ALL_AS_ARRAY = "all_as_array"
    JSON = "JSON"

    @classmethod
    def parse(cls, value: Any) -> "RetrieveMode":
        try:
            return cls(value)
        except ValueError:
            return cls.ALL


def scope_name(config: Mapping[str, Any]) -> str:
    return str(config.get("scope") or config.get("table") or "data")


def _blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _joined(value: Any) -> str:
    return "" if value is None else str(value)


def replace_params(value: Any, params: Mapping[str, Any]) -> Any:
    """#name placeholders from request parameters; unknown names stay."""
    if isinstance(value, str):
        return PARAM_PLACEHOLDER.sub(
            lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
            value,
        )
    if isinstance(value, dict):
        return {k: replace_params(v, params) for k, v in value.items()}
    if isinstance(value, list):
        return [replace_params(v, params) for v in value]
    return value


def prepare_config(config: Mapping[str, Any], context: RenderContext, interpolator: Interpolator) -> Dict[str, Any]:
    with_params = replace_params(dict(config), context.params)
    return interpolator.interpolate_value(with_params, context.system_variables())


def _field_specs(config: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    return [f for f in (config.get("fields") or []) if isinstance(f, Mapping) and f.get("field_name")]


def project_record(record: Mapping[str, Any], fields: List[Mapping[str, Any]]) -> Dict[str, Any]:
    projected: Dict[str, Any] = {}
    for field in fields:
        name = field["field_name"]
        holder = field.get("field_holder") or name
        value = record.get(name)
        projected[holder] = field.get("not_found_text", "") if _blank(value) else value
    return projected


def _single(record: Mapping[str, Any], config: Mapping[str, Any]) -> Dict[str, Any]:
    fields = _field_specs(config)
    if not config.get("all_fields", True) and fields:
        return project_record(record, fields)
    return dict(record)


def _columns(rows: List[Dict[str, Any]], config: Mapping[str, Any]) -> Dict[str, List[Any]]:
    fields = _field_specs(config)
    if not config.get("all_fields", True) and fields:
        projected = [project_record(row, fields) for row in rows]
        names = list(projected[0])
        return {name: [row[name] for row in projected] for name in names}

    names = list(rows[0])
    return {name: [row.get(name) for row in rows] for name in names}


def process_all(rows: List[Dict[str, Any]], config: Mapping[str, Any]) -> Dict[str, Any]:
    if not rows:
        return {}
    if len(rows) == 1:
        return _single(rows[0], config)
    return {
        name: ",".join(_joined(v) for v in values)
        for name, values in _columns(rows, config).items()
    }


def process_all_as_array(rows: List[Dict[str, Any]], config: Mapping[str, Any]) -> Dict[str, List[Any]]:
    if not rows:
        return {}
    return _columns(rows, config)


def process_json(rows: List[Dict[str, Any]], config: Mapping[str, Any]) -> List[Dict[str, Any]]:
    fields = _field_specs(config)
    mappings = [m for m in (config.get("map_fields") or []) if isinstance(m, Mapping)]

    result = []
    for row in rows:
        mapped = {
            m["field_new_name"]: row[m["field_name"]]
            for m in mappings
            if m.get("field_new_name") and row.get(m.get("field_name")) is not None
        }
        base = project_record(row, fields) if fields else dict(row)
        result.append({**base, **mapped})
    return result


def retrieve(config: Mapping[str, Any], *, data_source: DataSource, context: RenderContext) -> Any:
    """
    Run one (already prepared) data-config.

    Raises DataSourceError for unknown tables or unreadable filters; the
    renderer degrades those to an empty scope.
    """
    table = config.get("table")
    if not table:
        return {}

    filters = config.get("filter") or {}
    if not isinstance(filters, Mapping):
        raise DataSourceError(f"Filter for {table} must be an object of field/value pairs")

    rows = data_source.fetch(
        str(table),
        filters=filters,
        user_id=context.user_id,
        own_entries_only=bool(config.get("current_user", True)),
    )

    mode = RetrieveMode.parse(config.get("retrieve", "all"))
    if mode is RetrieveMode.FIRST:
        return _single(rows[0], config) if rows else {}
    if mode is RetrieveMode.LAST:
        return _single(rows[-1], config) if rows else {}
    if mode is RetrieveMode.ALL_AS_ARRAY:
        return process_all_as_array(rows, config)
    if mode is RetrieveMode.JSON:
        return process_json(rows, config)
    return process_all(rows, config)
