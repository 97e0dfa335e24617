# pagepub/services/interpolation.py
import json
import re
from typing import Any, Dict, Mapping, Protocol

PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")


class Interpolator(Protocol):
    def interpolate(self, text: str, *sources: Mapping[str, Any]) -> str:
        ...

    def interpolate_value(self, value: Any, *sources: Mapping[str, Any]) -> Any:
        ...


def flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Dotted-key view of nested data: {"a": {"b": 1}} -> {"a.b": 1, "a": {...}, "b": 1}.

    Short keys never shadow an entry that already exists.
    """
    result: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            result.update(flatten(value, full_key))
        result.setdefault(full_key, value)
        result.setdefault(str(key), value)
    return result


def to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


class TemplateInterpolator:
    """
    Replaces {{name}} placeholders. Later sources win; unknown names are
    left in place so a missing variable stays visible in the output.
    """

    def _variables(self, sources) -> Dict[str, Any]:
        variables: Dict[str, Any] = {}
        for source in sources:
            variables.update(flatten(source))
        return variables

    def interpolate(self, text: str, *sources: Mapping[str, Any]) -> str:
        if not text or "{{" not in text:
            return text
        return self._replace(text, self._variables(sources))

    def interpolate_value(self, value: Any, *sources: Mapping[str, Any]) -> Any:
        return self._walk(value, self._variables(sources))

    def _replace(self, text: str, variables: Dict[str, Any]) -> str:
        def substitute(match: re.Match) -> str:
            name = match.group(1).strip()
            if name not in variables:
                return match.group(0)
            return to_text(variables[name])

        return PLACEHOLDER.sub(substitute, text)

    def _walk(self, value: Any, variables: Dict[str, Any]) -> Any:
        if isinstance(value, str):
            return self._replace(value, variables) if "{{" in value else value
        if isinstance(value, dict):
            return {k: self._walk(v, variables) for k, v in value.items()}
        if isinstance(value, list):
            return [self._walk(v, variables) for v in value]
        return value
