# pagepub/services/conditions.py
import json
from typing import Any, Dict, Protocol

from json_logic import jsonLogic

from pagepub.domain.errors import ConditionError

# Editors sometimes store a condition JSON-encoded more than once
MAX_DECODE_DEPTH = 5


class ConditionEvaluator(Protocol):
    def evaluate(self, condition: Any, variables: Dict[str, Any]) -> bool:
        ...


def decode_condition(condition: Any) -> Any:
    """
    Unwrap a stored condition into a JsonLogic rule.

    Returns None for "no condition". Raises ConditionError when the
    stored value is not valid JSON.
    """
    value = condition
    for _ in range(MAX_DECODE_DEPTH):
        if not isinstance(value, str):
            break
        text = value.strip()
        if not text:
            return None
        try:
            value = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConditionError(f"Condition is not valid JSON: {exc.msg}") from exc

    if isinstance(value, str):
        raise ConditionError("Condition is encoded too deeply")
    if value in ({}, []):
        return None
    return value


class JsonLogicConditionEvaluator:
    """
    Evaluates JsonLogic rules (https://jsonlogic.com) against the
    render-time variables. An absent condition always passes.
    """

    def evaluate(self, condition: Any, variables: Dict[str, Any]) -> bool:
        rule = decode_condition(condition)
        if rule is None:
            return True
        if isinstance(rule, bool):
            return rule

        try:
            return bool(jsonLogic(rule, variables))
        except Exception as exc:
            # json_logic raises plain ValueError/TypeError/KeyError for bad rules
            raise ConditionError(f"Condition could not be evaluated: {exc}") from exc
