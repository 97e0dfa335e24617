from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from flask import current_app

from .access import AccessPolicy, RoleAccessPolicy
from .conditions import ConditionEvaluator, JsonLogicConditionEvaluator
from .data_source import DataSource, InMemoryDataSource, SqlTableDataSource
from .document_store import SqlDocumentStore
from .interpolation import Interpolator, TemplateInterpolator


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Collaborators:
    """Everything the publishing core calls out to, wired once per app."""
    documents: SqlDocumentStore
    data_source: DataSource
    conditions: ConditionEvaluator
    interpolator: Interpolator
    access_policy: AccessPolicy
    clock: Callable[[], datetime] = field(default=utc_clock)


def get_collaborators() -> Collaborators:
    return current_app.extensions["pagepub"]


__all__ = [
    "AccessPolicy",
    "Collaborators",
    "ConditionEvaluator",
    "DataSource",
    "InMemoryDataSource",
    "Interpolator",
    "JsonLogicConditionEvaluator",
    "RoleAccessPolicy",
    "SqlDocumentStore",
    "SqlTableDataSource",
    "TemplateInterpolator",
    "get_collaborators",
    "utc_clock",
]
