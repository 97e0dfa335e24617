from .page import Page
from .section import Section, SectionTranslation, StyleFieldDefault
from .page_version import PageVersion
from .user import User
from .audit_log import AuditLog

__all__ = [
    "Page",
    "Section",
    "SectionTranslation",
    "StyleFieldDefault",
    "PageVersion",
    "User",
    "AuditLog",
]
