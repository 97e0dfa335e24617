"""
Shared pytest fixtures.

Every test that needs the database gets a fresh app on in-memory SQLite
with an in-memory data source and a fixed clock.
"""
from datetime import datetime, timezone

import pytest
from flask_jwt_extended import create_access_token

from pagepub import create_app
from pagepub.extensions import db
from pagepub.models import Page, Section, SectionTranslation, StyleFieldDefault, User
from pagepub.rendering import RenderContext
from pagepub.services import InMemoryDataSource

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def data_source():
    return InMemoryDataSource()


@pytest.fixture
def app(data_source):
    app = create_app("testing", data_source=data_source, clock=lambda: FIXED_NOW)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


# =============================================================================
# USERS & AUTH
# =============================================================================

def make_user(email, role, *, name=None, groups=None, language_id=None):
    user = User()
    user.email = email
    user.name = name or email.split("@")[0]
    user.role = role
    user.groups = groups or []
    user.language_id = language_id
    user.set_password("secret-password")
    db.session.add(user)
    db.session.commit()
    return user


def bearer(user):
    token = create_access_token(identity=user.id, additional_claims={"role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def editor(app):
    return make_user("editor@example.com", "editor", name="Edith", groups=["staff"])


@pytest.fixture
def member(app):
    return make_user("member@example.com", "user", name="Max", groups=["subscribers"])


@pytest.fixture
def editor_headers(editor):
    return bearer(editor)


@pytest.fixture
def member_headers(member):
    return bearer(member)


# =============================================================================
# DRAFT CONTENT
# =============================================================================

def make_page(keyword="home", **fields):
    page = Page()
    page.keyword = keyword
    page.url = fields.get("url", f"/{keyword}")
    page.is_headless = fields.get("is_headless", False)
    page.nav_position = fields.get("nav_position")
    db.session.add(page)
    db.session.commit()
    return page


def add_section(
    page,
    name,
    *,
    style_name="text",
    parent=None,
    position=0,
    translations=None,
    data_config=None,
    condition=None,
    debug=False,
):
    section = Section()
    section.page_id = page.id
    section.parent_id = parent.id if parent is not None else None
    section.name = name
    section.style_name = style_name
    section.position = position
    section.data_config = data_config
    section.condition = condition
    section.debug = debug
    db.session.add(section)
    db.session.flush()

    for language_id, fields in (translations or {}).items():
        for field_name, content in fields.items():
            translation = SectionTranslation()
            translation.section_id = section.id
            translation.language_id = language_id
            translation.field_name = field_name
            translation.content = content
            db.session.add(translation)

    db.session.commit()
    return section


def add_style_default(style_name, field_name, value):
    default = StyleFieldDefault()
    default.style_name = style_name
    default.field_name = field_name
    default.default_value = value
    db.session.add(default)
    db.session.commit()
    return default


@pytest.fixture
def page(app):
    """Page with a two-section draft: a container holding a text block."""
    page = make_page("home")
    container = add_section(page, "main", style_name="container", position=0)
    add_section(
        page,
        "welcome",
        parent=container,
        position=0,
        translations={2: {"title": "Welcome"}},
    )
    return page


def render_context(**overrides):
    values = {"now": FIXED_NOW, "language_id": 2, "page_keyword": "home"}
    values.update(overrides)
    return RenderContext(**values)


# =============================================================================
# SNAPSHOTS (no database)
# =============================================================================

def snapshot_section(section_id, *, parent_path=(), position=0, style_name="text", translations=None, **extra):
    section = {
        "id": section_id,
        "name": section_id,
        "style_name": style_name,
        "parent_path": list(parent_path),
        "position": position,
        "translations": translations or {},
        "data_config": [],
        "condition": None,
        "css": None,
        "css_mobile": None,
        "debug": False,
    }
    section.update(extra)
    return section


def make_snapshot(*sections, page_id="p1"):
    return {
        "schema_version": 1,
        "page": {"id": page_id, "keyword": "home", "url": "/home"},
        "sections": list(sections),
        "style_defaults": {},
    }
