import zlib

import pytest

from pagepub.domain.errors import ConflictError, CorruptSnapshotError, NotFoundError, ValidationError
from pagepub.extensions import db
from pagepub.models import PageVersion
from pagepub.utils.versioning import fingerprint
from pagepub.wiring import version_store

from conftest import FIXED_NOW, make_page, make_snapshot, snapshot_section


@pytest.fixture
def store(app):
    return version_store()


@pytest.fixture
def blank_page(app):
    return make_page("about")


def snapshot_for(page, *sections):
    return make_snapshot(*(sections or (snapshot_section("s1"),)), page_id=page.id)


def test_version_numbers_increase_without_gaps(store, blank_page):
    numbers = [
        store.create_version(blank_page.id, snapshot_for(blank_page)).version_number
        for _ in range(3)
    ]
    db.session.commit()

    assert numbers == [1, 2, 3]


def test_new_version_is_unpublished(store, blank_page):
    version = store.create_version(blank_page.id, snapshot_for(blank_page), name="first", metadata={"note": "x"})
    db.session.commit()

    assert version.published_at is None
    assert version.version_name == "first"
    assert version.change_metadata == {"note": "x"}
    assert store.get_active_version(blank_page.id) is None


def test_invalid_snapshot_is_refused(store, blank_page):
    cyclic = snapshot_for(blank_page, snapshot_section("a", parent_path=["a"]))

    with pytest.raises(ValidationError):
        store.create_version(blank_page.id, cyclic)

    assert PageVersion.query.count() == 0


@pytest.mark.parametrize(
    "section",
    [
        snapshot_section("s1", position="top"),
        snapshot_section("s1", position=True),
        snapshot_section("s1", translations={"2": ["x"]}),
        snapshot_section("s1", translations={"2": {"title": 42}}),
    ],
    ids=["text-position", "bool-position", "list-translations", "number-field"],
)
def test_malformed_section_is_refused(store, blank_page, section):
    with pytest.raises(ValidationError):
        store.create_version(blank_page.id, snapshot_for(blank_page, section))

    assert PageVersion.query.count() == 0


def test_set_pointer_stamps_published_at_once(store, blank_page):
    version = store.create_version(blank_page.id, snapshot_for(blank_page))
    store.set_publish_pointer(blank_page.id, version.id)
    db.session.commit()
    assert version.published_at == FIXED_NOW.replace(tzinfo=version.published_at.tzinfo)

    first_stamp = version.published_at
    store.clear_publish_pointer(blank_page.id)
    store.set_publish_pointer(blank_page.id, version.id)
    db.session.commit()

    assert version.published_at == first_stamp
    assert store.get_active_version(blank_page.id).id == version.id


def test_set_pointer_rejects_version_of_other_page(store, blank_page):
    other = make_page("other")
    foreign = store.create_version(other.id, snapshot_for(other))
    db.session.commit()

    with pytest.raises(NotFoundError):
        store.set_publish_pointer(blank_page.id, foreign.id)


def test_clear_pointer_is_idempotent(store, blank_page):
    assert store.clear_publish_pointer(blank_page.id) is None
    assert store.clear_publish_pointer(blank_page.id) is None


def test_delete_active_version_conflicts(store, blank_page):
    version = store.create_version(blank_page.id, snapshot_for(blank_page))
    store.set_publish_pointer(blank_page.id, version.id)
    db.session.commit()

    with pytest.raises(ConflictError):
        store.delete_version(version.id)


def test_delete_inactive_version(store, blank_page):
    version = store.create_version(blank_page.id, snapshot_for(blank_page))
    db.session.commit()

    store.delete_version(version.id)
    db.session.commit()

    with pytest.raises(NotFoundError):
        store.get_version(version.id)


def test_list_versions_newest_first_with_total(store, blank_page):
    for _ in range(5):
        store.create_version(blank_page.id, snapshot_for(blank_page))
    db.session.commit()

    versions, total = store.list_versions(blank_page.id, limit=2, offset=1)

    assert total == 5
    assert [v.version_number for v in versions] == [4, 3]


def test_large_snapshots_are_compressed_transparently(store, blank_page):
    big = snapshot_for(blank_page, snapshot_section(
        "s1", translations={"2": {"body": {"content": "lorem ipsum " * 500, "meta": None}}}
    ))
    version = store.create_version(blank_page.id, big)
    db.session.commit()

    assert version.page_json is None
    assert version.page_json_compressed is not None
    assert store.load_snapshot(version) == big


def test_unreadable_payload_is_corrupt(store, blank_page):
    version = PageVersion()
    version.page_id = blank_page.id
    version.version_number = 1
    version.page_json_compressed = b"not zlib at all"
    version.fingerprint = "0" * 64
    db.session.add(version)
    db.session.commit()

    with pytest.raises(CorruptSnapshotError):
        store.load_snapshot(version)


def test_structurally_broken_payload_is_corrupt(store, blank_page):
    version = PageVersion()
    version.page_id = blank_page.id
    version.version_number = 1
    version.page_json_compressed = zlib.compress(b'{"page": {"id": "x"}}')
    version.fingerprint = "0" * 64
    db.session.add(version)
    db.session.commit()

    with pytest.raises(CorruptSnapshotError):
        store.load_snapshot(version)


def test_versions_are_immutable(store, blank_page):
    version = store.create_version(blank_page.id, snapshot_for(blank_page))
    db.session.commit()

    version.version_name = "renamed"
    with pytest.raises(RuntimeError, match="immutable"):
        db.session.flush()
    db.session.rollback()


def test_fingerprint_ignores_key_and_section_order(blank_page):
    a = snapshot_for(blank_page, snapshot_section("x"), snapshot_section("y", position=1))
    b = snapshot_for(blank_page, snapshot_section("y", position=1), snapshot_section("x"))
    b["page"] = dict(reversed(list(b["page"].items())))

    assert fingerprint(a) == fingerprint(b)

    a["sections"][0]["css"] = "bold"
    assert fingerprint(a) != fingerprint(b)
