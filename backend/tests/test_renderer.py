import pytest

from pagepub.domain.errors import CorruptSnapshotError, NotFoundError
from pagepub.extensions import db
from pagepub.models import Page, PageVersion
from pagepub.wiring import hybrid_renderer, publish_controller, render_cache

from conftest import add_section, add_style_default, make_page, make_snapshot, render_context, snapshot_section


@pytest.fixture
def renderer(app):
    return hybrid_renderer()


@pytest.fixture
def controller(app):
    return publish_controller()


def names(sections):
    return [(s["name"], names(s["children"])) if s["children"] else s["name"] for s in sections]


def find(sections, name):
    for section in sections:
        if section["name"] == name:
            return section
        found = find(section["children"], name)
        if found:
            return found
    return None


def content(section, field):
    return section["fields"][field]["content"]


def test_unpublished_page_is_not_found(renderer, page):
    with pytest.raises(NotFoundError):
        renderer.render(page.id, 2, render_context())


def test_published_path_replays_stored_structure(renderer, controller, page):
    version = controller.publish(page.id)
    add_section(page, "draft-only", position=5)

    published = renderer.render(page.id, 2, render_context())
    draft = renderer.render_draft(page.id, 2, render_context())

    assert names(published["sections"]) == [("main", ["welcome"])]
    assert published["version"]["id"] == version.id
    assert published["draft"] is False
    assert names(draft["sections"]) == [("main", ["welcome"]), "draft-only"]
    assert draft["version"] is None


def test_live_data_is_fetched_at_request_time(renderer, controller, data_source):
    shop = make_page("shop")
    add_section(
        shop,
        "totals",
        data_config=[{"scope": "orders", "table": "orders", "retrieve": "all", "current_user": False}],
        translations={2: {"text": "Totals: {{orders.total}}"}},
    )
    controller.publish(shop.id)

    data_source.add("orders", {"id": "1", "total": 10})
    first = renderer.render(shop.id, 2, render_context())
    assert content(find(first["sections"], "totals"), "text") == "Totals: 10"

    # More than one record switches `all` to comma-joined values
    data_source.add("orders", {"id": "2", "total": 25})
    second = renderer.render(shop.id, 2, render_context())
    assert content(find(second["sections"], "totals"), "text") == "Totals: 10,25"
    assert find(second["sections"], "totals")["retrieved_data"] == {"orders": {"id": "1,2", "total": "10,25"}}


def test_missing_table_degrades_to_empty(renderer, controller, data_source):
    data_source.add("stats", {"id": 1, "visits": 40})
    p = make_page("legacy")
    add_section(p, "report", data_config=[{"scope": "stats", "table": "stats"}])
    controller.publish(p.id)
    data_source.drop("stats")

    document = renderer.render(p.id, 2, render_context())

    assert find(document["sections"], "report")["retrieved_data"] == {"stats": {}}


def test_false_condition_prunes_section_and_children(renderer, controller):
    p = make_page("members")
    staff = add_section(p, "staff-area", condition={"in": ["staff", {"var": "user_group"}]})
    add_section(p, "staff-news", parent=staff)
    add_section(p, "public", position=1)
    controller.publish(p.id)

    guest = renderer.render(p.id, 2, render_context())
    member = renderer.render(p.id, 2, render_context(user_id="u1", user_groups=("staff",)))

    assert names(guest["sections"]) == ["public"]
    assert names(member["sections"]) == [("staff-area", ["staff-news"]), "public"]


def test_condition_sees_render_time(renderer, controller):
    p = make_page("promo")
    add_section(p, "today", condition='{"==": [{"var": "current_date"}, "2026-03-14"]}')
    add_section(p, "tomorrow", condition={"==": [{"var": "current_date"}, "2026-03-15"]})
    controller.publish(p.id)

    document = renderer.render(p.id, 2, render_context())

    assert names(document["sections"]) == ["today"]


def test_unreadable_condition_hides_only_that_section(renderer, controller):
    p = make_page("broken")
    add_section(p, "bad", condition="{not json")
    add_section(p, "good", position=1)
    controller.publish(p.id)

    document = renderer.render(p.id, 2, render_context())

    assert names(document["sections"]) == ["good"]


def test_debug_sections_are_explained_on_draft_path_only(renderer, controller):
    p = make_page("debugging")
    hidden = add_section(p, "hidden", condition={"==": [1, 2]}, debug=True)
    add_section(p, "inner", parent=hidden)
    controller.publish(p.id)

    published = renderer.render(p.id, 2, render_context())
    draft = renderer.render_draft(p.id, 2, render_context())

    assert published["sections"] == []
    section = find(draft["sections"], "hidden")
    assert section["children"] == []
    assert section["condition_debug"]["result"] is False


def test_corrupt_snapshot_fails_the_whole_render(renderer, page):
    version = PageVersion()
    version.page_id = page.id
    version.version_number = 1
    version.page_json_compressed = b"garbage"
    version.fingerprint = "0" * 64
    db.session.add(version)
    db.session.flush()
    db.session.get(Page, page.id).published_version_id = version.id
    db.session.commit()

    with pytest.raises(CorruptSnapshotError):
        renderer.render(page.id, 2, render_context())
    assert len(render_cache()) == 0


@pytest.mark.parametrize(
    "section",
    [
        snapshot_section("s1", position="top"),
        snapshot_section("s1", translations={"2": ["x"]}),
    ],
    ids=["text-position", "list-translations"],
)
def test_malformed_stored_section_is_reported_as_corrupt(renderer, page, section):
    version = PageVersion()
    version.page_id = page.id
    version.version_number = 1
    version.page_json = make_snapshot(section, page_id=page.id)
    version.fingerprint = "0" * 64
    db.session.add(version)
    db.session.flush()
    db.session.get(Page, page.id).published_version_id = version.id
    db.session.commit()

    with pytest.raises(CorruptSnapshotError):
        renderer.render(page.id, 2, render_context())
    assert len(render_cache()) == 0


def test_translation_layers_apply_in_fixed_order(renderer, controller):
    p = make_page("layers")
    add_style_default("card", "title", "default title")
    add_style_default("card", "footer", "default footer")
    add_section(
        p,
        "card",
        style_name="card",
        translations={
            1: {"title": "property title", "image": "cat.png"},
            2: {"title": "english title", "subtitle": "english subtitle"},
            3: {"title": "german title"},
        },
    )
    controller.publish(p.id)

    german = find(renderer.render(p.id, 3, render_context(language_id=3))["sections"], "card")
    english = find(renderer.render(p.id, 2, render_context())["sections"], "card")

    assert content(german, "title") == "german title"
    assert content(german, "subtitle") == "english subtitle"
    assert content(german, "image") == "cat.png"
    assert content(german, "footer") == "default footer"
    assert content(english, "title") == "english title"


def test_system_variables_are_interpolated(renderer, controller):
    p = make_page("greeting")
    add_section(p, "hello", translations={2: {"text": "Hello {{user_name}} on {{page_keyword}} {{unknown}}"}})
    controller.publish(p.id)

    document = renderer.render(p.id, 2, render_context(user_id="u1", user_name="Edith", page_keyword="greeting"))

    assert content(find(document["sections"], "hello"), "text") == "Hello Edith on greeting {{unknown}}"


def test_globals_are_exposed_under_their_own_prefix(renderer, controller):
    p = make_page("footer")
    add_section(p, "copyright", translations={2: {"text": "(c) {{globals.site_name}}"}})
    controller.publish(p.id)

    document = renderer.render(p.id, 2, render_context(globals={"site_name": "Acme"}))

    assert content(find(document["sections"], "copyright"), "text") == "(c) Acme"


def test_children_inherit_parent_scopes(renderer, controller, data_source):
    data_source.add("profiles", {"user_id": "u1", "city": "Lagos"})
    data_source.add("profiles", {"user_id": "u2", "city": "Porto"})
    p = make_page("profile")
    parent = add_section(p, "profile", data_config=[{"scope": "me", "table": "profiles", "retrieve": "first"}])
    add_section(p, "city", parent=parent, translations={2: {"text": "You live in {{me.city}}"}})
    controller.publish(p.id)

    document = renderer.render(p.id, 2, render_context(user_id="u2"))

    assert content(find(document["sections"], "city"), "text") == "You live in Porto"


def test_param_placeholders_feed_filters(renderer, controller, data_source):
    data_source.add("orders", {"id": "7", "status": "shipped"})
    data_source.add("orders", {"id": "8", "status": "open"})
    p = make_page("order")
    add_section(
        p,
        "detail",
        data_config=[{"scope": "order", "table": "orders", "filter": {"id": "#order_id"}, "current_user": False}],
        translations={2: {"text": "Order {{order.id}} is {{order.status}}"}},
    )
    controller.publish(p.id)

    document = renderer.render(p.id, 2, render_context(params={"order_id": "8"}))

    assert content(find(document["sections"], "detail"), "text") == "Order 8 is open"


def test_form_record_sections_show_own_records(renderer, controller, data_source):
    data_source.add("feedback", {"user_id": "u1", "comment": "mine"})
    data_source.add("feedback", {"user_id": "u2", "comment": "theirs"})
    p = make_page("my-feedback")
    add_section(p, "feedback", style_name="formUserInputRecord")
    controller.publish(p.id)

    own = renderer.render(p.id, 2, render_context(user_id="u1"))
    guest = renderer.render(p.id, 2, render_context())

    assert find(own["sections"], "feedback")["section_data"] == [{"user_id": "u1", "comment": "mine"}]
    assert find(guest["sections"], "feedback")["section_data"] == []


def test_only_published_path_fills_the_cache(renderer, controller, page):
    version = controller.publish(page.id)
    cache = render_cache()

    renderer.render_draft(page.id, 2, render_context())
    assert len(cache) == 0

    renderer.render(page.id, 2, render_context())
    renderer.render(page.id, 2, render_context(user_id="someone"))
    assert (page.id, version.id, 2) in cache
    assert len(cache) == 1


def test_cached_structure_is_not_mutated_by_hydration(renderer, controller, page):
    controller.publish(page.id)

    first = renderer.render(page.id, 2, render_context())
    first["sections"][0]["children"].clear()
    second = renderer.render(page.id, 2, render_context())

    assert names(second["sections"]) == [("main", ["welcome"])]
