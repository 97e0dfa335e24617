import pytest

from pagepub.domain.errors import DataSourceError, UnknownTableError
from pagepub.rendering.data import RetrieveMode, prepare_config, process_all, retrieve
from pagepub.services import InMemoryDataSource, TemplateInterpolator

from conftest import render_context

ROWS = [
    {"id": 1, "user_id": "u1", "name": "Ada", "email": "ada@example.com"},
    {"id": 2, "user_id": "u2", "name": "Bo", "email": ""},
    {"id": 3, "user_id": "u1", "name": "Cy", "email": None},
]


@pytest.fixture
def source():
    return InMemoryDataSource({"people": ROWS})


def run(source, **config):
    config.setdefault("table", "people")
    config.setdefault("current_user", False)
    return retrieve(config, data_source=source, context=render_context(user_id="u1"))


def test_first_and_last(source):
    assert run(source, retrieve="first")["name"] == "Ada"
    assert run(source, retrieve="last")["name"] == "Cy"


def test_first_with_projection(source):
    fields = [{"field_name": "email", "field_holder": "mail", "not_found_text": "n/a"}]

    assert run(source, retrieve="last", all_fields=False, fields=fields) == {"mail": "n/a"}


def test_all_with_one_record_returns_the_record(source):
    assert run(source, retrieve="all", filter={"id": 2}) == ROWS[1]


def test_all_with_several_records_joins_values(source):
    result = run(source, retrieve="all")

    assert result["name"] == "Ada,Bo,Cy"
    assert result["email"] == "ada@example.com,,"


def test_all_with_projection_joins_projected_values(source):
    fields = [{"field_name": "email", "not_found_text": "-"}]

    assert run(source, retrieve="all", all_fields=False, fields=fields) == {"email": "ada@example.com,-,-"}


def test_all_as_array_returns_columns(source):
    result = run(source, retrieve="all_as_array")

    assert result["id"] == [1, 2, 3]
    assert result["email"] == ["ada@example.com", "", None]


def test_json_mode_maps_and_projects(source):
    result = run(
        source,
        retrieve="JSON",
        map_fields=[{"field_name": "id", "field_new_name": "person_id"}],
        fields=[{"field_name": "name"}],
    )

    assert result == [
        {"name": "Ada", "person_id": 1},
        {"name": "Bo", "person_id": 2},
        {"name": "Cy", "person_id": 3},
    ]


def test_current_user_restricts_to_own_rows(source):
    result = retrieve(
        {"table": "people", "retrieve": "JSON"},
        data_source=source,
        context=render_context(user_id="u1"),
    )

    assert [row["name"] for row in result] == ["Ada", "Cy"]


def test_empty_results(source):
    assert run(source, retrieve="all", filter={"id": 99}) == {}
    assert run(source, retrieve="first", filter={"id": 99}) == {}
    assert run(source, retrieve="JSON", filter={"id": 99}) == []


def test_unknown_mode_falls_back_to_all():
    assert RetrieveMode.parse("everything") is RetrieveMode.ALL
    assert process_all([], {}) == {}


def test_unknown_table_raises(source):
    with pytest.raises(UnknownTableError):
        run(source, table="nope")


def test_filter_must_be_an_object(source):
    with pytest.raises(DataSourceError):
        run(source, filter="id = 1")


def test_prepare_config_replaces_params_then_variables():
    config = {"table": "orders", "filter": {"id": "#order", "owner": "{{user_email}}", "tag": "#missing"}}
    context = render_context(user_email="ada@example.com", params={"order": "42"})

    prepared = prepare_config(config, context, TemplateInterpolator())

    assert prepared["filter"] == {"id": "42", "owner": "ada@example.com", "tag": "#missing"}
    assert config["filter"]["id"] == "#order"
