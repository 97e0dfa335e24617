import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table

from pagepub.domain.errors import DataSourceError, UnknownTableError
from pagepub.extensions import db
from pagepub.services import SqlTableDataSource


@pytest.fixture
def orders(app):
    metadata = MetaData()
    table = Table(
        "data_orders",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("user_id", String(36)),
        Column("status", String(20)),
    )
    metadata.create_all(db.engine)
    db.session.execute(table.insert(), [
        {"id": 1, "user_id": "u1", "status": "open"},
        {"id": 2, "user_id": "u2", "status": "open"},
        {"id": 3, "user_id": "u1", "status": "shipped"},
    ])
    db.session.commit()
    yield table
    metadata.drop_all(db.engine)


@pytest.fixture
def source(app):
    return SqlTableDataSource(prefix="data_")


def test_reads_rows_in_key_order(source, orders):
    rows = source.fetch("orders")

    assert [row["id"] for row in rows] == [1, 2, 3]


def test_prefixed_name_is_accepted(source, orders):
    assert len(source.fetch("data_orders")) == 3


def test_filters_and_own_entries(source, orders):
    rows = source.fetch("orders", filters={"status": "open"}, user_id="u1", own_entries_only=True)

    assert rows == [{"id": 1, "user_id": "u1", "status": "open"}]


def test_tables_outside_the_prefix_are_unreachable(source, orders):
    # `users` exists but is not a data table
    with pytest.raises(UnknownTableError):
        source.fetch("users")


def test_unknown_filter_column(source, orders):
    with pytest.raises(DataSourceError):
        source.fetch("orders", filters={"colour": "red"})
