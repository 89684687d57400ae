"""Tests for trace filter materialization and join fragments."""

from __future__ import annotations

import re
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects.mysql.base import MySQLDialect
from sqlalchemy.exc import OperationalError

from customs.config import DatabaseConfig, TraceFilterConfig
from customs.db import SqlDialect, TableInfo
from customs.exceptions import TraceFilterError
from customs.query import QueryBuilder, TraceFilter, TraceFilterList, TraceFilterSession


def make_filter(name="eu_users", match_columns=("user_id", "userid"), filter="region = 'EU'"):
    return TraceFilter(
        TraceFilterConfig(
            name=name,
            source={"db": "petstore", "table": "users", "column": "id", "filter": filter},
            match_columns=list(match_columns),
        )
    )


def temp_views(connection):
    rows = connection.exec_driver_sql(
        "SELECT name FROM sqlite_temp_master WHERE type = 'view'"
    ).all()
    return [r[0] for r in rows]


class TestMaterialize:
    """Test creating and dropping trace filter views."""

    def test_view_name_is_deterministic(self):
        assert make_filter().view_name == "_customs_tmp_eu_users"
        assert make_filter(name="eu users!").view_name == "_customs_tmp_eu_users_"
        assert make_filter().alias("orders") == "_customs_tmp_eu_users__orders"

    def test_materialize_creates_distinct_sorted_view(self, connection, session):
        tf = make_filter()
        count = tf.materialize(session)

        assert count == 2
        assert session.is_materialized("eu_users")
        rows = connection.exec_driver_sql(f"SELECT id FROM {tf.view_ref(session)}").all()
        assert [r[0] for r in rows] == [1, 3]

    def test_rematerialize_replaces(self, connection, session):
        tf = make_filter()
        tf.materialize(session)
        tf.materialize(session)

        assert temp_views(connection) == ["_customs_tmp_eu_users"]
        count = connection.exec_driver_sql(
            f"SELECT COUNT(*) FROM {tf.view_ref(session)}"
        ).scalar_one()
        assert count == 2

    def test_dematerialize_drops_view(self, connection, session):
        tf = make_filter()
        tf.materialize(session)
        tf.dematerialize(session)

        assert not session.is_materialized("eu_users")
        assert temp_views(connection) == []
        with pytest.raises(OperationalError):
            connection.exec_driver_sql('SELECT * FROM "_customs_tmp_eu_users"').all()

    def test_dematerialize_without_materialize_is_safe(self, session):
        make_filter().dematerialize(session)
        assert session.locations == {}

    def test_view_ref_requires_materialization(self, session):
        with pytest.raises(TraceFilterError):
            make_filter().view_ref(session)


class TestMatchColumn:
    """Test match column resolution order."""

    def test_source_table_matches_on_source_column(self):
        info = TableInfo("petstore", "users", ["id", "name", "user_id"], [None] * 3)
        assert make_filter().match_column(info) == "id"

    def test_first_present_candidate_wins(self):
        info = TableInfo("petstore", "orders", ["id", "userid", "user_id"], [None] * 3)
        assert make_filter().match_column(info) == "user_id"

    def test_fallback_candidate(self):
        info = TableInfo("petstore", "legacy_notes", ["userid", "note"], [None] * 2)
        assert make_filter().match_column(info) == "userid"

    def test_same_table_name_in_other_database_is_not_source(self):
        info = TableInfo("archive", "users", ["id", "user_id"], [None] * 2)
        assert make_filter().match_column(info) == "user_id"

    def test_no_match(self):
        info = TableInfo("backoffice", "vendors", ["id", "name"], [None] * 2)
        assert make_filter().match_column(info) is None


class TestBuildJoinFilter:
    """Test join/filter fragments produced for a table."""

    def test_join_fragment(self, session):
        tf = make_filter()
        tf.materialize(session)
        info = TableInfo("petstore", "orders", ["id", "user_id", "total"], [None] * 3)

        jf = tf.build_join_filter(info, session)

        alias = '"_customs_tmp_eu_users__orders"'
        assert jf.joins == [
            f'LEFT JOIN "_customs_tmp_eu_users" AS {alias} '
            f'ON "orders"."user_id" = {alias}.id'
        ]
        assert jf.filters == [f"{alias}.id IS NOT NULL"]

    def test_no_match_gives_empty_fragment(self, session):
        tf = make_filter()
        info = TableInfo("backoffice", "vendors", ["id", "name"], [None] * 2)
        assert not tf.build_join_filter(info, session)

    def test_list_append_is_non_destructive(self):
        globals_ = TraceFilterList([make_filter()])
        scoped = TraceFilterList([make_filter(name="other")])

        merged = globals_.append(scoped)

        assert [tf.name for tf in merged] == ["eu_users", "other"]
        assert [tf.name for tf in globals_] == ["eu_users"]
        assert len(scoped) == 1

    def test_list_deduplicates_identical_fragments(self, session):
        tf = make_filter()
        tf.materialize(session)
        filters = TraceFilterList([tf]).append([tf])
        info = TableInfo("petstore", "orders", ["id", "user_id"], [None] * 2)

        jf = filters.build_join_filter(info, session)

        assert len(jf.joins) == 1
        assert len(jf.filters) == 1

    def test_fragment_restricts_rows(self, connection, session):
        tf = make_filter()
        tf.materialize(session)
        info = TableInfo.fetch(connection, session.dialect, "petstore", "orders")
        jf = TraceFilterList([tf]).build_join_filter(info, session)

        rows = connection.exec_driver_sql(
            f'SELECT "orders".id FROM "petstore"."orders" {jf.join_string()} '
            f'WHERE {jf.filter_string()} ORDER BY "orders".id'
        ).all()

        assert [r[0] for r in rows] == [10, 12]


class TestMaterializedContext:
    """Test the scoped materialization helper."""

    def test_views_dropped_on_exit(self, connection, session):
        filters = TraceFilterList([make_filter(), make_filter(name="us", filter="region = 'US'")])
        with filters.materialized(session):
            assert sorted(temp_views(connection)) == ["_customs_tmp_eu_users", "_customs_tmp_us"]
        assert temp_views(connection) == []
        assert session.locations == {}

    def test_views_dropped_on_error(self, connection, session):
        filters = TraceFilterList([make_filter()])
        with pytest.raises(RuntimeError):
            with filters.materialized(session):
                raise RuntimeError("boom")
        assert temp_views(connection) == []


@pytest.fixture
def mysql_session():
    """Session on a stand-in MySQL connection that records executed SQL."""
    conn = MagicMock()
    conn.execution_options.return_value = conn
    conn.exec_driver_sql.return_value.scalar_one.return_value = 2
    return TraceFilterSession(conn, SqlDialect(MySQLDialect()))


def executed(session):
    return [c.args[0] for c in session.conn.exec_driver_sql.call_args_list]


class TestTemporaryTableCopies:
    """Test per-join copies on backends that cannot reopen temporary tables."""

    def test_scoped_alias(self):
        assert make_filter().alias("orders", "related") == "_customs_tmp_eu_users__orders__related"

    def test_sqlite_joins_the_view_itself(self, session):
        tf = make_filter()
        tf.materialize(session)
        assert tf.join_ref(session, tf.alias("orders")) == '"_customs_tmp_eu_users"'
        assert session.copies == {}

    def test_copy_created_once_per_alias(self, mysql_session):
        tf = make_filter()
        tf.materialize(mysql_session)
        alias = tf.alias("orders")

        first = tf.join_ref(mysql_session, alias)
        second = tf.join_ref(mysql_session, alias)

        assert first == second == "`petstore`.`_customs_tmp_eu_users__orders`"
        creates = [
            sql for sql in executed(mysql_session)
            if sql.startswith("CREATE TEMPORARY TABLE `petstore`.`_customs_tmp_eu_users__orders`")
        ]
        assert creates == [
            "CREATE TEMPORARY TABLE `petstore`.`_customs_tmp_eu_users__orders` "
            "AS SELECT * FROM `petstore`.`_customs_tmp_eu_users`"
        ]
        assert mysql_session.copies == {"eu_users": ["_customs_tmp_eu_users__orders"]}

    def test_related_and_trace_never_reopen_a_temp_table(self, mysql_session, monkeypatch):
        database = DatabaseConfig.model_validate(
            {"tables": {"users": {}, "orders": {"related_only": {"table": "users", "column": "user_id"}}}}
        )
        infos = {
            "users": TableInfo("petstore", "users", ["id", "name", "region"], [None] * 3),
            "orders": TableInfo("petstore", "orders", ["id", "user_id", "total"], [None] * 3),
        }
        builder = QueryBuilder(mysql_session, "petstore", database)
        monkeypatch.setattr(builder, "introspect", infos.get)
        filters = TraceFilterList([make_filter()])

        with filters.materialized(mysql_session):
            query = builder.build("orders", database.tables["orders"], filters)
            statements = [query.count_sql(), query.select_sql()]

        for sql in statements:
            targets = re.findall(r"(?:FROM|JOIN) (`[^`]+`\.`[^`]+`)", sql)
            temp = [t for t in targets if "_customs_tmp_" in t]
            assert sorted(temp) == [
                "`petstore`.`_customs_tmp_eu_users__orders`",
                "`petstore`.`_customs_tmp_eu_users__users__related`",
            ]

        dropped = [s for s in executed(mysql_session) if s.startswith("DROP TEMPORARY TABLE")]
        assert dropped[-3:] == [
            "DROP TEMPORARY TABLE IF EXISTS `petstore`.`_customs_tmp_eu_users__orders`",
            "DROP TEMPORARY TABLE IF EXISTS `petstore`.`_customs_tmp_eu_users__users__related`",
            "DROP TEMPORARY TABLE IF EXISTS `petstore`.`_customs_tmp_eu_users`",
        ]
        assert mysql_session.copies == {}
        assert mysql_session.locations == {}
