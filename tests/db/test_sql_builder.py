"""Tests for generated INSERT, UPDATE, WHERE and existence SQL."""

import pytest

from sqlhelper.db import DB_NULL, DynamicSqlBuilder
from sqlhelper.exceptions import ArgumentError


@pytest.fixture
def builder() -> DynamicSqlBuilder:
    return DynamicSqlBuilder()


def pairs(command):
    return command.parameter_pairs()


class TestInsert:
    def test_insert_many(self, builder: DynamicSqlBuilder) -> None:
        command = builder.insert_many("Orders", {"Name": "Acme", "Amount": 100})

        assert command.text == "INSERT INTO Orders (Name,Amount) VALUES (@Param1,@Param2)"
        assert pairs(command) == [("@Param1", "Acme"), ("@Param2", 100)]

    def test_insert_many_with_id(self, builder: DynamicSqlBuilder) -> None:
        command = builder.insert_many_with_id("Orders", "Id", 7, {"Name": "Acme", "Amount": None})

        assert command.text == "INSERT INTO Orders (Id,Name,Amount) VALUES (@Param1,@Param2,@Param3)"
        assert pairs(command) == [("@Param1", 7), ("@Param2", "Acme"), ("@Param3", DB_NULL)]

    def test_insert_one(self, builder: DynamicSqlBuilder) -> None:
        command = builder.insert_one("Settings", "SettingId", 1, "SettingValue", "on")

        assert command.text == "INSERT INTO Settings (SettingId,SettingValue) VALUES (@Param1,@Param2)"
        assert pairs(command) == [("@Param1", 1), ("@Param2", "on")]

    def test_column_order_matches_token_order(self, builder: DynamicSqlBuilder) -> None:
        data = {"c": 3, "a": 1, "b": 2}
        command = builder.insert_many("T", data)

        assert command.text == "INSERT INTO T (c,a,b) VALUES (@Param1,@Param2,@Param3)"
        assert [value for _, value in pairs(command)] == [3, 1, 2]

    @pytest.mark.parametrize("data", [None, {}])
    def test_empty_data_rejected(self, builder: DynamicSqlBuilder, data) -> None:
        with pytest.raises(ArgumentError):
            builder.insert_many("Orders", data)
        with pytest.raises(ArgumentError):
            builder.insert_many_with_id("Orders", "Id", 1, data)

    def test_parameter_count_with_id_prefix(self, builder: DynamicSqlBuilder) -> None:
        data = {"a": 1, "b": 2, "c": 3}
        assert len(builder.insert_many("T", data).parameters) == 3
        assert len(builder.insert_many_with_id("T", "Id", 1, data).parameters) == 4


class TestUpdate:
    def test_update_one_sets_the_value_column(self, builder: DynamicSqlBuilder) -> None:
        command = builder.update_one("Settings", "SettingId", 1, "SettingValue", "off")

        assert command.text == "UPDATE Settings SET SettingValue = @Param2 WHERE SettingId = @Param1"
        assert pairs(command) == [("@Param1", 1), ("@Param2", "off")]

    def test_update_many(self, builder: DynamicSqlBuilder) -> None:
        command = builder.update_many("Orders", "Id", 5, {"Name": "Acme", "Amount": 100})

        assert command.text == "UPDATE Orders SET Name=@Param2, Amount=@Param3 WHERE Id = @Param1"
        assert pairs(command) == [("@Param1", 5), ("@Param2", "Acme"), ("@Param3", 100)]

    def test_update_many_where(self, builder: DynamicSqlBuilder) -> None:
        command = builder.update_many_where("Users", {"Email": "a@b.com"}, {"Active": False})

        assert command.text == "UPDATE Users SET Active=@Param1 WHERE Email = @WhereParam1"
        assert pairs(command) == [("@Param1", False), ("@WhereParam1", "a@b.com")]

    def test_update_many_where_without_predicate_updates_all(self, builder: DynamicSqlBuilder) -> None:
        command = builder.update_many_where("Users", {}, {"Active": 0})
        assert command.text == "UPDATE Users SET Active=@Param1"

    def test_update_many_requires_data(self, builder: DynamicSqlBuilder) -> None:
        with pytest.raises(ArgumentError, match="update_many"):
            builder.update_many("Orders", "Id", 1, {})


class TestWhereAndExists:
    def test_where_clause(self, builder: DynamicSqlBuilder) -> None:
        sql, parameters = builder.where_clause({"Email": "a@b.com", "Active": True})

        assert sql == " WHERE Email = @WhereParam1 AND Active = @WhereParam2"
        assert [p.as_tuple() for p in parameters] == [("@WhereParam1", "a@b.com"), ("@WhereParam2", True)]

    @pytest.mark.parametrize("where", [None, {}])
    def test_empty_where_clause(self, builder: DynamicSqlBuilder, where) -> None:
        assert builder.where_clause(where) == ("", [])

    def test_one_term_per_key(self, builder: DynamicSqlBuilder) -> None:
        where = {f"c{i}": i for i in range(5)}
        sql, parameters = builder.where_clause(where)
        assert sql.count(" = @WhereParam") == 5
        assert sql.count(" AND ") == 4
        assert len(parameters) == 5

    def test_exists_single_value(self, builder: DynamicSqlBuilder) -> None:
        command = builder.exists("Users", "Email", "a@b.com")

        assert command.text == "SELECT Email from Users WHERE Email = @Param1"
        assert pairs(command) == [("@Param1", "a@b.com")]

    def test_exists_where(self, builder: DynamicSqlBuilder) -> None:
        command = builder.exists_where("Users", "Email", {"Email": "a@b.com", "Active": True})

        assert command.text == "SELECT Email from Users WHERE Email = @WhereParam1 AND Active = @WhereParam2"
        assert pairs(command) == [("@WhereParam1", "a@b.com"), ("@WhereParam2", True)]

    def test_exists_where_without_predicate(self, builder: DynamicSqlBuilder) -> None:
        assert builder.exists_where("Users", "Email", {}).text == "SELECT Email from Users"


def test_table_name_required(builder: DynamicSqlBuilder) -> None:
    with pytest.raises(ArgumentError):
        builder.insert_many("  ", {"a": 1})
