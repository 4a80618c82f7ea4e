"""End-to-end tests for DataConnection against SQLite."""

from pathlib import Path

import pandas as pd
import pytest

from sqlhelper.config import SQLHelperConfig, TimeoutSettings
from sqlhelper.db import BoundParameter, CommandType, DataConnection, DataSet, HandleState
from sqlhelper.exceptions import (
    ArgumentError,
    CommandTimeoutError,
    ConfigurationError,
    ConnectionFailedError,
    ConversionError,
    ExecutionError,
)

ENDLESS_QUERY = "WITH RECURSIVE c(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM c) SELECT COUNT(*) FROM c"


class TestScripts:
    """execute, execute_scalar, execute_insert, query and query_data_set."""

    def test_execute_with_mapping_parameters(self, db: DataConnection, row_count) -> None:
        result = db.execute("INSERT INTO Orders (Name, Amount) VALUES (@Name, @Amount)", {"Name": "Acme", "Amount": 100})

        assert result is None
        assert row_count("Orders") == 1

    def test_execute_with_bound_parameters(self, db: DataConnection) -> None:
        db.execute(
            "INSERT INTO Orders (Name, Amount) VALUES (@Name, @Amount)",
            [BoundParameter("@Name", "Acme"), BoundParameter("@Amount", None)],
        )
        assert db.execute_scalar("SELECT Amount FROM Orders WHERE Name = @n", {"n": "Acme"}) is None
        assert db.execute_scalar("SELECT COUNT(*) FROM Orders WHERE Amount IS NULL") == 1

    def test_execute_scalar_empty_result(self, db: DataConnection) -> None:
        assert db.execute_scalar("SELECT Name FROM Orders WHERE Id = @id", {"id": 99}) is None

    def test_execute_scalar_first_column_first_row(self, db: DataConnection) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": 100})
        db.insert_many("Orders", {"Name": "Globex", "Amount": 200})

        assert db.execute_scalar("SELECT Name, Amount FROM Orders ORDER BY Amount DESC") == "Globex"

    def test_execute_insert_returns_int(self, db: DataConnection) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": 100})
        assert db.execute_insert("SELECT MAX(Id) FROM Orders") == 1
        assert db.execute_insert("SELECT '42'") == 42

    def test_execute_insert_returns_generated_id(self, db: DataConnection, row_count) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": 100})

        new_id = db.execute_insert("INSERT INTO Orders (Name, Amount) VALUES (@Name, @Amount) RETURNING Id", {"Name": "Globex", "Amount": 200})

        assert new_id == 2
        assert row_count("Orders") == 2
        assert db.execute_scalar("SELECT Name FROM Orders WHERE Id = @id", {"id": new_id}) == "Globex"

    def test_execute_insert_conversion_error(self, db: DataConnection) -> None:
        with pytest.raises(ConversionError):
            db.execute_insert("SELECT 'not a number'")
        with pytest.raises(ConversionError):
            db.execute_insert("SELECT Id FROM Orders")

    def test_query_returns_dataframe(self, db: DataConnection) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": 100})
        db.insert_many("Orders", {"Name": "Globex", "Amount": 200})

        frame = db.query("SELECT Name, Amount FROM Orders WHERE Amount > @min ORDER BY Id", {"min": 50})

        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["Name", "Amount"]
        assert frame["Name"].tolist() == ["Acme", "Globex"]

    def test_query_empty_result_keeps_columns(self, db: DataConnection) -> None:
        frame = db.query("SELECT Name, Amount FROM Orders")
        assert frame.empty
        assert list(frame.columns) == ["Name", "Amount"]

    def test_query_data_set(self, db: DataConnection) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": 100})

        data_set = db.query_data_set("SELECT Name FROM Orders WHERE Amount = @a", {"a": 100})

        assert isinstance(data_set, DataSet)
        assert len(data_set) == 1
        assert data_set[0]["Name"].tolist() == ["Acme"]

    def test_stored_procedures_rejected_on_sqlite(self, db: DataConnection) -> None:
        with pytest.raises(ArgumentError, match="Stored procedures"):
            db.execute("dbo.Nightly", command_type=CommandType.STORED_PROCEDURE)


class TestErrors:
    def test_driver_error_is_wrapped(self, db: DataConnection) -> None:
        with pytest.raises(ExecutionError) as exc_info:
            db.query("SELECT * FROM MissingTable")

        error = exc_info.value
        assert error.sql == "SELECT * FROM MissingTable"
        assert "SELECT * FROM MissingTable" in str(error)
        assert error.__cause__ is not None

    def test_connection_usable_after_failure(self, db: DataConnection) -> None:
        with pytest.raises(ExecutionError):
            db.insert_many("Orders", {"Missing": 1})

        db.insert_many("Orders", {"Name": "Acme"})
        assert db.exists("Orders", "Name", "Acme")

    def test_timeout(self, connection_string: str, engine_cache) -> None:
        db = DataConnection(connection_string, timeout_override=1, settings=SQLHelperConfig(), engine_cache=engine_cache)
        try:
            with pytest.raises(CommandTimeoutError) as exc_info:
                db.execute_scalar(ENDLESS_QUERY)
            assert exc_info.value.timeout == 1
            assert exc_info.value.sql == ENDLESS_QUERY
        finally:
            db.close()

    def test_missing_connection_string(self, engine_cache) -> None:
        db = DataConnection(settings=SQLHelperConfig(), engine_cache=engine_cache)
        with pytest.raises(ConfigurationError):
            db.query("SELECT 1")


class TestGeneratedSql:
    """Script-less inserts, updates and existence checks."""

    def test_orders_insert(self, db: DataConnection, row_count) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": 100})

        assert row_count("Orders") == 1
        frame = db.query("SELECT Name, Amount FROM Orders")
        assert frame.iloc[0]["Name"] == "Acme"
        assert frame.iloc[0]["Amount"] == 100

    def test_insert_many_with_id(self, db: DataConnection) -> None:
        db.insert_many_with_id("Orders", "Id", 10, {"Name": "Acme", "Amount": 5})
        assert db.execute_scalar("SELECT Name FROM Orders WHERE Id = 10") == "Acme"

    def test_insert_one_and_update_one(self, db: DataConnection) -> None:
        db.insert_one("Settings", "SettingId", 1, "SettingValue", "on")
        db.update_one("Settings", "SettingId", 1, "SettingValue", "off")

        frame = db.query("SELECT SettingId, SettingValue FROM Settings")
        assert frame.values.tolist() == [[1, "off"]]

    def test_update_many(self, db: DataConnection) -> None:
        db.insert_many_with_id("Orders", "Id", 1, {"Name": "Acme", "Amount": 5})
        db.update_many("Orders", "Id", 1, {"Name": "Acme Corp", "Amount": None})

        frame = db.query("SELECT Name, Amount FROM Orders WHERE Id = 1")
        assert frame.iloc[0]["Name"] == "Acme Corp"
        assert pd.isna(frame.iloc[0]["Amount"])

    def test_update_many_where(self, db: DataConnection) -> None:
        db.insert_many("Users", {"Email": "a@b.com", "Active": 1})
        db.insert_many("Users", {"Email": "c@d.com", "Active": 1})

        db.update_many_where("Users", {"Email": "a@b.com"}, {"Active": 0})
        assert db.execute_scalar("SELECT COUNT(*) FROM Users WHERE Active = 1") == 1

        db.update_many_where("Users", {}, {"Active": 0})
        assert db.execute_scalar("SELECT COUNT(*) FROM Users WHERE Active = 1") == 0

    def test_empty_mapping_fails_before_any_command(self, db: DataConnection) -> None:
        with pytest.raises(ArgumentError):
            db.insert_many("Orders", {})
        assert db.state == HandleState.UNCONSTRUCTED

    def test_exists(self, db: DataConnection) -> None:
        db.insert_many("Users", {"Email": "a@b.com", "Active": True})

        assert db.exists("Users", "Email", "a@b.com")
        assert not db.exists("Users", "Email", "x@y.com")

    def test_users_exists_where(self, db: DataConnection) -> None:
        db.insert_many("Users", {"Email": "a@b.com", "Active": True})

        assert db.exists_where("Users", "Email", {"Email": "a@b.com", "Active": True})
        assert not db.exists_where("Users", "Email", {"Email": "a@b.com", "Active": False})

    def test_exists_ignores_column_content(self, db: DataConnection) -> None:
        db.insert_many("Orders", {"Name": "Acme", "Amount": None})
        assert db.exists_where("Orders", "Amount", {"Name": "Acme"})

    def test_exists_where_without_predicate(self, db: DataConnection) -> None:
        assert not db.exists_where("Orders", "Name", {})
        db.insert_many("Orders", {"Name": "Acme"})
        assert db.exists_where("Orders", "Name", None)


class TestTransactions:
    def test_rollback_discards_work(self, db: DataConnection, row_count) -> None:
        transaction = db.begin_transaction()
        db.insert_many("Orders", {"Name": "Acme"}, transaction=transaction)
        db.insert_many("Orders", {"Name": "Globex"})
        transaction.rollback()

        assert row_count("Orders") == 0
        assert not db.exists("Orders", "Name", "Acme")

    def test_commit_keeps_work(self, db: DataConnection, row_count) -> None:
        transaction = db.begin_transaction()
        db.insert_many("Orders", {"Name": "Acme"}, transaction=transaction)
        assert db.exists("Orders", "Name", "Acme", transaction=transaction)
        transaction.commit()

        assert row_count("Orders") == 1

    def test_commands_commit_on_their_own(self, db: DataConnection, row_count) -> None:
        db.insert_many("Orders", {"Name": "Acme"})
        assert row_count("Orders") == 1

    def test_transaction_from_another_connection_rejected(self, db: DataConnection, connection_string: str, engine_cache) -> None:
        with DataConnection(connection_string, settings=SQLHelperConfig(), engine_cache=engine_cache) as other:
            transaction = other.begin_transaction()
            with pytest.raises(ArgumentError):
                db.insert_many("Orders", {"Name": "Acme"}, transaction=transaction)
            transaction.rollback()

    def test_finished_transaction_rejected(self, db: DataConnection) -> None:
        transaction = db.begin_transaction()
        transaction.commit()
        with pytest.raises(ArgumentError):
            db.insert_many("Orders", {"Name": "Acme"}, transaction=transaction)


class TestLifecycle:
    def test_acquire_is_idempotent(self, db: DataConnection) -> None:
        assert db.acquire() is db.acquire()

    def test_closed_handle_reopened_before_use(self, db: DataConnection) -> None:
        db.acquire().close()
        db.insert_many("Orders", {"Name": "Acme"})
        assert db.state == HandleState.OPEN

    def test_context_manager_releases(self, connection_string: str, engine_cache) -> None:
        with DataConnection(connection_string, settings=SQLHelperConfig(), engine_cache=engine_cache) as db:
            handle = db.acquire()
        assert handle.closed
        assert db.state == HandleState.RELEASED

    def test_context_manager_releases_on_error(self, connection_string: str, engine_cache) -> None:
        with pytest.raises(ExecutionError):
            with DataConnection(connection_string, settings=SQLHelperConfig(), engine_cache=engine_cache) as db:
                db.query("SELECT * FROM MissingTable")
        assert db.state == HandleState.RELEASED

    def test_changing_connection_string_releases_handle(self, db: DataConnection, tmp_path: Path) -> None:
        handle = db.acquire()
        db.connection_string = f"sqlite:///{tmp_path / 'other.db'}"

        assert handle.closed
        assert db.state == HandleState.UNCONSTRUCTED
        assert not db.does_table_view_exist("Orders")


class TestCatalogue:
    def test_does_table_view_exist(self, db: DataConnection) -> None:
        assert db.does_table_view_exist("Orders")
        assert db.does_table_view_exist("ActiveUsers")
        assert not db.does_table_view_exist("Missing")


class TestCanConnect:
    def test_reachable(self, connection_string: str) -> None:
        assert DataConnection.can_connect(connection_string, settings=SQLHelperConfig())

    def test_unreachable_raises(self, tmp_path: Path) -> None:
        missing = f"sqlite:///{tmp_path / 'no' / 'such' / 'dir.db'}"
        with pytest.raises(ConnectionFailedError):
            DataConnection.can_connect(missing, settings=SQLHelperConfig())

    def test_unreachable_suppressed(self, tmp_path: Path) -> None:
        missing = f"sqlite:///{tmp_path / 'no' / 'such' / 'dir.db'}"
        assert DataConnection.can_connect(missing, suppress_errors=True, settings=SQLHelperConfig()) is False

    def test_invalid_connection_string(self) -> None:
        with pytest.raises(ConfigurationError):
            DataConnection.can_connect("", settings=SQLHelperConfig())
        assert DataConnection.can_connect("", suppress_errors=True, settings=SQLHelperConfig()) is False

    def test_global_override_applies(self, connection_string: str) -> None:
        config = SQLHelperConfig(timeouts=TimeoutSettings(global_override=2))
        assert DataConnection.can_connect(connection_string, timeout=10, settings=config)
