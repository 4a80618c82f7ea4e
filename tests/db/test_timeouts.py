"""Tests for command timeout resolution."""

import pytest

from sqlhelper.config import SQLHelperConfig, TimeoutSettings
from sqlhelper.db import DataConnection, TimeoutResolver


class TestTimeoutResolver:
    """Precedence is global override, then instance override, then call value."""

    def test_call_value_when_no_override(self) -> None:
        resolver = TimeoutResolver(TimeoutSettings())
        assert resolver.resolve(30) == 30
        assert resolver.resolve(5) == 5

    def test_default_when_no_call_value(self) -> None:
        resolver = TimeoutResolver(TimeoutSettings(default_timeout=12))
        assert resolver.resolve() == 12
        assert resolver.resolve(None) == 12

    def test_instance_override_beats_call_value(self) -> None:
        resolver = TimeoutResolver(TimeoutSettings(), instance_override=45)
        assert resolver.resolve(30) == 45

    def test_global_override_beats_everything(self) -> None:
        resolver = TimeoutResolver(TimeoutSettings(global_override=60), instance_override=45)
        assert resolver.resolve(30) == 60
        assert resolver.resolve() == 60

    @pytest.mark.parametrize(
        "global_override, instance_override, call, expected",
        [
            (None, None, 30, 30),
            (None, 45, 30, 45),
            (60, 45, 30, 60),
            (60, None, 30, 60),
            (0, 45, 30, 0),
            (None, 0, 30, 0),
        ],
    )
    def test_exactly_one_winner(self, global_override, instance_override, call, expected) -> None:
        resolver = TimeoutResolver(TimeoutSettings(global_override=global_override), instance_override)
        assert resolver.resolve(call) == expected

    def test_resolve_global_ignores_instance_override(self) -> None:
        resolver = TimeoutResolver(TimeoutSettings(), instance_override=45)
        assert resolver.resolve_global(10) == 10

        resolver = TimeoutResolver(TimeoutSettings(global_override=3), instance_override=45)
        assert resolver.resolve_global(10) == 3


def test_data_connection_resolves_through_its_settings(connection_string: str, engine_cache) -> None:
    config = SQLHelperConfig(timeouts=TimeoutSettings(global_override=60))
    db = DataConnection(connection_string, timeout_override=45, settings=config, engine_cache=engine_cache)
    assert db.resolve_timeout(30) == 60


def test_data_connection_instance_override_can_change(db: DataConnection) -> None:
    assert db.resolve_timeout(30) == 30
    db.timeout_override = 45
    assert db.resolve_timeout(30) == 45
    db.timeout_override = None
    assert db.resolve_timeout() == 30
