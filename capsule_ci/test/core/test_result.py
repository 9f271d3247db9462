"""Tests for capsule_ci.core.result module."""

from __future__ import annotations

import pytest

from capsule_ci.core.result import Err, Ok, Result, is_err, is_ok


def _half(n: int) -> Result[int, str]:
    if n % 2:
        return Err(f"{n} is odd")
    return Ok(n // 2)


class TestOk:
    def test_value_and_flags(self) -> None:
        result = Ok(3)
        assert result.value == 3
        assert result.is_ok() is True
        assert result.is_err() is False

    def test_unwrap(self) -> None:
        assert Ok("x").unwrap() == "x"
        assert Ok("x").unwrap_or("y") == "x"

    def test_map(self) -> None:
        assert Ok(2).map(lambda v: v * 10) == Ok(20)

    def test_map_err_is_noop(self) -> None:
        ok = Ok(1)
        assert ok.map_err(lambda e: f"wrapped {e}") is ok

    def test_flat_map_chains(self) -> None:
        assert Ok(8).flat_map(_half).flat_map(_half) == Ok(2)
        assert Ok(6).flat_map(_half).flat_map(_half) == Err("3 is odd")

    def test_frozen(self) -> None:
        result = Ok(1)
        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]


class TestErr:
    def test_error_and_flags(self) -> None:
        result = Err("boom")
        assert result.error == "boom"
        assert result.is_ok() is False
        assert result.is_err() is True

    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="boom"):
            Err("boom").unwrap()

    def test_unwrap_or_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7

    def test_map_is_noop(self) -> None:
        err = Err("boom")
        assert err.map(lambda v: v) is err

    def test_map_err(self) -> None:
        assert Err("boom").map_err(str.upper) == Err("BOOM")

    def test_flat_map_short_circuits(self) -> None:
        calls: list[int] = []

        def record(v: int) -> Result[int, str]:
            calls.append(v)
            return Ok(v)

        assert Err("boom").flat_map(record) == Err("boom")
        assert calls == []


class TestTypeGuards:
    def test_is_ok(self) -> None:
        assert is_ok(Ok(1))
        assert not is_ok(Err(1))

    def test_is_err(self) -> None:
        assert is_err(Err(1))
        assert not is_err(Ok(1))

    def test_match(self) -> None:
        match _half(4):
            case Ok(value):
                assert value == 2
            case Err(_):
                pytest.fail("expected Ok")
