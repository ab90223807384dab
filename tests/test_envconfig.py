from datetime import timedelta

import pytest

from tsj.envconfig import (
    EnvError,
    env_bool,
    env_duration,
    env_int,
    env_str,
    package_name,
    parse_duration,
)


def test_package_name():
    assert package_name() == "tsj"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("5s", timedelta(seconds=5)),
        ("300ms", timedelta(milliseconds=300)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("0", timedelta(0)),
    ],
)
def test_parse_duration_values(text, expected):
    assert parse_duration(text) == expected


def test_parse_duration_equivalent_forms():
    assert parse_duration("90m") == parse_duration("1h30m")
    assert parse_duration("1.5h") == parse_duration("90m")
    assert parse_duration("-2m") == -parse_duration("2m")


@pytest.mark.parametrize("text", ["", "5", "abc", "1x", "s", "1h 30m"])
def test_parse_duration_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_env_str(monkeypatch):
    monkeypatch.setenv("TSJ_TEST_STR", "hello")
    assert env_str("TSJ_TEST_STR") == "hello"
    monkeypatch.delenv("TSJ_TEST_STR")
    assert env_str("TSJ_TEST_STR", "fallback") == "fallback"


def test_env_str_required_missing(monkeypatch):
    monkeypatch.delenv("TSJ_TEST_STR", raising=False)
    with pytest.raises(EnvError):
        env_str("TSJ_TEST_STR", required=True)


def test_env_int(monkeypatch):
    monkeypatch.setenv("TSJ_TEST_INT", "42")
    assert env_int("TSJ_TEST_INT") == 42
    monkeypatch.setenv("TSJ_TEST_INT", "forty")
    with pytest.raises(EnvError):
        env_int("TSJ_TEST_INT")


def test_env_int_default(monkeypatch):
    monkeypatch.delenv("TSJ_TEST_INT", raising=False)
    assert env_int("TSJ_TEST_INT", 8080) == 8080


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("F", False), ("False", False)])
def test_env_bool(monkeypatch, raw, expected):
    monkeypatch.setenv("TSJ_TEST_BOOL", raw)
    assert env_bool("TSJ_TEST_BOOL") is expected


def test_env_bool_invalid(monkeypatch):
    monkeypatch.setenv("TSJ_TEST_BOOL", "yes")
    with pytest.raises(EnvError):
        env_bool("TSJ_TEST_BOOL")


def test_env_duration(monkeypatch):
    monkeypatch.setenv("TSJ_TEST_DUR", "5s")
    assert env_duration("TSJ_TEST_DUR") == parse_duration("5s")
    monkeypatch.setenv("TSJ_TEST_DUR", "five")
    with pytest.raises(EnvError):
        env_duration("TSJ_TEST_DUR")


def test_env_duration_required(monkeypatch):
    monkeypatch.delenv("TSJ_TEST_DUR", raising=False)
    with pytest.raises(EnvError):
        env_duration("TSJ_TEST_DUR", required=True)