"""Tests for the calendarfilter command-line entry point."""

import pytest

import calendarfilter.api.server as server_module
from calendarfilter.__main__ import _create_parser, main

pytestmark = [pytest.mark.unit, pytest.mark.fast]


@pytest.fixture
def captured_configs(monkeypatch):
    """Replace start_server so run_server returns instead of serving."""
    configs = []
    monkeypatch.setattr(server_module, "start_server", configs.append)
    return configs


def test_parser_when_flags_given_then_parsed() -> None:
    args = _create_parser().parse_args(
        ["--port", "3000", "--bind", "127.0.0.1", "--source-url", "https://calendar.example.com/x.ics"]
    )
    assert (args.port, args.bind, args.source_url) == (3000, "127.0.0.1", "https://calendar.example.com/x.ics")


def test_parser_when_no_flags_then_all_none() -> None:
    args = _create_parser().parse_args([])
    assert (args.port, args.bind, args.source_url) == (None, None, None)


def test_main_when_port_not_integer_then_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--port", "eighty"])
    assert exc_info.value.code == 2


def test_main_when_calendar_url_missing_then_exit_1_with_message(
    monkeypatch, tmp_path, capsys, captured_configs
) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as exc_info:
        main([])

    assert exc_info.value.code == 1
    assert "Configuration error: CALENDAR_URL environment variable is required" in capsys.readouterr().err
    assert captured_configs == []


def test_main_when_env_configured_then_cli_overrides_applied(
    monkeypatch, tmp_path, source_url, captured_configs
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CALENDAR_URL", source_url)
    monkeypatch.setenv("PORT", "9000")

    with pytest.raises(SystemExit) as exc_info:
        main(["--port", "3000"])

    assert exc_info.value.code == 0
    [config] = captured_configs
    assert config.server_port == 3000
    assert config.source_url == source_url


def test_main_when_source_url_flag_then_env_not_required(monkeypatch, tmp_path, captured_configs) -> None:
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as exc_info:
        main(["--source-url", "https://calendar.example.com/cli.ics"])

    assert exc_info.value.code == 0
    assert captured_configs[0].source_url == "https://calendar.example.com/cli.ics"
