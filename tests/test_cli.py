"""CLI parser and entrypoint behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from jsdocgen import cli
from jsdocgen.cli import _build_parser, main
from jsdocgen.errors import CacheError
from jsdocgen.pipeline import FileOutcome, FileStatus, RunReport


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "generate"])
    assert args.verbose is True
    assert args.command == "generate"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["generate", "--verbose"])
    assert args.verbose is True


def test_generate_flags_default_to_config_values() -> None:
    args = _build_parser().parse_args(["generate", "app"])
    assert args.path == "app"
    assert args.config is None
    assert args.no_cache is None
    assert args.retries is None
    assert args.rate_limit_ms is None


def test_generate_flags_are_parsed() -> None:
    args = _build_parser().parse_args(
        ["generate", "--no-cache", "--retries", "3", "--rate-limit-ms", "250", "--config", "x.yml"]
    )
    assert args.no_cache is True
    assert args.retries == 3
    assert args.rate_limit_ms == 250.0
    assert args.config == "x.yml"


@pytest.mark.parametrize("flags", [["--retries", "0"], ["--rate-limit-ms", "-1"]])
def test_generate_rejects_invalid_numbers(flags: list[str]) -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["generate", *flags])


def test_serve_defaults() -> None:
    args = _build_parser().parse_args(["serve"])
    assert (args.host, args.port) == ("127.0.0.1", 8000)


def test_main_reports_summary(monkeypatch, tmp_path: Path, capsys) -> None:
    captured = {}

    async def fake_run(config_path, **kwargs):
        captured["config_path"] = config_path
        captured.update(kwargs)
        return RunReport(
            files=[
                FileOutcome(path=tmp_path / "a.ts", status=FileStatus.SAVED, succeeded=2, failed=1),
                FileOutcome(path=tmp_path / "b.ts"),
            ],
            generated=2,
            cached=3,
            failed=1,
        )

    monkeypatch.setattr(cli, "run_from_config", fake_run)

    main(["generate", str(tmp_path), "--retries", "2"])

    out = capsys.readouterr().out
    assert captured["config_path"] == tmp_path
    assert captured["retries"] == 2
    assert captured["disable_cache"] is None
    assert "Documented 2 node(s), 3 cached, 1 failed." in out
    assert "a.ts: saved (1 failed)" in out
    assert "b.ts" not in out


def test_main_exits_on_missing_config(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", str(tmp_path)])

    assert excinfo.value.code == 1
    assert "configuration error" in capsys.readouterr().err


def test_main_exits_on_cache_save_failure(monkeypatch, tmp_path: Path) -> None:
    async def fake_run(config_path, **kwargs):
        raise CacheError("Failed to write node cache: disk full")

    monkeypatch.setattr(cli, "run_from_config", fake_run)

    with pytest.raises(SystemExit) as excinfo:
        main(["generate", str(tmp_path)])

    assert excinfo.value.code == 1


@pytest.mark.parametrize("command", [["generate"], ["serve"]])
def test_log_file_option_is_accepted(command: list[str], tmp_path: Path) -> None:
    args = _build_parser().parse_args([*command, "--log-file", str(tmp_path / "run.log")])
    assert args.log_file == tmp_path / "run.log"


def test_main_passes_log_file_to_logging(monkeypatch, tmp_path: Path) -> None:
    captured = {}

    def fake_configure(*, verbose, log_file):
        captured.update(verbose=verbose, log_file=log_file)

    async def fake_run(config_path, **kwargs):
        return RunReport()

    monkeypatch.setattr(cli, "configure_logging", fake_configure)
    monkeypatch.setattr(cli, "run_from_config", fake_run)

    main(["generate", str(tmp_path), "-v", "--log-file", str(tmp_path / "run.log")])

    assert captured == {"verbose": True, "log_file": tmp_path / "run.log"}
