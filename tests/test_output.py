"""Tests for pkgcache.output -- stream discipline, formats, quiet mode."""

from __future__ import annotations

import json

import pytest

from pkgcache.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture
def non_tty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pkgcache.output._is_tty", lambda: False)
    monkeypatch.delenv("NO_COLOR", raising=False)


class TestFormatResolution:
    def test_auto_is_plain_without_tty(self, non_tty) -> None:
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_is_rich_on_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("pkgcache.output._is_tty", lambda: True)
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager().format == OutputFormat.RICH

    def test_explicit_json(self, non_tty) -> None:
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStreams:
    def test_data_goes_to_stdout(self, capfd, non_tty) -> None:
        OutputManager(no_color=True).print_data("payload")
        out, err = capfd.readouterr()
        assert out == "payload\n"
        assert err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method: str) -> None:
        getattr(OutputManager(no_color=True), method)("message")
        out, err = capfd.readouterr()
        assert out == ""
        assert "message" in err

    def test_quiet_suppresses_info_not_errors(self, capfd, non_tty) -> None:
        output = OutputManager(no_color=True, quiet=True)
        output.info("hidden")
        output.success("hidden")
        output.error("shown")
        output.warning("also shown")
        _, err = capfd.readouterr()
        assert "hidden" not in err
        assert "Error: shown" in err
        assert "Warning: also shown" in err


class TestTables:
    def test_plain_table(self, capfd, non_tty) -> None:
        OutputManager(format=OutputFormat.PLAIN).print_table(["key", "age"], [["a", "1s"], ["b", "2s"]])
        out, _ = capfd.readouterr()
        assert out.splitlines() == ["key\tage", "a\t1s", "b\t2s"]

    def test_json_table(self, capfd, non_tty) -> None:
        OutputManager(format=OutputFormat.JSON).print_table(["key", "age"], [["a", "1s"]])
        out, _ = capfd.readouterr()
        assert json.loads(out) == [{"key": "a", "age": "1s"}]

    def test_rich_table_renders(self, capfd, non_tty) -> None:
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(["key"], [["alpha"]], title="t")
        out, _ = capfd.readouterr()
        assert "alpha" in out

    def test_values_json_and_plain(self, capfd, non_tty) -> None:
        OutputManager(format=OutputFormat.JSON).print_values(["a", "b"])
        OutputManager(format=OutputFormat.PLAIN).print_values(["c"])
        out, _ = capfd.readouterr()
        assert out.startswith("[")
        assert out.rstrip().endswith("c")


class TestGlobalManager:
    def test_set_and_reset(self) -> None:
        manager = OutputManager(format=OutputFormat.JSON)
        set_output(manager)
        assert get_output() is manager
        reset_output()
        assert get_output() is not manager
