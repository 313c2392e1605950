"""Tests for the output formatting system.

Covers format resolution, colour disabling, stdout/stderr discipline,
quiet/verbose rules, the three renderers, tables, the log handler, and the
global instance.
"""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from cachegate import output as output_module
from cachegate.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("cachegate.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("cachegate.output._is_tty", lambda: True)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("TERM", raising=False)


def _plain(**kwargs) -> OutputManager:
    return OutputManager(format=OutputFormat.PLAIN, no_color=True, **kwargs)


# ------------------------------------------------------------------ #
# Format and colour resolution
# ------------------------------------------------------------------ #


class TestFormatResolution:
    def test_auto_is_plain_when_piped(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_is_rich_on_tty(self, tty):
        assert OutputManager().format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_terminal(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr
# ------------------------------------------------------------------ #


class TestStreams:
    def test_data_goes_to_stdout(self, capfd, non_tty):
        _plain().print_data("body")
        captured = capfd.readouterr()
        assert captured.out == "body\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        getattr(_plain(), method)("diagnostic")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "diagnostic" in captured.err

    def test_warning_and_error_prefixes(self, capfd, non_tty):
        mgr = _plain()
        mgr.warning("careful")
        mgr.error("broken")
        err = capfd.readouterr().err
        assert "Warning: careful" in err
        assert "Error: broken" in err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        mgr = _plain(quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warnings_and_data(self, capfd, non_tty):
        mgr = _plain(quiet=True)
        mgr.warning("visible")
        mgr.print_data("data")
        captured = capfd.readouterr()
        assert "visible" in captured.err
        assert "data" in captured.out

    def test_debug_only_when_verbose(self, capfd, non_tty):
        _plain().debug("nope")
        assert capfd.readouterr().err == ""
        _plain(verbose=True).debug("yes")
        assert "[debug] yes" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Renderers
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_mode_indents(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).format_response({"items": [1]})
        out = capfd.readouterr().out
        assert json.loads(out) == {"items": [1]}
        assert "\n  " in out

    def test_json_mode_reparses_json_strings(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).format_response('{"a":1}')
        assert json.loads(capfd.readouterr().out) == {"a": 1}

    def test_json_mode_passes_other_strings(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).format_response("<html>")
        assert capfd.readouterr().out == "<html>\n"

    def test_plain_dict_is_tab_separated(self, capfd, non_tty):
        _plain().format_response({"error": "Offline", "message": "You are currently offline"})
        out = capfd.readouterr().out
        assert "error\tOffline" in out
        assert "message\tYou are currently offline" in out

    def test_plain_list_of_dicts(self, capfd, non_tty):
        _plain().format_response([{"id": 1, "title": "A"}, {"id": 2, "title": "B"}])
        assert capfd.readouterr().out.splitlines() == ["1\tA", "2\tB"]

    def test_rich_renders_something(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response({"k": "v"})
        out = capfd.readouterr().out
        assert "k" in out


class TestPrintTable:
    HEADERS = ["Namespace", "Entries"]
    ROWS = [["queenmovie-v1", "3"], ["queenmovie-api-v1", "12"]]

    def test_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).print_table(self.HEADERS, self.ROWS)
        data = json.loads(capfd.readouterr().out)
        assert data[1] == {"Namespace": "queenmovie-api-v1", "Entries": "12"}

    def test_plain(self, capfd, non_tty):
        _plain().print_table(self.HEADERS, self.ROWS, title="ignored")
        lines = capfd.readouterr().out.splitlines()
        assert lines == ["Namespace\tEntries", "queenmovie-v1\t3", "queenmovie-api-v1\t12"]

    def test_rich(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(self.HEADERS, self.ROWS)
        out = capfd.readouterr().out
        assert "queenmovie-api-v1" in out


# ------------------------------------------------------------------ #
# Library log routing
# ------------------------------------------------------------------ #


class TestLogHandler:
    def _handlers(self):
        return [h for h in logging.getLogger("cachegate").handlers if isinstance(h, RichHandler)]

    def test_default_level_is_warning(self, non_tty):
        _plain().install_log_handler()
        [handler] = self._handlers()
        assert handler.level == logging.WARNING

    def test_verbose_shows_debug(self, non_tty):
        _plain(verbose=True).install_log_handler()
        assert self._handlers()[0].level == logging.DEBUG
        assert logging.getLogger("cachegate").isEnabledFor(logging.DEBUG)

    def test_quiet_shows_errors_only(self, non_tty):
        _plain(quiet=True).install_log_handler()
        assert self._handlers()[0].level == logging.ERROR

    def test_reinstall_replaces_handler(self, non_tty):
        _plain().install_log_handler()
        _plain(verbose=True).install_log_handler()
        assert len(self._handlers()) == 1

    def test_library_warning_reaches_stderr(self, capfd, non_tty):
        _plain().install_log_handler()
        logging.getLogger("cachegate.engine").warning("Offline and no placeholder image cached")
        captured = capfd.readouterr()
        assert "no placeholder image" in captured.err
        assert captured.out == ""


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_output_overrides(self):
        mgr = _plain()
        set_output(mgr)
        assert get_output() is mgr

    def test_convenience_functions_use_global(self, capfd, non_tty):
        set_output(_plain())
        output_module.info("hello")
        output_module.print_data("data")
        captured = capfd.readouterr()
        assert "hello" in captured.err
        assert captured.out == "data\n"
