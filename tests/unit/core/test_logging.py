"""Tests for structlog setup."""

import io
from contextlib import redirect_stderr, redirect_stdout

import pytest

from nexos_compat.core.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_test_logging():
    yield
    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.mark.unit
def test_logging_outlives_streams_active_at_setup(capsys: pytest.CaptureFixture[str]) -> None:
    temporary = io.StringIO()
    with redirect_stdout(temporary), redirect_stderr(temporary):
        setup_logging(log_level_name="INFO")
    temporary.close()

    get_logger("nexos_compat.tests").warning("after_stream_closed", attempt=1)

    assert "after_stream_closed" in capsys.readouterr().out


@pytest.mark.unit
def test_json_logs_render_one_object_per_line(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(json_logs=True, log_level_name="INFO")

    get_logger("nexos_compat.tests").info("json_event", model="gemini-2.5-pro")
    get_logger("nexos_compat.tests").debug("filtered_out")

    out = capsys.readouterr().out
    assert '"event": "json_event"' in out
    assert '"model": "gemini-2.5-pro"' in out
    assert "filtered_out" not in out


@pytest.mark.unit
def test_trace_level_is_accepted(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(log_level_name="trace")

    get_logger("nexos_compat.tests").debug("debug_visible")

    assert "debug_visible" in capsys.readouterr().out
