"""Tests for PETableLogger record stamping and file output."""

import json
import logging

from pekit.logger import PETableLogger


def _flush(name):
    for handler in logging.getLogger(name).handlers:
        handler.flush()


def test_level_and_name():
    PETableLogger("log-level", log_level="debug", console_output=False)
    underlying = logging.getLogger("petable.log-level")
    assert underlying.level == logging.DEBUG
    assert underlying.propagate is False


def test_unknown_level_falls_back_to_info():
    PETableLogger("log-bogus", log_level="chatty", console_output=False)
    assert logging.getLogger("petable.log-bogus").level == logging.INFO


def test_reinstantiation_replaces_handlers():
    PETableLogger("log-dup")
    PETableLogger("log-dup")
    assert len(logging.getLogger("petable.log-dup").handlers) == 1


def test_json_lines_carry_component_and_operation(tmp_path):
    log_file = tmp_path / "logs" / "petable.jsonl"
    log = PETableLogger(
        "log-json",
        log_level="DEBUG",
        log_file=log_file,
        json_logs=True,
        console_output=False,
    )
    with log.operation("import_table"):
        log.debug("%s: %d named import(s)", "KERNEL32.dll", 1)
    log.info("done")
    _flush("petable.log-json")

    first, second = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert first["message"] == "KERNEL32.dll: 1 named import(s)"
    assert first["component"] == "log-json"
    assert first["operation"] == "import_table"
    assert first["level"] == "DEBUG"
    assert "operation" not in second


def test_nested_operations_restore_outer(tmp_path):
    log_file = tmp_path / "petable.jsonl"
    log = PETableLogger("log-nest", log_level="DEBUG", log_file=log_file,
                        json_logs=True, console_output=False)
    with log.operation("outer"):
        with log.operation("inner"):
            log.debug("a")
        log.debug("b")
    _flush("petable.log-nest")

    ops = [json.loads(line)["operation"] for line in log_file.read_text().splitlines()]
    assert ops == ["inner", "outer"]


def test_plain_file_filters_by_level(tmp_path):
    log_file = tmp_path / "petable.log"
    log = PETableLogger("log-text", log_level="INFO", log_file=log_file, console_output=False)
    log.debug("hidden")
    with log.operation("export_table"):
        log.info("shown")
    _flush("petable.log-text")

    text = log_file.read_text()
    assert "hidden" not in text
    assert "log-text:export_table shown" in text


def test_timed_logs_label(tmp_path):
    log_file = tmp_path / "timing.jsonl"
    log = PETableLogger("log-timed", log_level="DEBUG", log_file=log_file,
                        json_logs=True, console_output=False)
    with log.timed("decode sample.dll"):
        pass
    _flush("petable.log-timed")

    record = json.loads(log_file.read_text().splitlines()[0])
    assert record["message"].startswith("decode sample.dll took ")
