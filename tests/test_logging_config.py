import logging

from logging_config import ContextualFormatter
from models.records import DataMode


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.broadcast", logging.INFO, __file__, 1, "Broadcast snapshot", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_keys_are_appended() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(tick=3, source=DataMode.real, record_index=None, elapsed_ms=12.5))

    assert line == "Broadcast snapshot | tick=3 source=real elapsed_ms=12.5"


def test_values_with_spaces_are_quoted() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", context_keys=["reason"])

    line = formatter.format(_record(reason="no records loaded", status=200))

    assert line == 'Broadcast snapshot | reason="no records loaded"'


def test_plain_message_without_context() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    assert formatter.format(_record()) == "INFO Broadcast snapshot"


def test_record_count_is_a_context_key() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(source="sample", record_count=10))

    assert line == "Broadcast snapshot | source=sample record_count=10"
