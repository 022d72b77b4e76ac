from __future__ import annotations

import logging

from logging_config import ContextualFormatter
from models.records import Role


def _record(**extra: object) -> logging.LogRecord:
    record = logging.makeLogRecord({"msg": "Login successful", "levelno": logging.INFO, "levelname": "INFO"})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_extras_in_declared_order() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(role=Role.admin, email="a@x.com", path="/api/login", unrelated="x"))

    assert line == "Login successful | path=/api/login email=a@x.com role=admin"


def test_formatter_quotes_values_with_whitespace_and_skips_none() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(reason="disk on fire", email=None))

    assert line == "Login successful | reason='disk on fire'"


def test_formatter_without_extras_leaves_message_untouched() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s", extra_keys=["status_code"])

    assert formatter.format(_record(email="a@x.com")) == "INFO Login successful"
