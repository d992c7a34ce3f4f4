import json
import logging

import structlog

from mpcecdsa.logging import configure_logging


def test_configure_logging_emits_json(capsys):
    configure_logging("debug")
    try:
        structlog.get_logger("mpcecdsa.test").info("share_sent", party=1, name="a")
        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "share_sent"
        assert record["level"] == "info"
        assert record["party"] == 1
        assert record["component"] == "mpcecdsa.test"
        assert "ts" in record
    finally:
        structlog.reset_defaults()
        logging.basicConfig(force=True)


def test_level_filtering(capsys):
    configure_logging("warning")
    try:
        structlog.get_logger("mpcecdsa.test").info("hidden")
        structlog.get_logger("mpcecdsa.test").warning("shown")
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out
    finally:
        structlog.reset_defaults()
        logging.basicConfig(force=True)
