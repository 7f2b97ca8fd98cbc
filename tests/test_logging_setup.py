import io
import json
import logging

from config_client.common.logging_setup import get_service_logger, set_log_stream


class _CaptureHandler(logging.StreamHandler):
    pass


def test_child_records_are_emitted_once():
    parent = get_service_logger("config")
    child = get_service_logger("config.listeners")
    parent_stream, child_stream = io.StringIO(), io.StringIO()
    parent.logger.handlers[0].setStream(parent_stream)
    child.logger.handlers[0].setStream(child_stream)

    child.info("Application is ready.")

    assert child.logger.propagate is False
    assert parent_stream.getvalue() == ""
    lines = child_stream.getvalue().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["service"] == "config.listeners"


def test_set_log_stream_redirects_only_plain_stream_handlers():
    logger = get_service_logger("config.store")
    extra = _CaptureHandler(io.StringIO())
    logger.logger.addHandler(extra)
    target = io.StringIO()

    try:
        set_log_stream(target)
        logger.warning("redirected")
    finally:
        logger.logger.removeHandler(extra)

    assert "redirected" in target.getvalue()
    assert "redirected" in extra.stream.getvalue()
