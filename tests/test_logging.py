"""Logging configuration tests."""

import logging
from unittest.mock import patch

from uvicorn.logging import DefaultFormatter

from studioauth.api.middleware import RequestContextFilter, request_id_var
from studioauth.logging import get_uvicorn_log_config


def make_config(is_development: bool) -> dict:
    with patch("studioauth.logging.settings") as mock_settings:
        mock_settings.is_development = is_development
        mock_settings.log_level = "INFO"
        return get_uvicorn_log_config()


def make_record(message: str) -> logging.LogRecord:
    return logging.LogRecord("studioauth", logging.INFO, __file__, 1, message, None, None)


def test_production_config_stamps_request_id():
    config = make_config(is_development=False)

    assert config["filters"]["request_context"]["()"] == (
        "studioauth.api.middleware.RequestContextFilter"
    )
    assert config["handlers"]["default"]["filters"] == ["request_context"]
    assert config["root"]["handlers"] == ["default"]

    formatter = DefaultFormatter(config["formatters"]["default"]["fmt"], use_colors=False)
    record = make_record("Verified email")
    token = request_id_var.set("req-42")
    try:
        RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(token)

    assert "[req-42] Verified email" in formatter.format(record)


def test_record_outside_request_gets_placeholder():
    config = make_config(is_development=False)
    formatter = DefaultFormatter(config["formatters"]["default"]["fmt"], use_colors=False)

    record = make_record("Startup")
    RequestContextFilter().filter(record)

    assert "[-] Startup" in formatter.format(record)


def test_development_format_is_short():
    config = make_config(is_development=True)
    assert "request_id" not in config["formatters"]["default"]["fmt"]
