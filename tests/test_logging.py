import logging

from helpdesk.core.config import Settings
from helpdesk.core.logging import configure_logging, parse_otlp_headers


def test_parse_otlp_headers_skips_malformed_pairs():
    assert parse_otlp_headers("api-key=abc, tenant = acme ,broken,=nokey") == {"api-key": "abc", "tenant": "acme"}
    assert parse_otlp_headers(None) == {}


def test_configure_logging_applies_level():
    logger = configure_logging(Settings(log_level="debug"))

    assert logger.name == "helpdesk"
    assert logger.getEffectiveLevel() == logging.DEBUG
