"""Root conftest: test environment, stdlib-routed structlog, clean log context per test."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

# BINGO_OPERATOR_PASSWORD and friends for settings constructed without arguments
load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")


def _configure_structlog_for_caplog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


_configure_structlog_for_caplog()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Player ids bound by the router must not leak into the next test."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
