"""
Pytest configuration for the facade_registry test suite.

Provides:
- src/ and tests/ on sys.path so ``facade_registry`` and ``facade_fixtures`` import
- a Loguru-to-caplog bridge so tests can assert on log records
- the shared facade provider set and an environment without a preset SDK level
"""

import contextlib
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
src_path = str(Path(__file__).parent.parent / "src")
sys.path.insert(0, src_path)

import pytest
from loguru import logger

import facade_fixtures
from facade_registry.gating import SDK_LEVEL_ENV_VAR


@pytest.fixture(autouse=True)
def capture_loguru_logs(caplog):
    """Route Loguru records into pytest's caplog."""

    class PropagateHandler(logging.Handler):
        def emit(self, record):
            logging.getLogger(record.name).handle(record)

    caplog.set_level(logging.DEBUG)
    handler_id = logger.add(PropagateHandler(), format="{message}", level="DEBUG")

    yield caplog

    with contextlib.suppress(ValueError):
        logger.remove(handler_id)


@pytest.fixture(autouse=True)
def clean_sdk_env(monkeypatch):
    """Tests never inherit an SDK level from the developer's shell."""
    monkeypatch.delenv(SDK_LEVEL_ENV_VAR, raising=False)


@pytest.fixture
def facade_entries():
    return list(facade_fixtures.FACADE_ENTRIES)


@pytest.fixture
def fixtures_module():
    return facade_fixtures
