"""
Logging tests

Tests LOG() gating by the connected state's verbosity, the disconnect
helper, and the debug_mode override.
"""

import pytest
from loguru import logger

from inkbridge.config import AppSettings
from inkbridge.lib import log
from inkbridge.lib.log import LOG, state_connectToLogger, state_disconnectFromLogger
from inkbridge.models import ProgramState


@pytest.fixture
def messages():
    """Collect emitted messages; leave the context disconnected afterwards"""
    collected = []
    handler_id = logger.add(lambda message: collected.append(message.record["message"]), level="DEBUG")
    yield collected
    logger.remove(handler_id)
    state_disconnectFromLogger()


class TestLog:
    """Test LOG() verbosity gating"""

    def test_silent_without_state(self, messages):
        LOG("nobody listening", level=1)
        assert messages == []

    def test_state_verbosity_gates_levels(self, messages):
        state_connectToLogger(ProgramState(verbosity=2))
        LOG("step", level=2)
        LOG("trace detail", level=3)
        assert messages == ["step"]

    def test_disconnect_silences(self, messages):
        state_connectToLogger(ProgramState(verbosity=3))
        state_disconnectFromLogger()
        LOG("after disconnect", level=1)
        assert messages == []


class TestDebugMode:
    """Test the debug_mode setting"""

    def test_trace_without_state(self, messages, monkeypatch):
        monkeypatch.setattr(log, "appsettings", AppSettings(debug_mode=True))
        LOG("dropped attribute", level=3)
        assert messages == ["dropped attribute"]

    def test_overrides_low_verbosity(self, messages, monkeypatch):
        monkeypatch.setattr(log, "appsettings", AppSettings(debug_mode=True))
        state_connectToLogger(ProgramState(verbosity=0))
        LOG("visible anyway", level=3)
        assert messages == ["visible anyway"]

    def test_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("INKBRIDGE_DEBUG_MODE", "true")
        assert AppSettings().debug_mode is True
