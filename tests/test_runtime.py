import asyncio
import logging
import os
import signal

import pytest

from geyser_tools.runtime import create_shutdown, setup_tracing


@pytest.fixture
def clean_root():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


def _emit_debug_and_info():
    log = logging.getLogger("geyser_tools.test")
    log.debug("debug line from runtime")
    log.info("info line from runtime")


def test_level_from_env(clean_root, monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    setup_tracing()
    _emit_debug_and_info()
    out = capsys.readouterr().out
    assert "debug line from runtime" in out
    assert "info line from runtime" in out
    assert clean_root.getEffectiveLevel() == logging.DEBUG


def test_default_level(clean_root, monkeypatch, capsys):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    setup_tracing()
    _emit_debug_and_info()
    out = capsys.readouterr().out
    assert "info line from runtime" in out
    assert "debug line from runtime" not in out
    assert clean_root.getEffectiveLevel() == logging.INFO


def test_invalid_level_falls_back(clean_root, monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "loud")
    setup_tracing()
    _emit_debug_and_info()
    out = capsys.readouterr().out
    assert "info line from runtime" in out
    assert "debug line from runtime" not in out
    assert clean_root.getEffectiveLevel() == logging.INFO


def test_setup_twice_fails(clean_root, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    setup_tracing()
    with pytest.raises(RuntimeError):
        setup_tracing()


def test_messages_reach_stdout(clean_root, monkeypatch, capsys):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    setup_tracing()
    logging.getLogger("geyser_tools.test").info("hello from runtime")
    assert "hello from runtime" in capsys.readouterr().out


def test_create_shutdown_needs_loop():
    with pytest.raises(RuntimeError):
        create_shutdown()


@pytest.mark.asyncio
async def test_shutdown_on_sigterm():
    shutdown = create_shutdown()
    assert not shutdown.done()
    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(shutdown, timeout=5)
    assert shutdown.done()
    assert signal.getsignal(signal.SIGTERM) == signal.SIG_DFL


@pytest.mark.asyncio
async def test_shutdown_on_sigint():
    shutdown = create_shutdown()
    os.kill(os.getpid(), signal.SIGINT)
    await asyncio.wait_for(shutdown, timeout=5)
    assert shutdown.done()