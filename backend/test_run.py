#!/usr/bin/env python3
"""
Tests for the preview server runner: flags, listener binding and exit codes.
"""

import socket
from pathlib import Path

import pytest

from core.config import Settings
from core.errors import BindError
from run import bind_listener, format_url, main, parse_args, settings_from_args


@pytest.fixture
def taken_port():
    """A port with a listener already bound to it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen()
    yield sock.getsockname()[1]
    sock.close()


def test_flags_override_settings(tmp_path):
    base = Settings(PORT=8000)
    args = parse_args(["--port", "9000", "--site-dir", str(tmp_path)])

    settings = settings_from_args(args, base)
    assert settings.PORT == 9000
    assert settings.SITE_DIR == tmp_path
    assert settings.HOST == base.HOST
    # The base settings are never mutated
    assert base.PORT == 8000


def test_no_flags_keep_settings():
    base = Settings(PORT=8123, HOST="127.0.0.1")
    settings = settings_from_args(parse_args([]), base)
    assert settings.PORT == 8123
    assert settings.HOST == "127.0.0.1"


def test_bind_listener():
    sock = bind_listener(Settings(HOST="127.0.0.1", PORT=0))
    try:
        assert sock.getsockname()[1] != 0
    finally:
        sock.close()


def test_bind_listener_port_in_use(taken_port):
    with pytest.raises(BindError) as excinfo:
        bind_listener(Settings(HOST="127.0.0.1", PORT=taken_port))

    assert excinfo.value.port == taken_port
    assert str(taken_port) in str(excinfo.value)


def test_main_exits_nonzero_when_port_in_use(taken_port, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["--host", "127.0.0.1", "--port", str(taken_port), "--site-dir", str(tmp_path)])

    assert excinfo.value.code == 1


def test_main_prints_startup_line(monkeypatch, capsys, tmp_path):
    served = []

    def fake_run(self, sockets=None):
        served.append((self.config, sockets))

    monkeypatch.setattr("run.uvicorn.Server.run", fake_run)

    assert main(["--host", "127.0.0.1", "--port", "0", "--site-dir", str(tmp_path)]) == 0

    out = capsys.readouterr().out.strip().splitlines()
    assert len(out) == 1
    assert out[0].startswith(f"Serving {Path(tmp_path).resolve()} at http://127.0.0.1:")
    assert out[0].endswith("/docs/")

    config, sockets = served[0]
    assert len(sockets) == 1
    assert config.app.state.settings.site_root == tmp_path.resolve()


def test_main_interrupt_is_graceful(monkeypatch, tmp_path):
    def interrupted(self, sockets=None):
        raise KeyboardInterrupt

    monkeypatch.setattr("run.uvicorn.Server.run", interrupted)
    assert main(["--host", "127.0.0.1", "--port", "0", "--site-dir", str(tmp_path)]) == 0


def test_format_url():
    assert format_url("127.0.0.1", 8000, "/docs/") == "http://127.0.0.1:8000/docs/"
    assert format_url("::1", 8000, "/docs/") == "http://[::1]:8000/docs/"
    assert format_url("localhost", 9000) == "http://localhost:9000/"


def test_importing_main_builds_no_app():
    """Test that no app is created before the runner has configured logging."""
    import main as main_module

    assert not hasattr(main_module, "app")


def test_missing_site_warning_uses_configured_format(monkeypatch, capsys, tmp_path):
    monkeypatch.setattr("run.uvicorn.Server.run", lambda self, sockets=None: None)

    main(["--host", "127.0.0.1", "--port", "0", "--site-dir", str(tmp_path / "not-built")])

    err = capsys.readouterr().err
    assert "| WARNING | create_app | Document root" in err
    assert "does not exist yet" in err
