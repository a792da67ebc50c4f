"""
Shared fixtures: pipeline settings, a throwaway ebook and a scriptable SMTP fake.
"""

import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from skindle.pipeline import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "smtp_server": "smtp.example.com",
        "smtp_username": "reader@example.com",
        "smtp_password": "hunter2",
        "from_address": "Reader <reader@example.com>",
        "to_address": "reader_kindle@kindle.com",
    }
    values.update(overrides)
    return Settings(**values)


class FakeSMTP:
    """Records the session the transmitter drives; raises whatever `failures` maps a step to."""

    def __init__(self, host: str, port: int, kwargs: dict, factory: "FakeSMTPFactory"):
        self.host = host
        self.port = port
        self.kwargs = kwargs
        self.factory = factory
        self.calls: List[str] = []
        self.credentials = None
        self.sent = []

    def _step(self, name: str) -> None:
        self.calls.append(name)
        if name in self.factory.failures:
            raise self.factory.failures[name]

    def ehlo(self):
        self._step("ehlo")

    def starttls(self, context=None):
        self.tls_context = context
        self._step("starttls")

    def login(self, username, password):
        self.credentials = (username, password)
        self._step("login")

    def send_message(self, msg, from_addr=None, to_addrs=None):
        self._step("send_message")
        if self.factory.on_send is not None:
            self.factory.on_send()
        self.sent.append((msg, from_addr, to_addrs))
        return dict(self.factory.refused)

    def quit(self):
        self._step("quit")

    def close(self):
        self.calls.append("close")


class FakeSMTPFactory:
    def __init__(self):
        self.sessions: List[FakeSMTP] = []
        self.connect_error: Optional[Exception] = None
        self.failures: Dict[str, Exception] = {}
        self.refused: Dict[str, tuple] = {}
        self.on_send: Optional[Callable[[], None]] = None

    def __call__(self, host, port, **kwargs):
        if self.connect_error is not None:
            raise self.connect_error
        session = FakeSMTP(host, port, kwargs, self)
        self.sessions.append(session)
        return session

    @property
    def sent(self):
        return [item for session in self.sessions for item in session.sent]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def smtp_factory() -> FakeSMTPFactory:
    return FakeSMTPFactory()


@pytest.fixture
def ebook(tmp_path: Path) -> Path:
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4\n" + bytes(range(256)) * 4)
    return path


@pytest.fixture
def temp_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point tempfile.gettempdir() at an isolated directory"""
    directory = tmp_path / "tmp"
    directory.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(directory))
    return directory


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings
