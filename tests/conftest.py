from __future__ import annotations

import io
from typing import List

import pytest

import exception_notifier
from exception_notifier.models import MailMessage


class RecordingMailer:
    provider = "recording"

    def __init__(self) -> None:
        self.sent: List[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        self.sent.append(message)


class FakeRequest:
    is_http = False

    def __init__(self, **fields):
        defaults = {
            "remote_addr": None,
            "remote_port": None,
            "content_type": None,
            "content_length": None,
            "character_encoding": None,
            "protocol": None,
            "scheme": None,
            "locales": None,
            "parameters": None,
            "input_stream": None,
        }
        defaults.update(fields)
        for name, value in defaults.items():
            setattr(self, name, value)


class FakeHttpRequest(FakeRequest):
    is_http = True

    def __init__(self, **fields):
        http_defaults = {
            "auth_type": None,
            "cookies": None,
            "context_path": None,
            "headers": None,
            "method": None,
            "path_info": None,
            "path_translated": None,
            "query_string": None,
            "remote_user": None,
            "requested_session_id": None,
            "request_uri": None,
            "request_url": None,
            "servlet_path": None,
        }
        http_defaults.update(fields)
        super().__init__(**http_defaults)


class BrokenStream(io.RawIOBase):
    """Returns one chunk, then fails."""

    def __init__(self, first: bytes):
        self._first = first
        self._calls = 0

    def read(self, size=-1):
        self._calls += 1
        if self._calls == 1:
            return self._first
        raise OSError("connection reset")


@pytest.fixture(autouse=True)
def _reset_notifier():
    exception_notifier.destroy()
    yield
    exception_notifier.destroy()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()
