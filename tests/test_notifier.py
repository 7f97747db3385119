from __future__ import annotations

import threading

import pytest

from conftest import FakeHttpRequest, RecordingMailer

import exception_notifier
from exception_notifier import (
    ConfigurationError,
    ExceptionNotifier,
    NotConfiguredError,
    TransportError,
    ValidationError,
)
from exception_notifier.mailer import SMTPMailer
from exception_notifier.models import NotifierConfiguration


class DivideByZeroException(Exception):
    pass


SOURCE = {
    "mail.host": "smtp.example.com",
    "mail.port": "25",
    "mail.username": "u",
    "mail.password": "p",
    "subject.prefix": "TEST",
    "to.list": "a@b.com,c@d.com",
    "from": "noreply@x.com",
}


def test_instance_before_configure_fails():
    with pytest.raises(NotConfiguredError):
        exception_notifier.instance()


def test_configure_from_source():
    exception_notifier.configure(SOURCE)
    config = exception_notifier.instance().config
    assert config.recipients == ("a@b.com", "c@d.com")
    assert config.subject_prefix == "TEST"
    assert config.from_address == "noreply@x.com"
    assert isinstance(config.mailer, SMTPMailer)
    assert (config.mailer.host, config.mailer.port) == ("smtp.example.com", 25)


def test_configure_from_properties_file(tmp_path):
    path = tmp_path / "notifier.properties"
    path.write_text("\n".join(f"{k}={v}" for k, v in SOURCE.items()), encoding="utf-8")
    exception_notifier.configure(str(path))
    assert exception_notifier.instance().config.recipients == ("a@b.com", "c@d.com")


def test_missing_port_names_key():
    source = dict(SOURCE)
    del source["mail.port"]
    with pytest.raises(ConfigurationError, match="mail.port"):
        exception_notifier.configure(source)
    with pytest.raises(NotConfiguredError):
        exception_notifier.instance()


def test_instance_is_stable_until_destroy(mailer):
    exception_notifier.configure_with(mailer, "TEST", ["a@b.com"], "f@x.com")
    first = exception_notifier.instance()
    assert exception_notifier.instance() is first

    exception_notifier.destroy()
    with pytest.raises(NotConfiguredError):
        exception_notifier.instance()


def test_second_configure_fails():
    exception_notifier.configure_with(RecordingMailer(), "ONE", ["a@b.com"], "f@x.com")
    with pytest.raises(ConfigurationError, match="already been configured"):
        exception_notifier.configure_with(RecordingMailer(), "TWO", ["c@d.com"], "g@x.com")
    with pytest.raises(ConfigurationError):
        exception_notifier.configure(SOURCE)
    assert exception_notifier.instance().config.subject_prefix == "ONE"


def test_destroy_then_configure_succeeds(mailer):
    exception_notifier.configure_with(mailer, "", [], "")
    exception_notifier.destroy()
    exception_notifier.destroy()
    exception_notifier.configure_with(mailer, "", [], "")
    assert exception_notifier.instance().config.recipients == ()


def test_configure_with_rejects_none():
    with pytest.raises(ConfigurationError, match="from_address"):
        exception_notifier.configure_with(RecordingMailer(), "TEST", ["a@b.com"], None)


def test_handle_exception_without_request(mailer):
    exception_notifier.configure_with(mailer, "TEST", ["a@b.com"], "f@x.com")
    exception_notifier.instance().handle_exception("boom-msg", DivideByZeroException("boom"), None)

    assert len(mailer.sent) == 1
    message = mailer.sent[0]
    assert message.subject == "[TEST] DivideByZeroException: boom-msg"
    assert message.to == ("a@b.com",)
    assert message.from_address == "f@x.com"
    assert "Exception:" in message.text
    assert "boom" in message.text
    assert "Request:" not in message.text


def test_handle_exception_with_request(mailer):
    exception_notifier.configure_with(mailer, "TEST", ["a@b.com"], "f@x.com")
    request = FakeHttpRequest(remote_addr="10.0.0.1", method="GET")
    exception_notifier.instance().handle_exception("msg", ValueError("bad"), request)

    text = mailer.sent[0].text
    assert text.startswith("Request:")
    assert "remote address: 10.0.0.1\n" in text
    assert "method: GET\n" in text
    assert "body: \n" in text
    assert text.index("Request:") < text.index("Exception:")


@pytest.mark.parametrize("request_obj", [None, FakeHttpRequest()])
def test_handle_exception_requires_exception(mailer, request_obj):
    exception_notifier.configure_with(mailer, "TEST", ["a@b.com"], "f@x.com")
    with pytest.raises(ValidationError):
        exception_notifier.instance().handle_exception("msg", None, request_obj)
    assert mailer.sent == []


def test_transport_error_propagates():
    class FailingMailer:
        provider = "failing"

        def send(self, message):
            raise TransportError("smtp down")

    notifier = ExceptionNotifier(
        NotifierConfiguration(
            mailer=FailingMailer(),
            subject_prefix="TEST",
            recipients=("a@b.com",),
            from_address="f@x.com",
        )
    )
    with pytest.raises(TransportError, match="smtp down"):
        notifier.handle_exception("msg", ValueError("bad"))


def test_configure_from_source_removes_duplicate_recipients():
    exception_notifier.configure(dict(SOURCE, **{"to.list": "a@b.com, a@b.com, c@d.com"}))
    assert exception_notifier.instance().config.recipients == ("a@b.com", "c@d.com")


@pytest.mark.parametrize("recipients", ["a@b.com", b"a@b.com"])
def test_configure_with_rejects_single_string_recipients(recipients):
    with pytest.raises(ConfigurationError, match="recipients"):
        exception_notifier.configure_with(RecordingMailer(), "TEST", recipients, "f@x.com")
    with pytest.raises(NotConfiguredError):
        exception_notifier.instance()


def test_concurrent_configure_installs_exactly_one():
    workers = 16
    barrier = threading.Barrier(workers)
    outcomes = []
    outcomes_lock = threading.Lock()

    def attempt(idx):
        barrier.wait()
        try:
            exception_notifier.configure_with(RecordingMailer(), f"T{idx}", ["a@b.com"], "f@x.com")
            outcome = "ok"
        except ConfigurationError:
            outcome = "rejected"
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=attempt, args=(idx,)) for idx in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert outcomes.count("ok") == 1
    assert outcomes.count("rejected") == workers - 1
    assert exception_notifier.instance().config.subject_prefix.startswith("T")
