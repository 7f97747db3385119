"""Process-wide exception notifier.

Configure once at start-up, then report from anywhere::

    exception_notifier.configure("notifier.properties")
    ...
    except Exception as exc:
        exception_notifier.instance().handle_exception("Checkout failed", exc, request)

The singleton is guarded by a lock, so concurrent ``configure`` calls cannot
both succeed. ``ExceptionNotifier`` can also be built directly and injected
where a global is unwanted.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Optional

from .config import ConfigSource, load_settings
from .errors import ConfigurationError, NotConfiguredError, ValidationError
from .formatter import compose_report
from .mailer import MailSender, build_mailer
from .models import ExceptionReport, MailMessage, NotifierConfiguration
from .serializer import serialize_request

logger = logging.getLogger(__name__)

_INSTANCE: Optional["ExceptionNotifier"] = None
_LOCK = threading.Lock()


class ExceptionNotifier:
    def __init__(self, config: NotifierConfiguration):
        self.config = config

    def compose(self, message: Optional[str], exception: BaseException, request: Any = None) -> ExceptionReport:
        if exception is None:
            raise ValidationError("Exception must not be None!")
        snapshot = None
        if request is not None:
            snapshot = serialize_request(request, max_body_bytes=self.config.max_body_bytes)
        return compose_report(self.config.subject_prefix, message, exception, snapshot)

    def dispatch(self, report: ExceptionReport) -> None:
        mail = MailMessage(
            to=self.config.recipients,
            from_address=self.config.from_address,
            subject=report.subject,
            text=report.body,
        )
        self.config.mailer.send(mail)

    def handle_exception(self, message: Optional[str], exception: BaseException, request: Any = None) -> None:
        """Compose a report for ``exception`` and send it synchronously.

        Whatever the mail capability raises propagates to the caller unchanged.
        """

        report = self.compose(message, exception, request)
        self.dispatch(report)
        logger.info("Exception report sent: %s", report.subject)


def configure(source: ConfigSource | None) -> None:
    """Configure from a mapping, a properties file path or a Settings object."""

    settings = load_settings(source)
    config = NotifierConfiguration(
        mailer=build_mailer(settings),
        subject_prefix=settings.subject_prefix,
        recipients=tuple(dict.fromkeys(settings.recipients)),
        from_address=settings.from_address,
        max_body_bytes=settings.body_max_bytes,
    )
    _install(config)


def configure_with(
    mailer: MailSender,
    subject_prefix: str,
    recipients: Iterable[str],
    from_address: str,
    *,
    max_body_bytes: Optional[int] = None,
) -> None:
    for name, value in (
        ("mailer", mailer),
        ("subject_prefix", subject_prefix),
        ("recipients", recipients),
        ("from_address", from_address),
    ):
        if value is None:
            raise ConfigurationError(f"{name} must not be None!")
    if isinstance(recipients, (str, bytes)):
        raise ConfigurationError("recipients must be a collection of addresses, not a single string!")
    config = NotifierConfiguration(
        mailer=mailer,
        subject_prefix=subject_prefix,
        recipients=tuple(dict.fromkeys(recipients)),
        from_address=from_address,
        max_body_bytes=max_body_bytes,
    )
    _install(config)


def _install(config: NotifierConfiguration) -> None:
    global _INSTANCE
    with _LOCK:
        if _INSTANCE is not None:
            raise ConfigurationError("Exception Notifier has already been configured!")
        _INSTANCE = ExceptionNotifier(config)
    logger.info(
        "Exception notifier configured: provider=%s recipients=%s",
        getattr(config.mailer, "provider", type(config.mailer).__name__),
        len(config.recipients),
    )


def instance() -> ExceptionNotifier:
    with _LOCK:
        current = _INSTANCE
    if current is None:
        raise NotConfiguredError("Exception Notifier must be configured before it can be used!")
    return current


def destroy() -> None:
    global _INSTANCE
    with _LOCK:
        _INSTANCE = None
    logger.info("Exception notifier destroyed")
