"""Email reports for application exceptions."""

from .errors import ConfigurationError, NotConfiguredError, NotifierError, TransportError, ValidationError
from .notifier import ExceptionNotifier, configure, configure_with, destroy, instance

__all__ = [
    "config",
    "models",
    "mailer",
    "request",
    "serializer",
    "formatter",
    "notifier",
    "wsgi",
    "ConfigurationError",
    "ExceptionNotifier",
    "NotConfiguredError",
    "NotifierError",
    "TransportError",
    "ValidationError",
    "configure",
    "configure_with",
    "destroy",
    "instance",
]
