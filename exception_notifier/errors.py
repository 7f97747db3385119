from __future__ import annotations


class NotifierError(Exception):
    """Base class for notifier errors."""


class ConfigurationError(NotifierError):
    """Raised when the notifier cannot be configured."""


class NotConfiguredError(NotifierError):
    """Raised when the notifier is used before it has been configured."""


class ValidationError(NotifierError):
    """Raised when handle_exception receives invalid arguments."""


class TransportError(NotifierError):
    """Raised when mail sending fails."""
