from __future__ import annotations

import logging
from http.cookies import CookieError, SimpleCookie
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional
from urllib.parse import parse_qs, quote
from wsgiref.util import request_uri

from . import notifier as notifier_module

logger = logging.getLogger(__name__)

# Cookie names checked, in order, for the requested session id
SESSION_COOKIE_NAMES = ("sessionid", "session", "JSESSIONID")


class LimitedStream:
    """Read-only view of ``wsgi.input`` that stops at ``CONTENT_LENGTH``.

    Reading a server socket file past the declared length blocks until the
    client disconnects.
    """

    def __init__(self, stream: Any, limit: int):
        self._stream = stream
        self.remaining = limit

    def read(self, size: int = -1) -> bytes:
        if self.remaining <= 0:
            return b""
        if size is None or size < 0 or size > self.remaining:
            size = self.remaining
        data = self._stream.read(size)
        self.remaining -= len(data)
        return data


class WsgiRequest:
    """Request capability over a PEP 3333 environ."""

    is_http = True

    def __init__(self, environ: Mapping[str, Any]):
        self.environ = environ

    def _str(self, key: str) -> Optional[str]:
        value = self.environ.get(key)
        if value is None or value == "":
            return None
        return str(value)

    def _int(self, key: str) -> Optional[int]:
        value = self.environ.get(key)
        try:
            return int(value) if value not in (None, "") else None
        except (TypeError, ValueError):
            return None

    @property
    def remote_addr(self) -> Optional[str]:
        return self._str("REMOTE_ADDR")

    @property
    def remote_port(self) -> Optional[int]:
        return self._int("REMOTE_PORT")

    @property
    def content_type(self) -> Optional[str]:
        return self._str("CONTENT_TYPE")

    @property
    def content_length(self) -> Optional[int]:
        return self._int("CONTENT_LENGTH")

    @property
    def character_encoding(self) -> Optional[str]:
        content_type = self.content_type or ""
        for param in content_type.split(";")[1:]:
            name, _, value = param.partition("=")
            if name.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return None

    @property
    def protocol(self) -> Optional[str]:
        return self._str("SERVER_PROTOCOL")

    @property
    def scheme(self) -> Optional[str]:
        return self._str("wsgi.url_scheme")

    @property
    def locales(self) -> List[str]:
        header = self._str("HTTP_ACCEPT_LANGUAGE")
        if header is None:
            return []
        return [part.split(";")[0].strip() for part in header.split(",") if part.split(";")[0].strip()]

    @property
    def parameters(self) -> Dict[str, List[str]]:
        return parse_qs(self.environ.get("QUERY_STRING", ""), keep_blank_values=True)

    @property
    def input_stream(self) -> Optional["LimitedStream"]:
        stream = self.environ.get("wsgi.input")
        length = self.content_length
        if stream is None or not length or length < 0:
            return None
        return LimitedStream(stream, length)

    @property
    def auth_type(self) -> Optional[str]:
        return self._str("AUTH_TYPE")

    @property
    def cookies(self) -> Optional[List[str]]:
        header = self._str("HTTP_COOKIE")
        if header is None:
            return None
        jar = SimpleCookie()
        try:
            jar.load(header)
        except CookieError:
            return [header]
        return [f"{name}={morsel.value}" for name, morsel in jar.items()]

    @property
    def context_path(self) -> str:
        return self.environ.get("SCRIPT_NAME", "")

    @property
    def headers(self) -> Dict[str, List[str]]:
        headers: Dict[str, List[str]] = {}
        for key, value in self.environ.items():
            if key.startswith("HTTP_"):
                name = key[5:]
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
                name = key
            else:
                continue
            name = "-".join(part.capitalize() for part in name.split("_"))
            headers.setdefault(name, []).append(str(value))
        return headers

    @property
    def method(self) -> Optional[str]:
        return self._str("REQUEST_METHOD")

    @property
    def path_info(self) -> Optional[str]:
        return self._str("PATH_INFO")

    @property
    def path_translated(self) -> Optional[str]:
        return self._str("PATH_TRANSLATED")

    @property
    def query_string(self) -> Optional[str]:
        return self._str("QUERY_STRING")

    @property
    def remote_user(self) -> Optional[str]:
        return self._str("REMOTE_USER")

    @property
    def requested_session_id(self) -> Optional[str]:
        for cookie in self.cookies or []:
            name, _, value = cookie.partition("=")
            if name in SESSION_COOKIE_NAMES:
                return value
        return None

    @property
    def request_uri(self) -> str:
        path = self.environ.get("SCRIPT_NAME", "") + self.environ.get("PATH_INFO", "")
        return quote(path) or "/"

    @property
    def request_url(self) -> Optional[str]:
        try:
            return request_uri(dict(self.environ), include_query=False)
        except KeyError:
            return None

    @property
    def servlet_path(self) -> str:
        return ""


class ExceptionNotifierMiddleware:
    """Report exceptions escaping a WSGI application, then re-raise them."""

    def __init__(
        self,
        app: Callable[..., Iterable[bytes]],
        notifier: Optional[notifier_module.ExceptionNotifier] = None,
        message: str = "Unhandled exception in WSGI application",
    ):
        self.app = app
        self.notifier = notifier
        self.message = message

    def __call__(self, environ: Dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        try:
            result = self.app(environ, start_response)
        except Exception as exc:
            self._notify(exc, environ)
            raise
        return _ReportingIterable(result, lambda exc: self._notify(exc, environ))

    def _notify(self, exc: Exception, environ: Dict[str, Any]) -> None:
        try:
            current = self.notifier or notifier_module.instance()
            current.handle_exception(self.message, exc, WsgiRequest(environ))
        except Exception:  # noqa: BLE001
            logger.exception("Failed to send exception notification")


class _ReportingIterable:
    """Response iterable that reports errors raised while it is consumed."""

    def __init__(self, result: Iterable[bytes], report: Callable[[Exception], None]):
        self._result = result
        self._report = report

    def __iter__(self) -> Iterator[bytes]:
        try:
            yield from self._result
        except Exception as exc:
            self._report(exc)
            raise

    def close(self) -> None:
        close = getattr(self._result, "close", None)
        if close is not None:
            close()
