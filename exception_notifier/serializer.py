from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from .models import RequestSnapshot
from .request import AnyRequest, supports_http

logger = logging.getLogger(__name__)

NULL = "null"

# Bytes read from the request body per chunk
BODY_CHUNK_SIZE = 1024


def serialize_request(request: AnyRequest, *, max_body_bytes: Optional[int] = None) -> RequestSnapshot:
    snapshot = RequestSnapshot()
    snapshot.add("remote address", format_value(_get(request, "remote_addr")))
    snapshot.add("remote port", format_value(_get(request, "remote_port")))
    snapshot.add("content type", format_value(_get(request, "content_type")))
    snapshot.add("content length", format_value(_get(request, "content_length")))
    snapshot.add("character encoding", format_value(_get(request, "character_encoding")))
    snapshot.add("protocol", format_value(_get(request, "protocol")))
    snapshot.add("scheme", format_value(_get(request, "scheme")))
    snapshot.add("locales", join_lines(_get(request, "locales")))
    snapshot.add("parameters", format_parameters(_get(request, "parameters")))
    snapshot.add("body", read_body(request, max_bytes=max_body_bytes))

    if not supports_http(request):
        return snapshot

    snapshot.add("auth", format_value(_get(request, "auth_type")))
    snapshot.add("cookies", join_lines(_get(request, "cookies")))
    snapshot.add("context path", format_value(_get(request, "context_path")))
    headers = _get(request, "headers")
    if headers is not None:
        snapshot.add("headers", format_headers(headers))
    snapshot.add("method", format_value(_get(request, "method")))
    snapshot.add("path info", format_value(_get(request, "path_info")))
    snapshot.add("path translated", format_value(_get(request, "path_translated")))
    snapshot.add("query string", format_value(_get(request, "query_string")))
    snapshot.add("remote user", format_value(_get(request, "remote_user")))
    snapshot.add("requested session id", format_value(_get(request, "requested_session_id")))
    snapshot.add("request uri", format_value(_get(request, "request_uri")))
    snapshot.add("request url", format_value(_get(request, "request_url")))
    snapshot.add("servlet path", format_value(_get(request, "servlet_path")))
    return snapshot


def _get(request: Any, name: str) -> Any:
    return getattr(request, name, None)


def format_value(value: Any) -> str:
    if value is None:
        return NULL
    return str(value)


def join_lines(values: Optional[Iterable[Any]]) -> str:
    if values is None:
        return NULL
    return "\n".join(str(value) for value in values)


def format_parameters(parameters: Optional[Mapping[str, Sequence[Any]]]) -> str:
    if parameters is None:
        return NULL
    entries = []
    for key, values in parameters.items():
        if isinstance(values, (str, bytes)):
            values = [values]
        rendered = ", ".join(format_value(v) for v in values or ())
        entries.append(f"{key} = {{{rendered}}}")
    return "\n".join(entries)


def format_headers(headers: Mapping[str, Sequence[Any]]) -> str:
    lines = []
    for name, values in headers.items():
        lines.append(f"\t{name}:\n")
        if values is None:
            continue
        if isinstance(values, (str, bytes)):
            values = [values]
        for value in values:
            lines.append(f"\t\t{value}\n")
    return "".join(lines)


def read_body(request: Any, *, max_bytes: Optional[int] = None) -> str:
    """Drain the request's input stream into a string.

    Read failures are logged and whatever was read before the failure is
    returned. Without ``max_bytes`` the whole stream is buffered in memory.
    """

    stream = _get(request, "input_stream")
    if stream is None:
        return ""

    encoding = _get(request, "character_encoding") or "utf-8"
    chunks = []
    total = 0
    try:
        while max_bytes is None or total < max_bytes:
            size = BODY_CHUNK_SIZE if max_bytes is None else min(BODY_CHUNK_SIZE, max_bytes - total)
            chunk = stream.read(size)
            if not chunk:
                break
            chunks.append(chunk)
            total += len(chunk)
    except (OSError, ValueError) as exc:
        logger.warning("Failed to read request body after %s chunk(s): %s", len(chunks), exc)

    if chunks and isinstance(chunks[0], str):
        return "".join(chunks)
    return _decode(b"".join(chunks), encoding)


def _decode(data: bytes, encoding: str) -> str:
    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")
