"""Request capabilities consumed by the serializer.

Host applications pass any object that satisfies :class:`BasicRequest`. Objects
that also satisfy :class:`HttpRequest` must set ``is_http = True``; the
serializer only reads the HTTP fields when that flag is set.
"""

from __future__ import annotations

from typing import IO, Any, Iterable, Mapping, Optional, Protocol, Sequence, Union


class BasicRequest(Protocol):
    is_http: bool

    remote_addr: Optional[str]
    remote_port: Optional[int]
    content_type: Optional[str]
    content_length: Optional[int]
    character_encoding: Optional[str]
    protocol: Optional[str]
    scheme: Optional[str]
    locales: Optional[Iterable[Any]]
    parameters: Optional[Mapping[str, Sequence[str]]]
    input_stream: Optional[IO[Any]]


class HttpRequest(BasicRequest, Protocol):
    auth_type: Optional[str]
    cookies: Optional[Iterable[Any]]
    context_path: Optional[str]
    headers: Optional[Mapping[str, Sequence[str]]]
    method: Optional[str]
    path_info: Optional[str]
    path_translated: Optional[str]
    query_string: Optional[str]
    remote_user: Optional[str]
    requested_session_id: Optional[str]
    request_uri: Optional[str]
    request_url: Optional[str]
    servlet_path: Optional[str]


AnyRequest = Union[BasicRequest, HttpRequest]


def supports_http(request: Any) -> bool:
    return bool(getattr(request, "is_http", False))
