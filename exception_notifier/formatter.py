from __future__ import annotations

import re
import traceback
from typing import List, Optional

from .models import ExceptionReport, RequestSnapshot

RULE = "-------------------------------"
REQUEST_BANNER = f"Request:\n{RULE}\n\n"
EXCEPTION_BANNER = f"Exception:\n{RULE}\n\n"

# Header values may not contain line breaks
_LINE_BREAKS = re.compile(r"[\r\n]+")


def exception_type_name(exception: BaseException) -> str:
    return type(exception).__name__


def build_report_subject(subject_prefix: str, message: Optional[str], exception: BaseException) -> str:
    rendered = "null" if message is None else message
    subject = f"[{subject_prefix}] {exception_type_name(exception)}: {rendered}"
    return _LINE_BREAKS.sub(" ", subject)


def build_report_body(exception: BaseException, snapshot: Optional[RequestSnapshot] = None) -> str:
    parts = []
    if snapshot is not None:
        parts.append(REQUEST_BANNER)
        parts.append(snapshot.render())
        parts.append("\n\n")
    parts.append(EXCEPTION_BANNER)
    parts.append(format_exception_chain(exception))
    return "".join(parts)


def compose_report(
    subject_prefix: str,
    message: Optional[str],
    exception: BaseException,
    snapshot: Optional[RequestSnapshot] = None,
) -> ExceptionReport:
    return ExceptionReport(
        subject=build_report_subject(subject_prefix, message, exception),
        body=build_report_body(exception, snapshot),
    )


def exception_chain(exception: BaseException) -> List[BaseException]:
    """Return the exception followed by its causes, outermost first."""

    chain: List[BaseException] = []
    seen = set()
    current: Optional[BaseException] = exception
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return chain


def format_exception_chain(exception: BaseException) -> str:
    blocks = []
    for idx, exc in enumerate(exception_chain(exception)):
        header = f"{exception_type_name(exc)}: {exc}"
        if idx:
            header = f"Caused by: {header}"
        lines = [header + "\n"]
        if exc.__traceback__ is not None:
            lines.extend(traceback.format_list(traceback.extract_tb(exc.__traceback__)))
        blocks.append("".join(lines))
    return "".join(blocks)
