from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Tuple

if TYPE_CHECKING:
    from .mailer import MailSender


@dataclass(frozen=True)
class MailMessage:
    to: Tuple[str, ...]
    from_address: str
    subject: str
    text: str


@dataclass(frozen=True)
class NotifierConfiguration:
    mailer: "MailSender"
    subject_prefix: str
    recipients: Tuple[str, ...]
    from_address: str
    max_body_bytes: int | None = None


@dataclass
class RequestSnapshot:
    """Ordered (label, value) pairs captured from a request.

    Values are already rendered; the headers block is stored pre-formatted
    under the ``headers`` label because it spans several indented lines.
    """

    fields: List[Tuple[str, str]] = field(default_factory=list)

    def add(self, label: str, value: str) -> None:
        self.fields.append((label, value))

    def get(self, label: str) -> str | None:
        for key, value in self.fields:
            if key == label:
                return value
        return None

    def labels(self) -> List[str]:
        return [key for key, _ in self.fields]

    def render(self) -> str:
        lines = []
        for label, value in self.fields:
            if label == "headers":
                lines.append(f"headers:\n{value}")
            else:
                lines.append(f"{label}: {value}\n")
        return "".join(lines)


@dataclass(frozen=True)
class ExceptionReport:
    subject: str
    body: str
