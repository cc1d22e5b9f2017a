"""Shared request and reply types."""

from dataclasses import dataclass
from typing import NamedTuple, Optional


class Header(NamedTuple):
    """One request header line; value is None when the line carried no value."""

    key: str
    value: Optional[str]


@dataclass(frozen=True)
class HttpRequest:
    """Represents a parsed request line and its header lines."""

    command: str
    target: str
    version: str
    headers: tuple[Header, ...] = ()

    @property
    def header_count(self) -> int:
        """Number of header lines that carried a value."""
        return sum(1 for header in self.headers if header.value is not None)

    def get_header(self, name: str) -> Optional[str]:
        """Return the first value recorded for name, ignoring case."""
        wanted = name.lower()
        for header in self.headers:
            if header.key.lower() == wanted:
                return header.value
        return None


@dataclass(frozen=True)
class HttpReply:
    """A reply written to the client as a status block followed by a body."""

    status_line: bytes
    body: bytes


FIXED_REPLY = HttpReply(status_line=b"HTTP/1.1 200 OK\r\n\r\n", body=b"Hello!\r\n")
