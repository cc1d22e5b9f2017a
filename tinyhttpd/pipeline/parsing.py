"""Request tokenizer turning a raw request buffer into an HttpRequest."""

import re

from tinyhttpd.bootstrap.config import MAX_HEADERS
from tinyhttpd.domain.http_types import Header, HttpRequest

_HEADER_SEPARATOR = re.compile(r"[: ]")


class RequestParseError(ValueError):
    """Raised when a request buffer cannot be tokenized."""


def parse_request_line(request_line: str) -> tuple[str, str, str]:
    """Split ``COMMAND SP TARGET SP VERSION`` into its three tokens.

    Only the space character separates tokens; runs of spaces count as one
    separator and the version runs to the end of the line.
    """
    command, _, rest = request_line.lstrip(" ").partition(" ")
    target, _, rest = rest.lstrip(" ").partition(" ")
    version = rest.strip(" \r")
    if not (command and target and version):
        raise RequestParseError("Invalid request line")
    return command, target, version


def parse_header_line(line: str) -> Header:
    """Split a header line on its first colon or space."""
    stripped = line.strip()
    separator = _HEADER_SEPARATOR.search(stripped)
    if separator is None:
        return Header(stripped, None)
    key = stripped[: separator.start()]
    value = stripped[separator.end() :].strip()
    return Header(key, value or None)


def parse_request(raw: bytes) -> HttpRequest:
    """Tokenize a raw request into an HttpRequest.

    The first line must hold three space separated tokens. Each following
    line, up to the first blank line, becomes a header.
    """
    try:
        text = raw.decode()
    except UnicodeDecodeError as exc:
        raise RequestParseError("Request is not valid UTF-8") from exc

    lines = text.split("\n")
    command, target, version = parse_request_line(lines[0].rstrip("\r"))

    headers: list[Header] = []
    for line in lines[1:]:
        if not line.strip():
            break
        if len(headers) >= MAX_HEADERS:
            raise RequestParseError("Too many header lines")
        headers.append(parse_header_line(line))
    return HttpRequest(command, target, version, tuple(headers))
