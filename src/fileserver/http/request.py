"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses the head of an HTTP/1.x request (request line + header fields) into
an HTTPRequest. The body is NOT part of the parsed bytes: it stays on the
socket and is exposed as a lazy BodyReader (see body.py), so a PUT of a
multi-gigabyte file never sits in memory.

=============================================================================
REQUEST HEAD ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        REQUEST HEAD                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    PUT /docs/notes%20v2.txt?x=1 HTTP/1.1\r\n                        │
    │    ─┬─ ────────────┬─────────── ────┬───                            │
    │     │              │                │                                │
    │   Method     Request target      Version                             │
    │   (token)    (kept raw; the      (1.0 or 1.1)                        │
    │               resolver decodes)                                      │
    │                                                                      │
    │    Host: localhost:8000\r\n                                         │
    │    Content-Length: 11\r\n         ← body framing, validated here    │
    │    Expect: 100-continue\r\n                                         │
    │    \r\n                           ← end of head                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The method is any RFC 9110 token, not a fixed list: the dispatcher decides
what is supported, so "PATCH" and even "BREW" parse fine and get a 405.

The target is kept exactly as sent. Percent-decoding and confinement to the
root directory happen in one place, the path resolver.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..errors import HTTPParseError
from ..resolver import target_path
from .body import BodyReader


SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method: Request method, case-sensitive ("GET", "PATCH", ...).
        url: Raw request target ("/a%20b.txt?x=1").
        version: "HTTP/1.0" or "HTTP/1.1".
        headers: Header fields with lowercase names.
        body: Lazy body stream (empty for bodiless requests).
        client_address: (ip, port) of the client.
    """

    method: str
    url: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: BodyReader = field(default_factory=BodyReader.empty, repr=False)
    client_address: Tuple[str, int] = ("", 0)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def path(self) -> str:
        """Path component of the target, still percent-encoded."""
        return target_path(self.url)

    @property
    def query(self) -> str:
        _, _, query = self.url.partition("?")
        return query.split("#", 1)[0]

    @property
    def content_length(self) -> int:
        """
        Declared body length, 0 when absent.

        The parser has already rejected malformed values.
        """
        return int(self.headers.get("content-length", "0"))

    @property
    def is_chunked(self) -> bool:
        encodings = self.headers.get("transfer-encoding", "")
        return encodings.lower().split(",")[-1].strip() == "chunked"

    @property
    def expects_continue(self) -> bool:
        """True if the client waits for "100 Continue" before the body."""
        return (
            self.version == "HTTP/1.1"
            and self.headers.get("expect", "").lower() == "100-continue"
        )

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection may be reused after this exchange.

            HTTP/1.1:  open unless "Connection: close"
            HTTP/1.0:  closed unless "Connection: keep-alive"
        """
        tokens = {
            token.strip().lower()
            for token in self.headers.get("connection", "").split(",")
        }
        if self.version == "HTTP/1.1":
            return "close" not in tokens
        return "keep-alive" in tokens


class RequestParser:
    """
    Parses request heads into HTTPRequest objects.

    Usage:
        parser = RequestParser()
        request = parser.parse(head_bytes, client_address=("127.0.0.1", 5000))
        request.body = BodyReader(conn.recv_some, request.content_length, ...)
    """

    # token = 1*tchar (RFC 9110 §5.6.2)
    REQUEST_LINE_PATTERN = re.compile(
        r"^([!#$%&'*+\-.^_`|~0-9A-Za-z]+) (\S+) (HTTP/\d\.\d)$"
    )
    HEADER_PATTERN = re.compile(r"^([^:\s]+):[ \t]*(.*?)[ \t]*$")

    def parse(
        self,
        head: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse a request head.

        Args:
            head: Bytes up to (not including) the blank line ending the head.
            client_address: Client's (ip, port).

        Returns:
            HTTPRequest with an empty body; the caller attaches the stream.

        Raises:
            HTTPParseError: 400 for malformed input, 505 for an unsupported
                version.
        """
        text = head.decode("utf-8", errors="replace")
        lines = text.split("\r\n")

        # Tolerate stray CRLFs before the request line (RFC 9112 §2.2)
        while lines and not lines[0]:
            lines.pop(0)
        if not lines:
            raise HTTPParseError("Empty request")

        method, url, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])
        self._validate_framing(headers)

        return HTTPRequest(
            method=method,
            url=url,
            version=version,
            headers=headers,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, url, version = match.groups()
        if version not in SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}", status=505
            )
        return method, url, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated fields are comma-joined; obsolete folded continuation lines
        are appended to the previous field.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is None:
                    raise HTTPParseError("Continuation line before any header")
                headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.groups()
            name = name.lower()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers

    def _validate_framing(self, headers: Dict[str, str]):
        """
        Reject ambiguous or invalid body framing (RFC 9112 §6.3).

        Both Content-Length and Transfer-Encoding at once is a classic
        request-smuggling vector, so it is refused outright.
        """
        has_length = "content-length" in headers
        has_encoding = "transfer-encoding" in headers

        if has_length and has_encoding:
            raise HTTPParseError(
                "Both Content-Length and Transfer-Encoding present"
            )

        if has_encoding:
            last = headers["transfer-encoding"].lower().split(",")[-1].strip()
            if last != "chunked":
                raise HTTPParseError(
                    f"Unsupported Transfer-Encoding: {headers['transfer-encoding']}"
                )

        if has_length:
            # Identical repeated values ("5, 5") are allowed
            values = {v.strip() for v in headers["content-length"].split(",")}
            if len(values) != 1:
                raise HTTPParseError("Conflicting Content-Length values")
            value = values.pop()
            if not (value.isascii() and value.isdigit()):
                raise HTTPParseError(f"Invalid Content-Length: {value!r}")
            headers["content-length"] = value
