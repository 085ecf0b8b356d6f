"""restfile parser - request file segmentation, extraction and lookup.

A request file is split into blocks on lines containing only ``###``.
Each block is scanned line by line through a small state machine:

    AWAITING_REQUEST_LINE --request line--> READING_HEADERS
    READING_HEADERS       --blank line-->   READING_BODY

Comments (``#``) and ``@name = value`` definitions are honoured in every
state. Definitions land in the document variable scope, which is shared by
all blocks in definition order.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from restfile import core
from restfile.core import echo_warning
from restfile.variables import VariableResolver, resolve_dynamic

SEPARATOR = "###"
MULTIPART = "multipart/form-data"

_VARIABLE_START_RE = re.compile(r"^@[A-Za-z0-9_]")
_VARIABLE_RE = re.compile(r"^@([A-Za-z0-9_]+)\s*=\s*(.*)$")
_HEADER_RE = re.compile(r"^([^:]+):\s*(.*)$")


@dataclass(frozen=True)
class Block:
    text: str
    start_line: int
    end_line: int

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")


@dataclass(frozen=True)
class Request:
    method: str
    url: str
    http_version: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    start_line: int = 1
    end_line: int = 1
    body_path: str | None = None


@dataclass
class Document:
    variables: dict[str, str]
    requests: list[Request]


class State(enum.Enum):
    AWAITING_REQUEST_LINE = "awaiting_request_line"
    READING_HEADERS = "reading_headers"
    READING_BODY = "reading_body"


class LineKind(enum.Enum):
    COMMENT = "comment"
    BLANK = "blank"
    VARIABLE = "variable"
    BODY = "body"
    HEADER = "header"
    REQUEST_LINE = "request_line"
    IGNORED = "ignored"


# ── Segmentation ─────────────────────────────────────────────────────────


def segment(text: str) -> list[Block]:
    """Split document text into blocks on ``###`` separator lines.

    Line numbers are 1-based. Each separator consumes exactly one line, so
    block i starts two lines after block i-1 ends.
    """
    blocks: list[Block] = []
    current: list[str] = []
    start = 1
    for line in text.split("\n"):
        if line.strip() == SEPARATOR:
            blocks.append(_make_block(current, start))
            start = blocks[-1].end_line + 2
            current = []
        else:
            current.append(line)
    blocks.append(_make_block(current, start))
    return blocks


def _make_block(lines: list[str], start: int) -> Block:
    # Back-to-back separators leave a block owning no lines (end < start)
    return Block(text="\n".join(lines), start_line=start, end_line=start + len(lines) - 1)


# ── Line classification ──────────────────────────────────────────────────


def classify_line(line: str, state: State) -> LineKind:
    """Classify one trimmed line given the current scan state.

    Rules are checked in priority order; the first match wins.
    """
    if line.startswith("#"):
        return LineKind.COMMENT
    if line == "" and state is not State.READING_BODY:
        return LineKind.BLANK
    if _VARIABLE_START_RE.match(line):
        return LineKind.VARIABLE
    if state is State.READING_BODY:
        return LineKind.BODY if line else LineKind.IGNORED
    if state is State.READING_HEADERS:
        return LineKind.HEADER if _HEADER_RE.match(line) else LineKind.IGNORED
    return LineKind.REQUEST_LINE


def next_state(state: State, kind: LineKind) -> State:
    if kind is LineKind.REQUEST_LINE:
        return State.READING_HEADERS
    if kind is LineKind.BLANK and state is State.READING_HEADERS:
        return State.READING_BODY
    return state


def parse_variable(line: str) -> tuple[str, str] | None:
    """Split ``@name = value`` into (name, value); None when malformed."""
    m = _VARIABLE_RE.match(line)
    if not m:
        return None
    return m.group(1), m.group(2)


def parse_header(line: str) -> tuple[str, str]:
    m = _HEADER_RE.match(line)
    return m.group(1).strip().lower(), m.group(2)


def parse_request_line(line: str) -> tuple[str, str, str | None]:
    """Split ``METHOD URL [HTTP/x]`` on single spaces."""
    parts = line.split(" ")
    method = parts[0]
    url = parts[1] if len(parts) > 1 else ""
    http_version = None
    if len(parts) > 2:
        http_version = parts[2].removeprefix("HTTP/")
    return method, url, http_version


# ── Body materialization ─────────────────────────────────────────────────


def is_multipart(content_type: str | None) -> bool:
    return bool(content_type) and content_type.startswith(MULTIPART)


def append_body_line(
    body: str,
    line: str,
    content_type: str | None,
    read_file: Callable[[str], str | None] = core.read_file,
    warn: Callable[..., None] = echo_warning,
) -> str:
    """Append one body line's contribution to the accumulated body.

    ``< path`` includes a file verbatim, except in multipart bodies where
    the line is kept as literal text. Multipart lines are CRLF terminated;
    other lines are concatenated with no separator.
    """
    multipart = is_multipart(content_type)
    if line.startswith("<") and not multipart:
        file_path = line[1:].strip()
        contents = read_file(file_path)
        if contents is None:
            warn(f"The file '{file_path}' was not found. Skipping ...", "warn")
            return body
        return body + contents
    if line.startswith("<"):
        return body + line
    if multipart:
        return body + line + "\r\n"
    return body + line


# ── Extraction ───────────────────────────────────────────────────────────


def extract_request(
    block: Block,
    resolver: VariableResolver,
    read_file: Callable[[str], str | None] = core.read_file,
    warn: Callable[..., None] = echo_warning,
) -> Request | None:
    """Scan one block into a Request.

    Variable definitions are stored into ``resolver.variables`` as they are
    met. Returns None when the block has no request line.
    """
    state = State.AWAITING_REQUEST_LINE
    method = url = http_version = None
    headers: dict[str, str] = {}
    body: str | None = None

    for raw in block.lines:
        line = raw.strip()
        kind = classify_line(line, state)

        if kind is LineKind.VARIABLE:
            parsed = parse_variable(line)
            if parsed:
                name, value = parsed
                resolver.variables[name] = resolver.resolve(value)
        elif kind is LineKind.BODY:
            body = append_body_line(
                body or "",
                line,
                headers.get("content-type"),
                read_file=read_file,
                warn=warn,
            )
        elif kind is LineKind.HEADER:
            key, value = parse_header(line)
            headers[key] = value
        elif kind is LineKind.REQUEST_LINE:
            method, url, http_version = parse_request_line(line)

        state = next_state(state, kind)

    if method is None:
        return None
    if body is not None:
        body = body.strip()
    return Request(
        method=method,
        url=url,
        http_version=http_version,
        headers=headers,
        body=body,
        start_line=block.start_line,
        end_line=block.end_line,
    )


def _relative_reader(
    read_file: Callable[[str], str | None],
    base_dir: str | Path | None,
) -> Callable[[str], str | None]:
    """Wrap read_file so relative include paths resolve against base_dir."""
    if base_dir is None:
        return read_file

    def _read(path: str) -> str | None:
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = Path(base_dir) / p
        return read_file(str(p))

    return _read


def parse_document(
    text: str,
    env: dict[str, str] | None = None,
    base_dir: str | Path | None = None,
    read_file: Callable[[str], str | None] = core.read_file,
    warn: Callable[..., None] = echo_warning,
    dynamic: Callable[[str], str | None] = resolve_dynamic,
) -> Document:
    """Parse a whole request file into its variable scope and requests.

    The variable scope is built from scratch on every call.
    """
    variables: dict[str, str] = {}
    resolver = VariableResolver(variables, env, dynamic=dynamic, warn=warn)
    reader = _relative_reader(read_file, base_dir)
    requests: list[Request] = []
    for block in segment(text):
        request = extract_request(block, resolver, read_file=reader, warn=warn)
        if request is not None:
            requests.append(request)
    return Document(variables=variables, requests=requests)


# ── Lookup ───────────────────────────────────────────────────────────────


def _index_at(requests: list[Request], line: int) -> int | None:
    for i, request in enumerate(requests):
        if request.start_line <= line <= request.end_line:
            return i
    return None


def request_at_cursor(requests: list[Request], line: int) -> Request | None:
    """Return the request whose line range contains ``line``."""
    i = _index_at(requests, line)
    return None if i is None else requests[i]


def previous_request(requests: list[Request], line: int) -> Request | None:
    i = _index_at(requests, line)
    if i is None or i == 0:
        return None
    return requests[i - 1]


def next_request(requests: list[Request], line: int) -> Request | None:
    i = _index_at(requests, line)
    if i is None or i == len(requests) - 1:
        return None
    return requests[i + 1]
