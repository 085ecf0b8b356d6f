"""restfile command - build the curl invocation for a resolved request."""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from restfile import __version__, core
from restfile.request import PIPE_HEADER, PSEUDO_HEADER_PREFIX, ResolvedRequest

CURL = "curl"
USER_AGENT = f"restfile/{__version__}"

HEADERS_FILE = "headers.txt"
BODY_FILE = "body.txt"
FILETYPE_FILE = "ft.txt"
REQUEST_FILE = "request.txt"

_JSON_CONTENT_RE = re.compile(r"application/[^/]*json")


@dataclass
class Command:
    args: list[str]
    response_filetype: str = "text"
    pipe_target: str | None = None
    tmp_dir: Path | None = None

    @property
    def command_line(self) -> str:
        return " ".join(self.args)


def body_flag(content_type: str | None) -> str | None:
    """Pick the curl data flag for a content type, or None for no body."""
    if content_type is None:
        return None
    if content_type == "text/plain":
        return "--data-raw"
    if _JSON_CONTENT_RE.search(content_type):
        return "--data"
    if content_type == "application/x-www-form-urlencoded":
        return "--data"
    if content_type.startswith("multipart/form-data"):
        return "--data-binary"
    return None


def build_command(
    resolved: ResolvedRequest,
    tmp_dir: str | Path,
    additional_curl_options: Iterable[str] = (),
    user_agent: str = USER_AGENT,
) -> Command:
    """Assemble the curl argument vector. Does not touch the filesystem."""
    tmp_dir = Path(tmp_dir)
    args = [
        CURL,
        "-s",
        "-D",
        str(tmp_dir / HEADERS_FILE),
        "-o",
        str(tmp_dir / BODY_FILE),
        "-X",
        resolved.method,
    ]

    flag = body_flag(resolved.headers.get("content-type"))
    if flag and resolved.body is not None:
        args += [flag, resolved.body]

    pipe_target = None
    for key, value in resolved.headers.items():
        if key.startswith(PSEUDO_HEADER_PREFIX):
            if key == PIPE_HEADER:
                pipe_target = value
            continue
        args += ["-H", f"{key}:{value}"]

    if resolved.http_version is not None:
        args.append("--http" + resolved.http_version)

    args += ["-A", user_agent]
    args.extend(additional_curl_options)
    args.append(resolved.url)

    return Command(
        args=args,
        response_filetype=resolved.response_filetype,
        pipe_target=pipe_target,
        tmp_dir=tmp_dir,
    )


def write_side_files(command: Command, tmp_dir: str | Path, debug: bool = False) -> None:
    """Reset the capture files and record the filetype (and command when debugging)."""
    tmp_dir = Path(tmp_dir)
    for name in (HEADERS_FILE, BODY_FILE, FILETYPE_FILE):
        core.delete_file(tmp_dir / name)
    core.write_file(tmp_dir / HEADERS_FILE, "")
    core.write_file(tmp_dir / BODY_FILE, "")
    core.write_file(tmp_dir / FILETYPE_FILE, command.response_filetype)
    if debug:
        core.write_file(tmp_dir / REQUEST_FILE, command.command_line)
