"""restfile executor - run a built curl command and read the captured response."""

import json
import re
import subprocess
import time
from pathlib import Path
from typing import Any

from restfile.command import BODY_FILE, HEADERS_FILE, Command

_STATUS_RE = re.compile(r"^HTTP/\S+\s+(\d{3})")


class RequestResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.headers: dict[str, str] = {}
        self.body: Any = None  # parsed JSON or raw text
        self.elapsed_ms: float = 0
        self.error: str | None = None
        self.raw_text: str = ""


def parse_header_dump(text: str) -> tuple[int, dict[str, str]]:
    """Parse curl's -D output into (status_code, headers).

    Redirects and 100-continue produce several header blocks; the last
    one describes the final response.
    """
    status_code = 0
    headers: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        m = _STATUS_RE.match(line)
        if m:
            status_code = int(m.group(1))
            headers = {}
        elif ":" in line:
            k, v = line.split(":", 1)
            headers[k.strip()] = v.strip()
    return status_code, headers


def execute_command(command: Command, timeout: int = 30) -> RequestResult:
    """Run the command and collect the response from the capture files.

    Never raises - always returns RequestResult with error field set.
    """
    result = RequestResult()
    tmp_dir = Path(command.tmp_dir or ".")

    try:
        start = time.monotonic()
        proc = subprocess.run(
            command.args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        result.elapsed_ms = (time.monotonic() - start) * 1000
    except subprocess.TimeoutExpired:
        result.error = f"Request timed out after {timeout}s"
        return result
    except FileNotFoundError:
        result.error = f"Command not found: {command.args[0]}"
        return result
    except OSError as e:
        result.error = f"Unexpected error: {e}"
        return result

    if proc.returncode != 0:
        detail = proc.stderr.strip() or f"exit code {proc.returncode}"
        result.error = f"Request failed: {detail}"
        return result

    headers_path = tmp_dir / HEADERS_FILE
    body_path = tmp_dir / BODY_FILE
    if headers_path.exists():
        result.status_code, result.headers = parse_header_dump(headers_path.read_text())
    if body_path.exists():
        result.raw_text = body_path.read_text()

    try:
        result.body = json.loads(result.raw_text)
    except (json.JSONDecodeError, ValueError):
        result.body = result.raw_text

    return result


def run_client_pipe(target: str, body: str, timeout: int = 30) -> tuple[str, str | None]:
    """Feed the raw response body to the http-client-pipe shell command.

    The target runs through the shell, so redirections and pipes work.
    Returns (stdout, error) where error is None on success.
    """
    try:
        proc = subprocess.run(
            target,
            shell=True,
            input=body,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return "", f"Pipe '{target}' timed out after {timeout}s"
    except (OSError, ValueError) as e:
        return "", f"Pipe '{target}' failed: {e}"
    if proc.returncode != 0:
        detail = proc.stderr.strip() or f"exit code {proc.returncode}"
        return proc.stdout, f"Pipe '{target}' failed: {detail}"
    return proc.stdout, None
