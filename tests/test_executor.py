"""Tests for running curl and reading back the captured response."""

import shlex
import subprocess
from unittest.mock import patch

from restfile.command import BODY_FILE, HEADERS_FILE, Command
from restfile.executor import execute_command, parse_header_dump, run_client_pipe


def _command(tmp_path):
    return Command(args=["curl", "-s", "http://h"], tmp_dir=tmp_path)


def _completed(returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)


class TestParseHeaderDump:
    def test_single_block(self):
        status, headers = parse_header_dump(
            "HTTP/1.1 201 Created\r\nContent-Type: application/json\r\nX-Id: 7\r\n\r\n",
        )
        assert status == 201
        assert headers == {"Content-Type": "application/json", "X-Id": "7"}

    def test_last_block_wins(self):
        status, headers = parse_header_dump(
            "HTTP/1.1 301 Moved\r\nLocation: /b\r\n\r\nHTTP/2 200\r\nServer: x\r\n\r\n",
        )
        assert status == 200
        assert headers == {"Server": "x"}

    def test_empty(self):
        assert parse_header_dump("") == (0, {})


class TestExecuteCommand:
    def test_reads_capture_files(self, tmp_path):
        def fake_run(args, **kwargs):
            (tmp_path / HEADERS_FILE).write_text("HTTP/1.1 200 OK\r\nA: b\r\n")
            (tmp_path / BODY_FILE).write_text('{"ok": true}')
            return _completed()

        with patch("restfile.executor.subprocess.run", side_effect=fake_run) as run:
            result = execute_command(_command(tmp_path), timeout=5)

        assert result.error is None
        assert result.status_code == 200
        assert result.headers == {"A": "b"}
        assert result.body == {"ok": True}
        assert result.raw_text == '{"ok": true}'
        assert run.call_args.args[0] == ["curl", "-s", "http://h"]
        assert run.call_args.kwargs["timeout"] == 5

    def test_text_body(self, tmp_path):
        def fake_run(args, **kwargs):
            (tmp_path / BODY_FILE).write_text("<html></html>")
            return _completed()

        with patch("restfile.executor.subprocess.run", side_effect=fake_run):
            result = execute_command(_command(tmp_path))
        assert result.body == "<html></html>"

    def test_curl_missing(self, tmp_path):
        with patch("restfile.executor.subprocess.run", side_effect=FileNotFoundError):
            result = execute_command(_command(tmp_path))
        assert result.error == "Command not found: curl"

    def test_timeout(self, tmp_path):
        err = subprocess.TimeoutExpired(cmd="curl", timeout=3)
        with patch("restfile.executor.subprocess.run", side_effect=err):
            result = execute_command(_command(tmp_path), timeout=3)
        assert result.error == "Request timed out after 3s"

    def test_non_zero_exit(self, tmp_path):
        with patch(
            "restfile.executor.subprocess.run",
            return_value=_completed(7, "curl: (7) Failed to connect"),
        ):
            result = execute_command(_command(tmp_path))
        assert result.error == "Request failed: curl: (7) Failed to connect"


class TestClientPipe:
    def test_redirect_writes_body(self, tmp_path):
        out = tmp_path / "token.txt"
        stdout, error = run_client_pipe(f"cat > {shlex.quote(str(out))}", '{"a": 1}')
        assert error is None
        assert stdout == ""
        assert out.read_text() == '{"a": 1}'

    def test_shell_pipeline_output_returned(self):
        stdout, error = run_client_pipe("cat | tr a-z A-Z", "token")
        assert error is None
        assert stdout == "TOKEN"

    def test_failure_reported(self):
        _, error = run_client_pipe("echo broken >&2; exit 3", "")
        assert error == "Pipe 'echo broken >&2; exit 3' failed: broken"
