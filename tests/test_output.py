"""Tests for terminal rendering of request results."""

from restfile.output import format_output
from tests.conftest import make_request_result


class TestFormatOutput:
    def test_default_layout(self):
        out = format_output(make_request_result(body={"id": 1}), filetype="json")
        assert out.splitlines()[:3] == ["STATUS: 200", "TIME: 42ms", "BODY:"]
        assert '"id": 1' in out

    def test_json_pretty_printed(self):
        out = format_output(make_request_result(body={"a": {"b": 1}}))
        assert '{\n  "a": {\n    "b": 1\n  }\n}' in out

    def test_raw_body_only(self):
        out = format_output(make_request_result(body="plain text"), raw=True)
        assert out == "plain text"

    def test_verbose_headers_and_filetype(self):
        result = make_request_result(body="x", headers={"Content-Type": "text/html"})
        out = format_output(result, filetype="html", verbose=True)
        assert "FILETYPE: html" in out
        assert "HEADERS:" in out
        assert "  Content-Type: text/html" in out

    def test_error(self):
        out = format_output(make_request_result(error="boom"))
        assert out == "ERROR: boom"

    def test_no_body(self):
        out = format_output(make_request_result(body=None))
        assert "BODY:" not in out
