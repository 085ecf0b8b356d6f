"""Shared fixtures for restfile tests."""

import json

import pytest
from click.testing import CliRunner

from restfile import core
from restfile.executor import RequestResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def global_restfile_dir(tmp_path, monkeypatch):
    """Override the global ~/.restfile directory to a temp location."""
    fake_global = tmp_path / "fake_home" / ".restfile"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    return fake_global


@pytest.fixture(autouse=True)
def isolate_tmp_dir(tmp_path, monkeypatch):
    """Keep headers.txt/body.txt/ft.txt out of the real temp directory."""
    tmp_dir = tmp_path / "restfile_tmp"
    monkeypatch.setattr(core, "DEFAULT_TMP_DIR", tmp_dir)
    return tmp_dir


@pytest.fixture
def warn_sink():
    """Warning sink that records messages; pass ``warn_sink.warn`` as warn."""

    class _Sink(list):
        def warn(self, message, level="warn"):
            self.append(message)

    return _Sink()


def make_request_result(
    status_code=200,
    body=None,
    headers=None,
    elapsed_ms=42.0,
    error=None,
    raw_text="",
):
    """Factory for mock RequestResult objects."""
    r = RequestResult()
    r.status_code = status_code
    r.headers = headers or {}
    r.body = body
    r.elapsed_ms = elapsed_ms
    r.error = error
    r.raw_text = raw_text or (
        json.dumps(body) if isinstance(body, dict | list) else str(body or "")
    )
    return r
