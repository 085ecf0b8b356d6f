"""restfile core - config loading, environment scope, filesystem helpers."""

import os
import re
import tempfile
from pathlib import Path

import click
import yaml
from dotenv import dotenv_values

GLOBAL_DIR = Path.home() / ".restfile"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"
DEFAULT_TMP_DIR = Path(tempfile.gettempdir()) / "restfile"

CWD_CONFIG_CANDIDATES = [
    ".restfile.yaml",
    ".restfile.yml",
    "restfile.yaml",
    "restfile.yml",
]

DEFAULTS = {
    "additional_curl_options": [],
    "debug": False,
    "env_file": None,
    "tmp_dir": None,
    "timeout": 30,
}


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard — no fallthrough if missing)
      2. .restfile.yaml (variants) in CWD
      3. ~/.restfile/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file, filling in defaults for missing keys.

    Stores '_config_dir' in the returned dict so relative paths in the
    config (env_file, tmp_dir) resolve against the config file.
    """
    defaults = dict(DEFAULTS)
    if config_path is None:
        return {"defaults": defaults, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": defaults, "_config_dir": None}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    defaults.update(data.get("defaults") or {})
    options = defaults.get("additional_curl_options") or []
    if isinstance(options, str):
        options = [options]
    defaults["additional_curl_options"] = [
        resolve_value(str(o), dict(os.environ)) for o in options
    ]
    return {
        "defaults": defaults,
        "_config_dir": path.resolve().parent,
    }


def config_relative(config: dict, value: str | None) -> Path | None:
    """Resolve a path from the config relative to the config file directory."""
    if not value:
        return None
    p = Path(value).expanduser()
    config_dir = config.get("_config_dir")
    if not p.is_absolute() and config_dir:
        p = Path(config_dir) / p
    return p


def tmp_dir_for(config: dict) -> Path:
    """Directory holding headers.txt, body.txt, ft.txt and request.txt."""
    configured = config.get("defaults", {}).get("tmp_dir")
    if configured:
        return config_relative(config, resolve_value(configured, dict(os.environ)))
    return DEFAULT_TMP_DIR


def load_env(env_file: str | Path | None, base_dir: str | Path = ".") -> dict[str, str]:
    """Load .env file and merge with os.environ.

    Returns combined dict with .env values taking precedence over os.environ
    for explicit vars, but os.environ available as fallback.
    """
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir) / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value: str | None, env: dict[str, str]) -> str | None:
    """Resolve $VAR and ${VAR} references in a config string value."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, os.environ.get(var_name, m.group(0)))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


# ── Filesystem ───────────────────────────────────────────────────────────


def read_file(path: str | Path) -> str | None:
    """Return the file contents, or None when it cannot be read."""
    try:
        with open(path) as f:
            return f.read()
    except OSError:
        return None


def write_file(path: str | Path, contents: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents)


def delete_file(path: str | Path) -> None:
    Path(path).unlink(missing_ok=True)


# ── Warnings ─────────────────────────────────────────────────────────────


def echo_warning(message: str, level: str = "warn") -> None:
    """Default warning sink: report on stderr and carry on."""
    click.echo(f"{level.upper()}: {message}", err=True)
