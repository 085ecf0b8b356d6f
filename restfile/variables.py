"""restfile variables - {{placeholder}} substitution over layered scopes."""

import datetime
import random
import re
import time as _time
import uuid
from collections.abc import Callable, Mapping
from urllib.parse import quote, unquote

from restfile.core import echo_warning

PLACEHOLDER_RE = re.compile(r"\{\{(.*?)\}\}")
VARIABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def resolve_dynamic(name: str) -> str | None:
    """Generate the value of a $-prefixed dynamic variable.

    Supported:
    - {{$uuid}}          -> random UUID v4
    - {{$timestamp}}     -> unix timestamp seconds
    - {{$timestamp_ms}}  -> unix timestamp milliseconds
    - {{$isoTimestamp}}  -> ISO 8601 UTC datetime
    - {{$date}}          -> ISO date (YYYY-MM-DD)
    - {{$randomInt}}     -> random integer 0..1000
    """
    if name == "$uuid":
        return str(uuid.uuid4())
    if name == "$timestamp":
        return str(int(_time.time()))
    if name == "$timestamp_ms":
        return str(int(_time.time() * 1000))
    if name == "$isoTimestamp":
        return datetime.datetime.now(datetime.timezone.utc).isoformat()
    if name == "$date":
        return datetime.date.today().isoformat()
    if name == "$randomInt":
        return str(random.randint(0, 1000))
    return None


def url_encode(text: str) -> str:
    return quote(text, safe="")


def url_decode(text: str) -> str:
    return unquote(text)


class VariableResolver:
    """Substitutes {{name}} placeholders from the document, env and dynamic scopes.

    Substitution is a single left-to-right pass: text produced by a
    substitution is never scanned again. Unknown names are left in place
    and reported through ``warn``.
    """

    def __init__(
        self,
        variables: Mapping[str, str] | None = None,
        env: Mapping[str, str] | None = None,
        dynamic: Callable[[str], str | None] = resolve_dynamic,
        warn: Callable[..., None] = echo_warning,
    ):
        self.variables = variables if variables is not None else {}
        self.env = env if env is not None else {}
        self.dynamic = dynamic
        self.warn = warn

    def lookup(self, name: str) -> str | None:
        if name.startswith("$"):
            return self.dynamic(name) or ""
        if name in self.variables:
            return self.variables[name]
        if name in self.env:
            return self.env[name]
        return None

    def resolve(self, template: str | None) -> str | None:
        if template is None:
            return None

        def _replace(m: re.Match) -> str:
            name = m.group(1).strip()
            value = self.lookup(name)
            if value is None:
                self.warn(
                    f"The variable '{name}' was not found in the document "
                    "or in the environment. Returning the string as received ...",
                    "warn",
                )
                return m.group(0)
            return str(value).replace('"', "")

        return PLACEHOLDER_RE.sub(_replace, template)
