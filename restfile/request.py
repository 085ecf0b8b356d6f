"""restfile request - turn a parsed Request into a fully resolved one."""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from restfile import core
from restfile.parser import Request
from restfile.variables import VariableResolver, url_decode, url_encode

GRAPHQL_SUFFIXES = (".graphql", ".gql")
PSEUDO_HEADER_PREFIX = "http-client-"
PIPE_HEADER = "http-client-pipe"

FILETYPES = {
    "application/json": "json",
    "application/xml": "xml",
    "text/html": "html",
}


@dataclass
class ResolvedRequest:
    method: str
    url: str
    http_version: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    response_filetype: str = "text"
    pipe_target: str | None = None
    graphql_query: str | None = None
    start_line: int = 1
    end_line: int = 1


def infer_filetype(accept: str | None) -> str:
    """Map the Accept header onto a display filetype."""
    return FILETYPES.get(accept or "", "text")


def encode_url_params(url: str) -> str:
    """Percent-encode every query parameter key and value."""
    base, sep, query = url.partition("?")
    if not sep or not query:
        return url
    params = []
    for part in query.split("&"):
        key, eq, value = part.partition("=")
        if eq:
            params.append(f"{url_encode(key)}={url_encode(value)}")
        else:
            params.append(url_encode(key))
    return base + "?" + "&".join(params)


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def resolve_request(
    request: Request,
    resolver: VariableResolver,
    read_file: Callable[[str], str | None] = core.read_file,
) -> ResolvedRequest:
    """Substitute variables in url, headers and body and apply any body file.

    A ``body_path`` on the request replaces the inline body. GraphQL files
    (.graphql/.gql) are wrapped as ``{"query": ...}`` for POST and moved to
    a ``query`` URL parameter for every other method.
    """
    url = resolver.resolve(request.url or "")
    url = encode_url_params(url).replace('"', "")
    headers = {k: resolver.resolve(v) for k, v in request.headers.items()}
    body = resolver.resolve(request.body)
    graphql_query = None

    if request.body_path:
        contents = read_file(request.body_path)
        if contents is None:
            resolver.warn(
                f"The file '{request.body_path}' was not found. Skipping ...",
                "warn",
            )
        elif Path(request.body_path).suffix in GRAPHQL_SUFFIXES:
            if request.method == "POST":
                # Embedded as-is: quotes inside the query are not escaped
                body = '{"query": "' + contents + '"}'
            else:
                encoded = url_encode(collapse_whitespace(contents))
                graphql_query = url_decode(encoded)
                url += ("&" if "?" in url else "?") + "query=" + encoded
        else:
            body = contents

    pipe_target = headers.get(PIPE_HEADER)
    return ResolvedRequest(
        method=request.method,
        url=url,
        http_version=request.http_version,
        headers=headers,
        body=body,
        response_filetype=infer_filetype(headers.get("accept")),
        pipe_target=pipe_target,
        graphql_query=graphql_query,
        start_line=request.start_line,
        end_line=request.end_line,
    )
