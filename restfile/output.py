"""restfile output - render a request result for the terminal."""

import json


def format_output(
    result,  # RequestResult from executor.py
    filetype: str = "text",
    verbose: bool = False,
    raw: bool = False,
) -> str:
    """Format the request result for CLI output.

    Bodies that parsed as JSON are pretty printed. --verbose adds the
    inferred response filetype and the response headers.
    """
    if result.error:
        return f"ERROR: {result.error}"

    body = result.body
    if isinstance(body, dict | list):
        rendered = json.dumps(body, indent=2)
    else:
        rendered = str(body) if body is not None else ""

    if raw:
        return rendered

    lines: list[str] = [
        f"STATUS: {result.status_code}",
        f"TIME: {int(result.elapsed_ms)}ms",
    ]

    if verbose:
        lines.append(f"FILETYPE: {filetype}")
    if verbose and result.headers:
        lines.append("HEADERS:")
        for key, value in result.headers.items():
            lines.append(f"  {key}: {value}")

    if body is not None:
        lines.append("BODY:")
        lines.append(rendered)

    return "\n".join(lines)
