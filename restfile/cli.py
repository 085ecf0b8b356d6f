"""restfile CLI - run the HTTP request under the cursor of a request file."""

import dataclasses
import shlex
import sys
from pathlib import Path

import click
import yaml

TOOL_HELP = """\
restfile — run HTTP requests described in plain-text request files.

Parses FILE, picks the request at --line and runs it through curl.

\b
REQUEST FILE FORMAT
───────────────────
  Requests are separated by a line containing only ###.

  \b
  @host = https://api.example.com
  @token = {{API_TOKEN}}

  \b
  ###
  # comment lines start with #
  POST {{host}}/users HTTP/1.1
  Content-Type: application/json
  Authorization: Bearer {{token}}

  \b
  {"name": "test"}

  \b
  ###
  GET {{host}}/users?q=a b

  The first line of a block is the request line (METHOD URL [HTTP/x]),
  followed by headers. A blank line starts the body.

\b
VARIABLES
─────────
  @name = value      Define a document variable (may use earlier ones)
  {{name}}           Document variable, then environment variable
  {{$uuid}}          Dynamic: $uuid, $timestamp, $timestamp_ms,
                     $isoTimestamp, $date, $randomInt

  Unknown variables are left as-is and reported on stderr.

\b
BODY
────
  < ./payload.json   Include a file (not in multipart bodies)
  --body-file F      Use F as the body; .graphql/.gql files become
                     {"query": ...} for POST or ?query= for other methods

\b
PSEUDO-HEADERS
──────────────
  http-client-pipe: jq .token > token.txt
                     Pipe the response body into a shell command.
  Any http-client-* header is never sent.

\b
CONFIG FILE FORMAT (.restfile.yaml)
───────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .restfile.yaml / .restfile.yml / restfile.yaml / restfile.yml in CWD
    3. ~/.restfile/config.yaml (global)

  \b
  defaults:
    env_file: .env                  # extra environment variables
    additional_curl_options:        # appended to every curl call
      - --insecure
    debug: false                    # write the command to request.txt
    tmp_dir: /tmp/restfile          # headers.txt, body.txt, ft.txt
    timeout: 30                     # seconds
"""


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument("file", type=click.Path(dir_okay=False))
@click.option(
    "-l",
    "--line",
    type=int,
    default=1,
    show_default=True,
    help="Cursor line (1-based). The request containing it is run.",
)
@click.option(
    "--next",
    "pick_next",
    is_flag=True,
    default=False,
    help="Run the request after the one at --line.",
)
@click.option(
    "--previous",
    "pick_previous",
    is_flag=True,
    default=False,
    help="Run the request before the one at --line.",
)
@click.option(
    "--list",
    "show_list",
    is_flag=True,
    default=False,
    help="List the requests in FILE with their line ranges.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Print the curl command instead of running it.",
)
@click.option(
    "--body-file",
    default=None,
    help="Use this file as the request body (.graphql/.gql supported).",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .restfile.yaml in CWD, then ~/.restfile/config.yaml.",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Write the assembled command line to request.txt in the temp dir.",
)
@click.option(
    "--timeout",
    type=int,
    default=None,
    help="Request timeout in seconds. Default: 30.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=False,
    help="Include response filetype and headers in output.",
)
@click.option(
    "--raw",
    is_flag=True,
    default=False,
    help="Output the response body only. Useful for piping.",
)
def main(
    file,
    line,
    pick_next,
    pick_previous,
    show_list,
    dry_run,
    body_file,
    config_file,
    debug,
    timeout,
    verbose,
    raw,
):
    """Run the request at the cursor line of a request file."""
    from restfile.command import build_command, write_side_files
    from restfile.core import (
        echo_warning,
        load_config,
        load_env,
        read_file,
        resolve_config_path,
        tmp_dir_for,
    )
    from restfile.executor import execute_command, run_client_pipe
    from restfile.output import format_output
    from restfile.parser import parse_document
    from restfile.request import resolve_request
    from restfile.variables import VariableResolver

    if pick_next and pick_previous:
        click.echo("ERROR: --next and --previous are mutually exclusive.", err=True)
        sys.exit(1)

    # --- Load config ---
    config_path = resolve_config_path(config_file)
    try:
        config = load_config(config_path)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid config file {config_path}: {e}") from e
    defaults = config.get("defaults", {})
    env = load_env(defaults.get("env_file"), config.get("_config_dir") or ".")

    # --- Parse document ---
    doc_path = Path(file)
    text = read_file(doc_path)
    if text is None:
        click.echo(f"ERROR: Cannot read request file '{file}'.", err=True)
        sys.exit(1)
    document = parse_document(text, env=env, base_dir=doc_path.parent)

    if show_list:
        _cmd_list(document.requests)
        return

    request = _select_request(document.requests, line, pick_next, pick_previous)
    if request is None:
        which = "next " if pick_next else "previous " if pick_previous else ""
        click.echo(f"ERROR: No {which}request found at line {line}.", err=True)
        sys.exit(1)

    if body_file:
        request = dataclasses.replace(request, body_path=_relative_to(body_file, doc_path))

    # --- Resolve and build ---
    resolver = VariableResolver(document.variables, env)
    resolved = resolve_request(request, resolver)
    tmp_dir = tmp_dir_for(config)
    command = build_command(
        resolved,
        tmp_dir,
        additional_curl_options=defaults.get("additional_curl_options") or [],
    )
    write_side_files(command, tmp_dir, debug=debug or bool(defaults.get("debug")))

    if dry_run:
        click.echo(shlex.join(command.args))
        return

    result = execute_command(
        command,
        timeout=_resolve_timeout(timeout, defaults.get("timeout")),
    )
    if result.error:
        click.echo(f"ERROR: {result.error}", err=True)
        sys.exit(1)

    click.echo(
        format_output(
            result,
            filetype=command.response_filetype,
            verbose=verbose,
            raw=raw,
        ),
    )

    if command.pipe_target:
        piped, error = run_client_pipe(command.pipe_target, result.raw_text)
        if piped:
            click.echo(piped.rstrip("\n"))
        if error:
            echo_warning(error)


# ── Helpers ──────────────────────────────────────────────────────────────


def _select_request(requests, line, pick_next, pick_previous):
    from restfile.parser import next_request, previous_request, request_at_cursor

    if pick_next:
        return next_request(requests, line)
    if pick_previous:
        return previous_request(requests, line)
    return request_at_cursor(requests, line)


def _cmd_list(requests):
    if not requests:
        click.echo("No requests found.")
        return
    for i, req in enumerate(requests):
        click.echo(f"  [{i}] {req.method:<6} {req.url}  (lines {req.start_line}-{req.end_line})")


def _relative_to(path, doc_path):
    """Resolve a relative --body-file path against the request file directory."""
    p = Path(path).expanduser()
    if p.is_absolute() or p.exists():
        return str(p)
    return str(doc_path.parent / p)


def _resolve_timeout(*sources, default=30):
    """Return the first truthy timeout from sources, or default."""
    for t in sources:
        if t:
            return t
    return default
