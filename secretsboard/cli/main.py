"""secretsboard command-line interface.

Commands:
    secretsboard tables                          List dashboard tables and their state.
    secretsboard list TABLE [--json]             Render one table.
    secretsboard inspect PATH [--json]           Show one resource, e.g. certificates/team-a/web-tls.
    secretsboard delete TABLE NAME [-n NS] [--cluster] [--yes]
                                                 Delete a row after confirmation.
    secretsboard version                         Print version and exit.

All commands call the REST API at http://localhost:8080 (configurable via
``--api-url``).  Output is colourised for readability.
"""

from __future__ import annotations

import json

import click
import httpx

from secretsboard import __version__

_DEFAULT_API_URL = "http://localhost:8080"

# ---------------------------------------------------------------------------
# Colour helpers
# ---------------------------------------------------------------------------

_SEVERITY_COLORS: dict[str, str] = {
    "success": "green",
    "info": "cyan",
    "warning": "yellow",
    "danger": "red",
}

_TABLE_STATE_COLORS: dict[str, str] = {
    "ready": "green",
    "empty": "bright_black",
    "loading": "yellow",
    "error": "red",
}


def _styled_status(label: str, severity: str) -> str:
    color = _SEVERITY_COLORS.get(severity.lower(), "white")
    return click.style(label, fg=color, bold=True)


def _styled_table_state(state: str) -> str:
    color = _TABLE_STATE_COLORS.get(state.lower(), "white")
    return click.style(state, fg=color)


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


def _get(api_url: str, path: str, params: dict[str, str] | None = None) -> dict[str, object]:
    """Perform a GET request and return the parsed JSON body.

    Raises click.ClickException on connection errors or non-2xx responses.
    """
    url = api_url.rstrip("/") + path
    try:
        with httpx.Client(timeout=30.0) as client:
            response = client.get(url, params=params or {})
        response.raise_for_status()
        return response.json()  # type: ignore[no-any-return]
    except httpx.ConnectError as err:
        raise click.ClickException(f"Cannot connect to secretsboard API at {api_url}. Is the server running?") from err
    except httpx.HTTPStatusError as exc:
        _handle_error_response(exc.response)
        raise


def _post(api_url: str, path: str, body: dict[str, object] | None = None) -> dict[str, object]:
    """Perform a POST request and return the parsed JSON body.

    Raises click.ClickException on connection errors or non-2xx responses.
    """
    url = api_url.rstrip("/") + path
    try:
        with httpx.Client(timeout=60.0) as client:
            response = client.post(url, json=body or {})
        response.raise_for_status()
        return response.json()  # type: ignore[no-any-return]
    except httpx.ConnectError as err:
        raise click.ClickException(f"Cannot connect to secretsboard API at {api_url}. Is the server running?") from err
    except httpx.HTTPStatusError as exc:
        _handle_error_response(exc.response)
        raise


def _handle_error_response(response: httpx.Response) -> None:
    """Parse an error response body and raise a friendly ClickException."""
    try:
        data: dict[str, object] = response.json()
        error_code = str(data.get("error", "ERROR"))
        detail = str(data.get("detail", "Unknown error"))
        msg = f"{error_code}: {detail}"
    except ValueError:
        msg = f"HTTP {response.status_code}: {response.text[:200]}"
    raise click.ClickException(msg)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--api-url",
    default=_DEFAULT_API_URL,
    envvar="SECRETSBOARD_API_URL",
    show_default=True,
    help="secretsboard REST API base URL.",
)
@click.pass_context
def cli(ctx: click.Context, api_url: str) -> None:
    """secretsboard: certificates and external secrets at a glance."""
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url


# ---------------------------------------------------------------------------
# secretsboard version
# ---------------------------------------------------------------------------


@cli.command("version")
def cmd_version() -> None:
    """Print the secretsboard version and exit."""
    click.echo(f"secretsboard {__version__}")


# ---------------------------------------------------------------------------
# secretsboard tables
# ---------------------------------------------------------------------------


@cli.command("tables")
@click.pass_context
def cmd_tables(ctx: click.Context) -> None:
    """List the dashboard tables with their load state and row count."""
    api_url: str = ctx.obj["api_url"]
    data: list[dict[str, object]] = _get(api_url, "/api/v1/tables")  # type: ignore[assignment]
    for table in data:
        name = str(table.get("name", "?"))
        padding = max(0, 18 - len(name)) * " "
        click.echo(
            f"  {click.style(name, bold=True)}{padding} "
            f"{_styled_table_state(str(table.get('state', '?')))}  "
            f"rows={table.get('row_count', 0)}"
        )


# ---------------------------------------------------------------------------
# secretsboard list
# ---------------------------------------------------------------------------


@cli.command("list")
@click.argument("table")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    default=False,
    help="Print raw JSON response.",
)
@click.pass_context
def cmd_list(ctx: click.Context, table: str, output_json: bool) -> None:
    """Render TABLE (certificates, issuers, externalsecrets, secretstores)."""
    api_url: str = ctx.obj["api_url"]
    data = _get(api_url, f"/api/v1/tables/{table}")

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    _print_table(data)


def _print_table(data: dict[str, object]) -> None:
    """Pretty-print a TableResponse dict."""
    state = str(data.get("state", "?"))
    click.echo(click.style(str(data.get("title", "")), bold=True) + "  " + _styled_table_state(state))
    click.echo("")

    if state == "error":
        click.echo(click.style(f"Error loading resources: {data.get('error', '')}", fg="red"))
        return
    if state == "loading":
        click.echo(click.style("Loading...", fg="yellow"))
        return
    if state == "empty":
        click.echo(click.style(str(data.get("empty_title", "")), bold=True))
        click.echo(f"  {data.get('empty_body', '')}")
        return

    columns: list[str] = data.get("columns", [])  # type: ignore[assignment]
    rows: list[dict[str, object]] = data.get("rows", [])  # type: ignore[assignment]
    cells = [[str(c) for c in row.get("cells", [])] for row in rows]  # type: ignore[attr-defined]
    widths = [max([len(col)] + [len(r[i]) for r in cells if i < len(r)]) for i, col in enumerate(columns)]

    click.echo("  ".join(click.style(col.ljust(w), bold=True) for col, w in zip(columns, widths, strict=True)))
    status_index = columns.index("Status") if "Status" in columns else -1
    for row, row_cells in zip(rows, cells, strict=True):
        out = []
        for i, (cell, width) in enumerate(zip(row_cells, widths, strict=False)):
            if i == status_index:
                status: dict[str, str] = row.get("status", {})  # type: ignore[assignment]
                out.append(_styled_status(cell, status.get("severity", "")) + " " * (width - len(cell)))
            else:
                out.append(cell.ljust(width))
        click.echo("  ".join(out))

    delete: dict[str, object] = data.get("delete", {})  # type: ignore[assignment]
    if delete.get("phase") not in (None, "idle"):
        target: dict[str, object] = delete.get("target") or {}  # type: ignore[assignment]
        click.echo("")
        click.echo(click.style(f"Pending delete: {target.get('name', '?')} ({delete.get('phase')})", fg="yellow"))


# ---------------------------------------------------------------------------
# secretsboard inspect
# ---------------------------------------------------------------------------


@cli.command("inspect")
@click.argument("path")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    default=False,
    help="Print raw JSON response.",
)
@click.pass_context
def cmd_inspect(ctx: click.Context, path: str, output_json: bool) -> None:
    """Show one resource addressed by PATH.

    Example:

        secretsboard inspect certificates/team-a/web-tls
    """
    api_url: str = ctx.obj["api_url"]
    path = path.strip("/")
    if path.startswith("inspect/"):
        path = path[len("inspect/") :]
    if not path:
        raise click.UsageError("PATH must be <type>/<namespace>/<name> or <type>/<name>")

    data = _get(api_url, f"/api/v1/inspect/{path}")

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    _print_inspect(data)


def _print_inspect(data: dict[str, object]) -> None:
    """Pretty-print an InspectResponse dict."""
    click.echo("")
    click.echo(click.style(str(data.get("title", "")), bold=True, underline=True))
    click.echo("")
    metadata: list[dict[str, str]] = data.get("metadata", [])  # type: ignore[assignment]
    for entry in metadata:
        term = entry.get("term", "?")
        click.echo(f"  {click.style(term + ':', bold=True)}{' ' * max(1, 20 - len(term))}{entry.get('value', '')}")

    for heading in ("labels", "annotations"):
        values: dict[str, str] = data.get(heading, {})  # type: ignore[assignment]
        if values:
            click.echo("")
            click.echo(click.style(f"{heading.capitalize()}:", bold=True))
            for key, value in sorted(values.items()):
                click.echo(f"  {key}={value}")

    for heading, key in (("Spec", "spec_json"), ("Status", "status_json")):
        body = data.get(key)
        if body:
            click.echo("")
            click.echo(click.style(f"{heading}:", bold=True))
            click.echo(str(body))
    click.echo("")


# ---------------------------------------------------------------------------
# secretsboard delete
# ---------------------------------------------------------------------------


@cli.command("delete")
@click.argument("table")
@click.argument("name")
@click.option("--namespace", "-n", default=None, metavar="NS", help="Namespace of the row.")
@click.option("--cluster", is_flag=True, default=False, help="The row is cluster-scoped.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not prompt for confirmation.")
@click.pass_context
def cmd_delete(
    ctx: click.Context,
    table: str,
    name: str,
    namespace: str | None,
    cluster: bool,
    yes: bool,
) -> None:
    """Delete row NAME of TABLE.

    Example:

        secretsboard delete certificates web-tls -n team-a
    """
    api_url: str = ctx.obj["api_url"]
    if cluster and namespace:
        raise click.UsageError("--cluster and --namespace are mutually exclusive")

    body: dict[str, object] = {"name": name, "scope": "Cluster" if cluster else "Namespace"}
    if namespace:
        body["namespace"] = namespace

    _post(api_url, f"/api/v1/tables/{table}/delete", body)

    where = f" in namespace {namespace}" if namespace else ""
    if not yes and not click.confirm(f"Delete {name}{where}?", default=False):
        _post(api_url, f"/api/v1/tables/{table}/delete/cancel")
        click.echo("Cancelled.")
        return

    state = _post(api_url, f"/api/v1/tables/{table}/delete/confirm")
    if state.get("failed"):
        _post(api_url, f"/api/v1/tables/{table}/delete/cancel")
        raise click.ClickException(str(state.get("error_message") or "Delete failed"))
    click.echo(click.style("Deleted", fg="green", bold=True) + f" {name}{where}")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
