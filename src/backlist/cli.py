from __future__ import annotations

from pathlib import Path
from typing import Optional

import json
import typer
from rich.console import Console
from rich.table import Table

from backlist.config import get_settings
from backlist.domain.errors import BacklistError, DirectoryNotFound
from backlist.domain.models import EndpointDescriptor
from backlist.logging_config import configure_logging
from backlist.orchestrator.pipeline import run_analyze
from backlist.store.contracts import ContractsStore, build_document


app = typer.Typer(no_args_is_help=True, add_completion=False)

endpoints_app = typer.Typer(no_args_is_help=True)
app.add_typer(endpoints_app, name="endpoints")

console = Console()


@app.callback()
def _main(
    debug: bool = typer.Option(False, "--debug", help="Verbose logging (also BACKLIST_DEBUG=1)"),
) -> None:
    configure_logging(debug=True if debug else None)


def _contracts_path(out: Optional[str]) -> Path:
    if out:
        return Path(out).expanduser().resolve()
    configured = get_settings().contracts_path
    if configured:
        return Path(configured).expanduser().resolve()
    return ContractsStore.default_path()


def _endpoints_json(endpoints: list[EndpointDescriptor]) -> str:
    return json.dumps([e.model_dump(mode="json", by_alias=True) for e in endpoints], indent=2)


def _endpoints_table(endpoints: list[EndpointDescriptor], root: Optional[str] = None) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("ROUTE")
    table.add_column("CONTROLLER.ACTION")
    table.add_column("BODY")
    table.add_column("FILE:LINE", no_wrap=True)

    for e in endpoints:
        body = ", ".join(f"{n}:{f.inferred_type}" for n, f in (e.request_body or {}).items())
        src = e.source_file
        if root and src.startswith(root):
            src = src[len(root) :].lstrip("/\\")
        table.add_row(
            e.method,
            e.route,
            f"{e.controller_name}.{e.action_name}",
            body or "-",
            f"{src}:{e.source_line}",
        )
    return table


@app.command()
def scan(
    src: str = typer.Argument("src", help="Path to the frontend source directory"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Contracts file (default: .backlist/contracts.json)"),
    write: bool = typer.Option(True, "--write/--no-write", help="Write the contracts file"),
    workers: Optional[int] = typer.Option(None, min=1, help="Parallel file workers"),
    max_files: Optional[int] = typer.Option(None, help="Limit scanned files (debug)"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    src_path = Path(src).expanduser().resolve()
    try:
        result = run_analyze(src_path, max_files=max_files, workers=workers)
    except DirectoryNotFound as e:
        raise typer.BadParameter(str(e)) from e

    if format.lower() == "json":
        typer.echo(_endpoints_json(result.endpoints))
    else:
        console.print(f"[bold green]backlist[/bold green] scan: {result.root}")
        console.print(f"Files scanned: {result.files_scanned}")
        console.print(f"HTTP call sites: {result.call_sites} (non-API rejected: {result.rejected})")
        if result.files_failed:
            console.print(f"[yellow]Unparseable files: {len(result.files_failed)}[/yellow]")
            for rel in result.files_failed[:20]:
                console.print(f"  {rel}")
        console.print("")
        console.print(f"Endpoints: [bold]{len(result.endpoints)}[/bold] (duplicates dropped: {result.duplicates})")
        if result.endpoints:
            console.print(_endpoints_table(result.endpoints, root=result.root))

    if write:
        store = ContractsStore(_contracts_path(out))
        store.write(build_document(result.root, result.endpoints))
        if format.lower() != "json":
            console.print(f"[bold green]Wrote[/bold green] contracts to: {store.path}")


@endpoints_app.command("list")
def endpoints_list(
    contracts: Optional[str] = typer.Option(None, "--contracts", "-c", help="Contracts file to read"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/...)"),
    route_contains: Optional[str] = typer.Option(None, help="Substring match on route"),
    controller: Optional[str] = typer.Option(None, help="Filter by controller name"),
    limit: int = typer.Option(200, help="Max rows to print"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    path = _contracts_path(contracts)
    try:
        doc = ContractsStore(path).read()
    except BacklistError as e:
        console.print(f"[bold red]error:[/bold red] {e}")
        raise typer.Exit(code=1)

    rows = doc.endpoints
    if method:
        rows = [e for e in rows if e.method == method.upper()]
    if route_contains:
        rows = [e for e in rows if route_contains in e.route]
    if controller:
        rows = [e for e in rows if e.controller_name.lower() == controller.lower()]
    rows = rows[: max(limit, 0)]

    if format.lower() == "json":
        typer.echo(_endpoints_json(rows))
        return

    console.print(f"[bold]Contracts:[/bold] {path} (generated {doc.generated_at.isoformat()})")
    console.print(f"[bold]Endpoints:[/bold] {len(rows)} (showing up to {limit})")
    console.print(_endpoints_table(rows, root=doc.root))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
