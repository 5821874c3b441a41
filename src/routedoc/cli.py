from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from routedoc.config import ExtractorConfig
from routedoc.errors import RoutedocError
from routedoc.export.openapi import to_openapi
from routedoc.orchestrator.pipeline import ExtractResult, run_extract, run_import
from routedoc.postman.generator import generate_postman_collection
from routedoc.symbols.loader import load_symbol_tables

app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _extract_or_exit(target: str, from_openapi: bool = False, **kwargs) -> ExtractResult:
    try:
        if from_openapi:
            kwargs.pop("config", None)
            return run_import(Path(target), **kwargs)
        return run_extract(Path(target), **kwargs)
    except RoutedocError as exc:
        console.print(f"[bold red]error[/bold red]: {exc}")
        raise typer.Exit(code=1)


def _emit(text: str, out: Optional[str], what: str) -> None:
    if out:
        out_path = Path(out).expanduser()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        console.print(f"[bold green]Wrote[/bold green] {what} to: {out_path}")
    else:
        # plain echo keeps stdout pipeable (no rich markup or wrapping)
        typer.echo(text)


@app.command()
def parse(
    target: str = typer.Argument(..., help="Controller file or directory to scan (or an OpenAPI JSON file)"),
    title: Optional[str] = typer.Option(None, help="Collection title"),
    version: Optional[str] = typer.Option(None, help="Collection version"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", help="Keep endpoints with this tag (repeatable)"),
    path: Optional[List[str]] = typer.Option(None, "--path", help="Keep endpoints matching this path glob (repeatable)"),
    format: str = typer.Option("table", help="Output format: table|json|openapi"),
    out: Optional[str] = typer.Option(None, help="Output path (default: print to stdout)"),
    from_openapi: bool = typer.Option(False, "--from-openapi", help="Read TARGET as an OpenAPI/Swagger JSON document"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    _configure_logging(verbose)
    fmt = format.lower().strip()
    if fmt not in ("table", "json", "openapi"):
        raise typer.BadParameter("format must be one of: table, json, openapi")

    config = ExtractorConfig.from_env()
    result = _extract_or_exit(
        target,
        from_openapi=from_openapi,
        title=title,
        version=version,
        tags=tag or (),
        paths=path or (),
        config=config,
    )
    collection = result.collection

    if fmt == "json":
        _emit(json.dumps(collection.model_dump(mode="json", by_alias=True), indent=2), out, "collection")
        return
    if fmt == "openapi":
        _emit(json.dumps(to_openapi(collection), indent=2), out, "OpenAPI document")
        return

    console.print(f"[bold green]routedoc[/bold green] parse: {result.target} ({result.mode})")
    console.print(f"Title: [bold]{collection.title}[/bold]  version={collection.version}")
    if collection.description:
        console.print(collection.description)
    console.print(f"Tags: {', '.join(t.name for t in collection.tags) or '-'}")
    console.print(f"Endpoints: [bold]{len(collection.endpoints)}[/bold] (of {result.total_endpoints})")

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("TAGS", no_wrap=True)
    table.add_column("PARAMS", no_wrap=True)
    table.add_column("BODY", no_wrap=True)
    table.add_column("RESPONSES", no_wrap=True)
    table.add_column("SUMMARY")

    for e in collection.endpoints:
        body = e.request_body
        table.add_row(
            e.method,
            e.path,
            ",".join(e.tags),
            ",".join(f"{p.name}({p.location})" for p in e.parameters),
            str(len(body.body_schema.properties)) if body is not None else "",
            ",".join(e.responses),
            e.summary,
        )
    console.print(table)


@app.command()
def postman(
    target: str = typer.Argument(..., help="Controller file or directory to scan (or an OpenAPI JSON file)"),
    base_url: Optional[str] = typer.Option(None, help="Base URL stored in the collection"),
    title: Optional[str] = typer.Option(None, help="Collection title"),
    version: Optional[str] = typer.Option(None, help="Collection version"),
    out: Optional[str] = typer.Option(None, help="Output path (default: print to stdout)"),
    from_openapi: bool = typer.Option(False, "--from-openapi", help="Read TARGET as an OpenAPI/Swagger JSON document"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    _configure_logging(verbose)
    config = ExtractorConfig.from_env()
    result = _extract_or_exit(
        target, from_openapi=from_openapi, title=title, version=version, base_url=base_url, config=config
    )
    payload = generate_postman_collection(result.collection, base_url=base_url, config=config)
    _emit(json.dumps(payload, indent=2), out, "Postman collection")


@app.command()
def symbols(
    start_dir: str = typer.Argument(..., help="Directory to start probing from"),
) -> None:
    config = ExtractorConfig.from_env()
    tables = load_symbol_tables(Path(start_dir).expanduser(), config)
    if tables.is_empty():
        console.print(
            f"No {config.error_table_filename} / {config.success_table_filename} entries found near {start_dir}"
        )
        raise typer.Exit(code=1)

    console.print(f"[bold]Loaded from:[/bold] {tables.source_dir}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("KIND", no_wrap=True)
    table.add_column("NAME")
    table.add_column("CODE", no_wrap=True)
    table.add_column("MESSAGE")
    for name, err in tables.errors.items():
        table.add_row("error", name, str(err.code), err.message)
    for name, ok in tables.successes.items():
        table.add_row("success", name, "", ok.message)
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
