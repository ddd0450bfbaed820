"""Operator CLI for checking the external dependencies of the orchestration layer."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, get_args

import httpx
import typer
from rich.console import Console
from rich.table import Table

from devlab.core.config import ServiceName
from devlab.orchestration.bootstrap import OrchestrationServices, bootstrap_orchestration

ENV_REPO_ROOT = "DEVLAB_REPO_ROOT"


def _resolve_repo_root() -> Path:
    override = os.environ.get(ENV_REPO_ROOT)
    if override:
        return Path(override).expanduser().resolve()
    return Path(__file__).resolve().parents[1]


REPO_ROOT = _resolve_repo_root()

app = typer.Typer(help="Probe the code sandbox and sibling services the orchestration layer depends on.")
console = Console()


def _load_services(config: Path | None) -> OrchestrationServices:
    if config is not None and not config.expanduser().exists():
        raise typer.BadParameter(f"Config file not found at {config}")
    return bootstrap_orchestration(config, repo_root=REPO_ROOT)


def probe_health(services: OrchestrationServices) -> Dict[str, bool]:
    results = {service: services.microservices.health_check(service) for service in get_args(ServiceName)}
    results["sandbox"] = services.execution.check_availability()
    return results


def _print_table(headers: list[str], rows: List[dict], keys: list[str]) -> None:
    table = Table(*headers)
    for row in rows:
        table.add_row(*[str(row.get(key, "")) for key in keys])
    console.print(table)


@app.command()
def health(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        show_default=False,
        help="Orchestration YAML (defaults to config/orchestration.yaml under the repo root).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
    strict: bool = typer.Option(False, "--strict", help="Exit with status 1 when any dependency is down."),
) -> None:
    """Report which dependencies currently answer their health endpoint."""

    services = _load_services(config)
    try:
        results = probe_health(services)
    finally:
        services.close()

    if as_json:
        typer.echo(json.dumps(results, indent=2))
    else:
        rows = [{"service": name, "status": "up" if ok else "down"} for name, ok in results.items()]
        _print_table(["Service", "Status"], rows, ["service", "status"])
    if strict and not all(results.values()):
        raise typer.Exit(code=1)


@app.command()
def languages(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        show_default=False,
        help="Orchestration YAML (defaults to config/orchestration.yaml under the repo root).",
    ),
    remote: bool = typer.Option(False, "--remote", help="List the languages the sandbox itself reports."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """Show the language-to-executor table used for submissions."""

    services = _load_services(config)
    try:
        if remote:
            try:
                reported = services.sandbox.list_languages()
            except httpx.HTTPError as exc:
                console.print(f"[red]Code sandbox unavailable: {exc}[/red]")
                raise typer.Exit(code=1) from exc
            rows = [{"id": item.get("id"), "name": item.get("name")} for item in reported]
            headers, keys = ["Executor ID", "Name"], ["id", "name"]
        else:
            rows = [
                {"language": name, "id": services.execution.language_id(name)}
                for name in services.execution.supported_languages()
            ]
            headers, keys = ["Language", "Executor ID"], ["language", "id"]
    finally:
        services.close()

    if as_json:
        typer.echo(json.dumps(rows, indent=2, ensure_ascii=False))
        return
    if not rows:
        console.print("[yellow]No languages reported.[/yellow]")
        return
    _print_table(headers, rows, keys)


if __name__ == "__main__":  # pragma: no cover
    app()
