"""
Main CLI interface for the VoxType deployment engine.

This module provides the Typer-based command-line interface with commands for:
- Resolving and writing a complete deployment
- Previewing the compiled daemon config
- Checking an override document without fetching anything
- Listing the model catalog
"""

import json
import logging
import os
import sys
from typing import List, Optional

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from .core.catalog import load_catalog
from .core.compiler import compile_config
from .core.config import ArtifactLayout, ConfigError, config, load_env_file
from .core.daemon_config import parse_compiled
from .core.debug_log import DebugLogger
from .core.deploy import collect_warnings, default_locator, default_resolver, resolve_deployment, write_deployment
from .core.errors import DeployError, ValidationError, Violation
from .core.fetch import HttpFetcher
from .core.options import ExplicitModel, load_overrides
from .core.progress import reporter
from .core.types import Deployment, ExplicitModelRef
from .core.validator import validate_overrides

app = typer.Typer(
    name="voxtype-deploy",
    help="VoxType deployment engine - Turn a declarative options file into a working voice-dictation daemon",
    no_args_is_help=True,
)

console = Console()


def _prepare(env_file: Optional[str], debug: bool = False) -> None:
    load_env_file(env_file)
    # CLI flag overrides .env
    if debug:
        os.environ["VOXDEPLOY_DEBUG"] = "1"
    _setup_logging(debug or config.debug)


def _setup_logging(debug: bool) -> None:
    # Warnings reach the user through the console already; log output is for --debug.
    package_logger = logging.getLogger("voxtype_deploy")
    package_logger.setLevel(logging.DEBUG if debug else logging.ERROR)
    if not package_logger.handlers:
        package_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


def _options_path(options_file: Optional[str]) -> str:
    return options_file or str(config.options_file)


def _print_violations(violations: List[Violation]) -> None:
    table = Table(title=f"{len(violations)} invalid option(s)", title_style="bold red")
    table.add_column("Option", style="cyan")
    table.add_column("Problem", style="white")
    for violation in violations:
        table.add_row(escape(violation.field_path), escape(violation.reason))
    console.print(table)


def _print_error(e: Exception) -> None:
    if isinstance(e, ValidationError):
        _print_violations(e.violations)
    elif isinstance(e, ConfigError):
        console.print(f"[bold red]Configuration Error:[/bold red] {escape(str(e))}")
    else:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")


@app.command()
def build(
    options_file: Optional[str] = typer.Option(None, "--config", "-c", help="Override document (TOML); defaults to VOXDEPLOY_OPTIONS"),
    output_root: Optional[str] = typer.Option(None, "--output-root", help="Write every artifact under this directory instead of the home directories"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Resolve everything but write nothing"),
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Load engine settings from this .env file"),
    debug: bool = typer.Option(False, "--debug", help="Write a JSON trace of the pass and print step timings"),
):
    """
    Resolve the deployment and write config, wrapper and service units.

    Examples:
        voxtype-deploy build
        voxtype-deploy build --config ~/dotfiles/voxtype.toml
        voxtype-deploy build --output-root ./result --dry-run
    """
    try:
        with reporter.initialize(console, "Loading options…"):
            _prepare(env_file, debug)
            overrides = load_overrides(_options_path(options_file))
            layout = ArtifactLayout.from_config(output_root=output_root)

            reporter.step("Loading model catalog…")
            resolver = default_resolver()
            locator = default_locator()

            deployment = resolve_deployment(overrides, resolver, locator, layout.wrapper_store, DebugLogger())

            written = []
            if not dry_run:
                reporter.step("Writing artifacts…")
                written = write_deployment(deployment, layout)
            reporter.complete_step()

        _display_deployment(deployment, [str(p) for p in written], dry_run)

    except (DeployError, ConfigError) as e:
        _print_error(e)
        sys.exit(1)
    finally:
        reporter.detach()


@app.command()
def show(
    options_file: Optional[str] = typer.Option(None, "--config", "-c", help="Override document (TOML); defaults to VOXDEPLOY_OPTIONS"),
    model_path: Optional[str] = typer.Option(None, "--model-path", help="Use this model file instead of fetching the selected model"),
    output_format: str = typer.Option("toml", "--format", "-f", help="Output format (toml, json)"),
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Load engine settings from this .env file"),
):
    """
    Print the config.toml a build would write.

    Examples:
        voxtype-deploy show
        voxtype-deploy show --model-path /models/ggml-base.en.bin --format json
    """
    if output_format not in ("toml", "json"):
        console.print(f"[bold red]Error:[/bold red] Unknown format '{escape(output_format)}' (use toml or json)")
        sys.exit(1)

    try:
        _prepare(env_file)
        tree, violations = validate_overrides(load_overrides(_options_path(options_file)))
        if violations:
            raise ValidationError(violations)

        if model_path:
            model = ExplicitModelRef(resolved_local_path=model_path)
        else:
            resolver = default_resolver()
            with reporter.initialize(console, "Resolving model…"):
                model = resolver.resolve(tree.model)
                reporter.complete_step()
        compiled = compile_config(tree, model)
    except (DeployError, ConfigError) as e:
        _print_error(e)
        sys.exit(1)
    finally:
        reporter.detach()

    if output_format == "json":
        # Plain print keeps the output machine-readable.
        print(json.dumps(compiled.document, indent=2))
    else:
        console.print(Syntax(compiled.text, "toml", theme="monokai", line_numbers=False))


@app.command()
def check(
    options_file: Optional[str] = typer.Option(None, "--config", "-c", help="Override document (TOML); defaults to VOXDEPLOY_OPTIONS"),
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Load engine settings from this .env file"),
):
    """
    Check an override document without fetching or writing anything.

    Reports every invalid option at once and confirms the compiled config
    reads back under the daemon's schema.

    Examples:
        voxtype-deploy check --config voxtype.toml
    """
    try:
        _prepare(env_file)
        path = _options_path(options_file)
        tree, violations = validate_overrides(load_overrides(path))
        if violations:
            _print_violations(violations)
            sys.exit(1)

        # Catalog names must exist; the model itself is not fetched.
        resolver = default_resolver()
        entry = resolver.lookup(tree.model)
        if isinstance(tree.model, ExplicitModel):
            model_path = tree.model.path
        else:
            model_path = str(HttpFetcher(config.model_store).target_path(resolver.request_for(entry)))

        compiled = compile_config(tree, ExplicitModelRef(resolved_local_path=model_path))
        try:
            parse_compiled(compiled.text)
        except PydanticValidationError as e:
            _print_violations(
                [Violation(field_path=".".join(str(p) for p in item["loc"]), reason=item["msg"]) for item in e.errors()]
            )
            sys.exit(1)

    except (DeployError, ConfigError) as e:
        _print_error(e)
        sys.exit(1)

    console.print(f"[bold green]✓[/bold green] {escape(path)} is valid")
    if not tree.enable:
        console.print("[dim]Deployment is disabled (enable = false)[/dim]")
    for warning in collect_warnings(tree):
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")


@app.command()
def models(
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Load engine settings from this .env file"),
):
    """
    List the models the catalog can fetch.

    Examples:
        voxtype-deploy models
    """
    try:
        _prepare(env_file)
        catalog = load_catalog(config.catalog_path)
    except (DeployError, ConfigError) as e:
        _print_error(e)
        sys.exit(1)

    table = Table(title="Model Catalog")
    table.add_column("Name", style="cyan")
    table.add_column("Size", style="white", justify="right")
    table.add_column("Digest", style="dim")
    table.add_column("Description", style="white")
    for entry in catalog.entries():
        size = f"{entry.size_mb} MB" if entry.size_mb is not None else "?"
        table.add_row(entry.name, size, entry.content_hash, escape(entry.description or ""))
    console.print(table)


def _display_deployment(deployment: Deployment, written: List[str], dry_run: bool):
    """Display the result of a build."""
    if not deployment.enabled:
        console.print("[yellow]Deployment is disabled (enable = false); nothing was written[/yellow]")
        return

    for warning in deployment.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")

    summary = Table(show_header=False, box=None)
    summary.add_column("Key", style="cyan")
    summary.add_column("Value", style="white")

    model = deployment.model
    if model.kind == "fetched":
        summary.add_row("Model", f"{model.symbolic_name} ({model.content_hash})")
    summary.add_row("Model path", escape(model.resolved_local_path))
    summary.add_row("Config digest", deployment.compiled.digest)
    summary.add_row("Wrapper", escape(deployment.wrapper.executable_path))
    if deployment.wrapper.missing:
        summary.add_row("Missing dependencies", ", ".join(deployment.wrapper.missing))
    services = ", ".join(d.unit_name for d in deployment.services) or "none"
    summary.add_row("Services", services)
    console.print(summary)

    if dry_run:
        console.print("\n[dim]Dry run: nothing was written[/dim]")
        return

    console.print(f"\n[bold green]Wrote {len(written)} artifact(s):[/bold green]")
    for path in written:
        console.print(f"  • {escape(path)}")
    if deployment.services:
        console.print("\n[dim]Run 'systemctl --user daemon-reload' to pick up the service units.[/dim]")


if __name__ == "__main__":
    app()
