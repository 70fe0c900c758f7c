"""
CLI interface for Refiner Gateway.

Runs the HTTP gateway. The other commands inspect prompt selection and the
update check offline.
"""

import sys
from typing import Optional

import typer
import uvicorn
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from refiner_gateway.api.app import create_app
from refiner_gateway.config.loader import GatewayConfig, default_gateway_config, load_gateway_config
from refiner_gateway.core.prompts import COMMAND_TEMPLATES, Mode, select_prompt
from refiner_gateway.core.versioning import check_update

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _load_config(path: Optional[str]) -> GatewayConfig:
    """Load the YAML config, or the built-in defaults when no path is given."""
    if path is None:
        return default_gateway_config()
    return load_gateway_config(path)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Refiner Gateway CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Refiner Gateway - Use --help to see available commands")


@app.command()
def serve(
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to gateway YAML config"
    ),
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind"),
    port: int = typer.Option(3000, "--port", "-p", help="Port to listen on"),
    env_file: str = typer.Option(
        ".env",
        "--env-file",
        help="Environment file with provider keys"
    )
):
    """Run the HTTP gateway."""
    load_dotenv(env_file)

    try:
        gateway_config = _load_config(config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    missing = [p.name for p in gateway_config.providers if not p.shared_key()]
    if missing:
        console.print(
            f"[yellow]![/] No shared key for: {', '.join(missing)} "
            "(free-tier requests skip these providers)"
        )

    console.print(f"[green]✓[/] Serving on http://{host}:{port} (model: {gateway_config.primary.model})")
    uvicorn.run(create_app(gateway_config), host=host, port=port, log_level=gateway_config.log_level.lower())


@app.command(name="check-update")
def check_update_command(
    version: str = typer.Argument(..., help="Version reported by the app, e.g. 1.9.0"),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to gateway YAML config"
    )
):
    """Show what /app-update would answer for an app version."""
    try:
        gateway_config = _load_config(config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    info = check_update(version, gateway_config.update)

    if info.update_available:
        console.print(f"[bold yellow]Update available:[/] {version} -> {info.latest_version}")
    else:
        console.print(f"[green]✓[/] {version} is up to date (latest: {info.latest_version})")
    console.print(f"Force update: {'yes' if info.force_update else 'no'}")
    console.print(f"Update URL: {info.update_url}")
    console.print(f"\n[bold]Changelog[/bold]\n{info.changelog}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def prompt(
    mode: str = typer.Argument(..., help="refine or chat"),
    text: str = typer.Argument(..., help="Text as typed on the keyboard")
):
    """Print the prompt that would be sent upstream."""
    try:
        selected_mode = Mode(mode.lower())
    except ValueError:
        console.print(f"[red]Error:[/] unknown mode '{mode}' (use refine or chat)")
        sys.exit(EXIT_CODE_FAIL)

    if not text.strip():
        console.print("[red]Error:[/] text is empty")
        sys.exit(EXIT_CODE_FAIL)

    # Plain print: prompts contain square brackets rich would parse as markup
    print(select_prompt(selected_mode, text.strip()))
    sys.exit(EXIT_CODE_PASS)


@app.command()
def commands():
    """List the chat command tokens."""
    table = Table(title="Chat commands")
    table.add_column("Command", style="bold")
    table.add_column("Description")

    for template in COMMAND_TEMPLATES:
        table.add_row(template.command, template.description)

    console.print(table)
    console.print("\n[dim]Text without a command is answered as a general chat message.[/]")


if __name__ == "__main__":
    app()
