"""CLI entry point for the visual QA framework."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from visualqa.ai.ollama import OllamaLLMService
from visualqa.ai.test_generator import AITestGenerator
from visualqa.models.config import FrameworkConfig
from visualqa.runner import compare_url
from visualqa.visual.baseline_store import BaselineStore

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(config: str | None) -> FrameworkConfig:
    """Load a JSON config file, or build one from the environment when none is given."""
    try:
        if config:
            return FrameworkConfig.load(config)
        return FrameworkConfig.from_env()
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'visualqa init' to create a default config.")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)


config_option = click.option(
    "--config", "-c", default=None,
    help="Config file path (defaults to environment variables)",
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """AI-assisted visual regression testing"""
    setup_logging(verbose)


@cli.command()
@click.argument("url")
@click.option("--name", "-n", required=True, help="Logical name of the baseline")
@click.option("--update", is_flag=True, help="Overwrite the baseline with this capture")
@click.option("--mask", "-m", multiple=True, help="CSS selector to mask (repeatable)")
@config_option
def compare(url: str, name: str, update: bool, mask: tuple[str, ...], config: str | None) -> None:
    """Screenshot URL and compare it against baseline NAME."""
    cfg = load_config(config)
    try:
        verdict = asyncio.run(compare_url(
            cfg, url, name, update_baselines=update, mask=list(mask),
        ))
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    table = Table(title=f"Visual Comparison: {name}")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    status = "[green]PASSED[/green]" if verdict.passed else "[red]FAILED[/red]"
    table.add_row("Result", status)
    table.add_row("Reason", verdict.reason)
    table.add_row("Baseline", verdict.baseline_path)
    table.add_row("Actual", verdict.actual_path)
    console.print(table)

    if not verdict.passed:
        sys.exit(1)


@cli.group()
def baselines() -> None:
    """Manage stored baseline screenshots."""
    pass


@baselines.command("list")
@config_option
def baselines_list(config: str | None) -> None:
    """List all stored baselines."""
    cfg = load_config(config)
    store = BaselineStore(cfg.baseline_path, cfg.actual_path)
    entries = store.list_baselines()
    if not entries:
        console.print(f"[yellow]No baselines in {store.baselines_dir}[/yellow]")
        return

    table = Table(title="Visual Baselines")
    table.add_column("Name", style="bold")
    table.add_column("Size")
    table.add_column("Modified")
    table.add_column("SHA-256")
    for entry in entries:
        table.add_row(
            entry.name, f"{entry.size_bytes:,} B", entry.modified_at, entry.image_hash[:12],
        )
    console.print(table)


@baselines.command("remove")
@click.argument("name")
@config_option
def baselines_remove(name: str, config: str | None) -> None:
    """Delete baseline NAME so the next run re-creates it."""
    cfg = load_config(config)
    store = BaselineStore(cfg.baseline_path, cfg.actual_path)
    try:
        removed = store.remove_baseline(name)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    if removed:
        console.print(f"[green]Removed baseline:[/green] {name}")
    else:
        console.print(f"[yellow]No baseline named {name}[/yellow]")


@cli.command()
@click.option("--pull", "pull_model", default=None, help="Pull this model if it is missing")
@config_option
def models(pull_model: str | None, config: str | None) -> None:
    """Show the models available on the local Ollama server."""
    cfg = load_config(config)
    service = OllamaLLMService(
        base_url=cfg.ollama_base_url,
        default_model=cfg.ollama_default_model,
        timeout=cfg.ollama_timeout_seconds,
    )

    if pull_model:
        if asyncio.run(service.pull_model_if_needed(pull_model)):
            console.print(f"[green]Model available:[/green] {pull_model}")
        else:
            console.print(f"[red]Could not pull model {pull_model}[/red]")
            sys.exit(1)
        return

    names = asyncio.run(service.list_models())
    if not names:
        console.print(f"[yellow]No models found at {cfg.ollama_base_url} (is Ollama running?)[/yellow]")
        return

    console.print(f"Backend mode: [bold]{cfg.ai_service_mode}[/bold]")
    for model_name in names:
        marker = ""
        if model_name == cfg.ollama_visual_model:
            marker = " [blue](visual)[/blue]"
        elif model_name == cfg.ollama_default_model:
            marker = " [blue](default)[/blue]"
        console.print(f"  {model_name}{marker}")
    if cfg.ollama_visual_model not in names:
        console.print(
            f"[yellow]Visual model {cfg.ollama_visual_model} is not pulled. "
            f"Run 'visualqa models --pull {cfg.ollama_visual_model}'.[/yellow]"
        )


@cli.command()
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Write the generated test here instead of stdout")
@config_option
def generate(spec_file: str, output: str | None, config: str | None) -> None:
    """Generate a Playwright test from the plain-text specification in SPEC_FILE."""
    cfg = load_config(config)
    generator = AITestGenerator.from_config(cfg)
    code = asyncio.run(generator.generate_test_from_spec(Path(spec_file).read_text(encoding="utf-8")))
    if not code:
        console.print("[red]Test generation failed. See the AI debug logs for details.[/red]")
        sys.exit(1)

    if output:
        out_path = Path(output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(code + "\n", encoding="utf-8")
        console.print(f"[green]Generated test written to {out_path}[/green]")
    else:
        click.echo(code)


@cli.command()
@click.argument("test_file", type=click.Path(exists=True, dir_okay=False))
@config_option
def review(test_file: str, config: str | None) -> None:
    """Ask the model for improvement suggestions on TEST_FILE."""
    cfg = load_config(config)
    generator = AITestGenerator.from_config(cfg)
    suggestions = asyncio.run(
        generator.generate_test_improvements(Path(test_file).read_text(encoding="utf-8"))
    )
    if not suggestions:
        console.print("[yellow]No suggestions returned.[/yellow]")
        return

    console.print(f"[bold]Suggestions for {test_file}:[/bold]")
    for i, suggestion in enumerate(suggestions, 1):
        console.print(f"  {i}. {suggestion}", markup=False)


@cli.command()
@click.option("--path", "-p", default="visualqa-config.json", help="Where to write the config")
def init(path: str) -> None:
    """Create a default configuration file."""
    config_path = Path(path)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = FrameworkConfig.from_env()
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now run:")
    console.print(f"  [blue]visualqa compare https://example.com --name home -c {config_path}[/blue]")


if __name__ == "__main__":
    cli()
