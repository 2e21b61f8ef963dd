"""Typer-based CLI for PiScan with Pydantic v2 configuration."""

import json
import logging
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from PiScan.DigitStream.errors import DigitStreamError
from PiScan.DigitStream.reader import open_digit_stream

from .candidates import DigitApiValidator, find_candidates, iter_records
from .config import load_config
from .errors import PalindromeSearchError, RunAbortedError
from .runner import SearchRun, build_bucket, load_result_set

console = Console()
app = typer.Typer(help="PiScan palindrome search over packed digit streams")

# ============================================================================
# Setup
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    """Setup logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _overrides(**sections: dict[str, Any]) -> dict[str, Any]:
    """Drop unset options so they do not mask file or environment values."""
    cleaned: dict[str, Any] = {}
    for section, values in sections.items():
        kept = {k: v for k, v in values.items() if v is not None}
        if kept:
            cleaned[section] = kept
    return cleaned


ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config file",
    envvar="PISCAN_CONFIG",
)

# ============================================================================
# Commands
# ============================================================================


@app.command()
def scan(
    config: Optional[str] = ConfigOption,
    manifest: Optional[str] = typer.Option(None, "--manifest", "-m", help="Block manifest"),
    start: Optional[int] = typer.Option(None, "--start", "-s", help="Start offset"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Digits per chunk"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Number of parallel workers"),
    output_dir: Optional[str] = typer.Option(None, "--output", "-o", help="Output directory"),
    cache: Optional[bool] = typer.Option(None, "--cache/--no-cache", help="Shared page cache"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    """Scan the digit stream for long palindromes."""
    _setup_logging(verbose)

    try:
        cfg = load_config(
            path=config,
            cli_overrides=_overrides(
                catalog={"manifest": manifest},
                scan={"start": start, "chunk_size": chunk_size},
                workers={"count": workers},
                output={"directory": output_dir},
                cache={"enabled": cache},
            ),
        )
        search = SearchRun(cfg)
        console.print(
            Panel(
                f"[bold green]✓ Config loaded[/bold green]\n"
                f"Hash: {cfg.config_hash()[:8]}...\n"
                f"Digits: {search.result_set.total_digits} (radix {search.result_set.radix})\n"
                f"Workers: {cfg.workers.count}",
                title="PiScan",
            )
        )
        result = search.run()
    except RunAbortedError as e:
        console.print(f"[red]✗ {e}[/red]")
        console.print(f"Chunks completed before abort: {e.chunks_completed}")
        raise typer.Exit(code=1)
    except (PalindromeSearchError, DigitStreamError, OSError) as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        if verbose:
            raise
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"[bold green]Search finished[/bold green]\n"
            f"Chunks: {result.chunks_completed}/{result.chunks_planned}\n"
            f"Records: {result.records_written}\n"
            f"Retries: {result.retries}\n"
            f"Elapsed: {result.elapsed_s or 0:.1f}s",
            title="Execution Summary",
        )
    )
    if result.cancelled:
        console.print("[yellow]Run was cancelled[/yellow]")
        raise typer.Exit(code=130)


@app.command()
def candidates(
    config: Optional[str] = ConfigOption,
    results_dir: Optional[str] = typer.Option(None, "--results", "-r", help="Batch file directory"),
    min_length: Optional[int] = typer.Option(None, "--min-length", help="Shortest palindrome"),
    validate: Optional[bool] = typer.Option(
        None, "--validate/--no-validate", help="Check positions against the digit API"
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON lines"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    """List prime candidates from batch files, longest first."""
    _setup_logging(verbose)

    try:
        cfg = load_config(
            path=config,
            cli_overrides=_overrides(
                output={"directory": results_dir},
                candidates={"min_length": min_length, "validate_remote": validate},
            ),
        )
        opts = cfg.candidates
        found = find_candidates(
            iter_records(cfg.output.directory),
            min_length=opts.min_length,
            excluded_last_digits=opts.excluded_last_digits,
        )
        if opts.validate_remote:
            with DigitApiValidator(opts.api_url, radix=opts.radix) as validator:
                for candidate in found:
                    validator.validate(candidate)
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        if verbose:
            raise
        raise typer.Exit(code=1)

    if as_json:
        for candidate in found:
            typer.echo(json.dumps(candidate.__dict__))
        return

    table = Table(title=f"Candidates ({len(found)})")
    table.add_column("Length", style="cyan")
    table.add_column("Position", style="green")
    table.add_column("Palindrome", style="white")
    table.add_column("Validated", style="magenta")
    for candidate in found:
        validated = "-" if candidate.validated is None else ("✓" if candidate.validated else "✗")
        table.add_row(str(candidate.length), str(candidate.position), candidate.text, validated)
    console.print(table)


@app.command()
def read(
    offset: int = typer.Argument(..., help="First digit to print"),
    count: int = typer.Argument(100, help="Digits to print"),
    config: Optional[str] = ConfigOption,
    manifest: Optional[str] = typer.Option(None, "--manifest", "-m", help="Block manifest"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose"),
) -> None:
    """Print decoded digits from the stream."""
    _setup_logging(verbose)

    try:
        cfg = load_config(path=config, cli_overrides=_overrides(catalog={"manifest": manifest}))
        result_set = load_result_set(cfg)
        bucket = build_bucket(cfg.storage)
        try:
            with open_digit_stream(result_set, bucket) as reader:
                digits = reader.read_at(offset, count)
        finally:
            close = getattr(bucket, "close", None)
            if close is not None:
                close()
    except (PalindromeSearchError, DigitStreamError, OSError) as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        if verbose:
            raise
        raise typer.Exit(code=1)

    typer.echo(digits.decode("ascii"))


@app.command()
def print_config(
    config: Optional[str] = ConfigOption,
    raw: bool = typer.Option(False, "--raw", help="Raw JSON"),
) -> None:
    """Print merged effective config."""
    try:
        cfg = load_config(path=config)
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)

    data = cfg.model_dump(mode="json")
    if raw:
        typer.echo(json.dumps(data, indent=2))
    else:
        console.print(Panel(json.dumps(data, indent=2), title="PiScan Config", expand=False))


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
