from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from .config import DEFAULT_CONF_PATH, Settings, load_settings, write_default_config
from .conversion import DataConverter
from .exceptions import UserError
from .exporter import export_records, records_from_json, records_to_json
from .io import read_vcards_from_files, write_vcards
from .photos import default_cropper
from .report import print_conversion_summary, print_labels
from .storage import JsonDatabase
from .transport import HttpCollection

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="carddav-bridge: convert contacts between vCards and local addressbook records.",
)
console = Console(stderr=True)


# ── Shared setup ───────────────────────────────────────────────────────────────

def _setup(config: Path, log_level: str | None) -> tuple[Settings, DataConverter]:
    try:
        settings = load_settings(config)
    except UserError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=2)

    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )

    db = JsonDatabase(settings.database)
    cropper = default_cropper() if settings.crop_photos else None
    return settings, DataConverter(settings.abook_id, db, cropper)


_CONFIG_OPT = typer.Option(DEFAULT_CONF_PATH, "--config", "-c", help="Path of the TOML config file")
_LOG_OPT = typer.Option(None, "--log-level", help="Override the configured log level")


# ── `to-local` command ─────────────────────────────────────────────────────────

@app.command("to-local")
def to_local(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help=".vcf file(s) to convert"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the records JSON here instead of stdout"),
    write_back: Path | None = typer.Option(
        None, "--write-back",
        help="Write the cards (with inlined photos) to this .vcf file",
    ),
    config: Path = _CONFIG_OPT,
    log_level: str | None = _LOG_OPT,
) -> None:
    """Convert vCards to local addressbook records (JSON)."""
    settings, converter = _setup(config, log_level)
    collection = HttpCollection(settings.base_url, settings.username, settings.password, settings.timeout)

    try:
        pairs = read_vcards_from_files(files)
    except UserError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=2)

    results = [converter.to_local(vc, collection) for vc, _ in pairs]
    text = records_to_json([r.record for r in results])
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")

    print_conversion_summary(results)

    if write_back is not None:
        count = write_vcards([r.vcard for r in results], write_back)
        updated = sum(1 for r in results if r.needs_update)
        console.print(f"[bold green]✓ Wrote {count} card(s) → {write_back}[/bold green] ({updated} updated)")


# ── `to-vcard` command ─────────────────────────────────────────────────────────

@app.command("to-vcard")
def to_vcard(
    records: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with one record or a list of records"),
    output: Path = typer.Option(..., "--output", "-o", help="Output .vcf path"),
    update: Path | None = typer.Option(
        None, "--update",
        help="Existing .vcf whose cards are updated in place, matched by position",
    ),
    config: Path = _CONFIG_OPT,
    log_level: str | None = _LOG_OPT,
) -> None:
    """Convert local addressbook records (JSON) to vCards."""
    _, converter = _setup(config, log_level)

    try:
        data = records_from_json(records.read_text(encoding="utf-8"))
        existing = [vc for vc, _ in read_vcards_from_files([update])] if update else None
    except UserError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=2)

    count = export_records(data, converter, output, existing)
    console.print(f"[bold green]✓ Wrote {count} card(s) → {output}[/bold green]")


# ── `labels` command ───────────────────────────────────────────────────────────

@app.command()
def labels(
    config: Path = _CONFIG_OPT,
    log_level: str | None = _LOG_OPT,
) -> None:
    """Show the known subtypes, including custom labels of the addressbook."""
    _, converter = _setup(config, log_level)
    print_labels(converter.catalog)


# ── `init` command ─────────────────────────────────────────────────────────────

@app.command()
def init(config: Path = _CONFIG_OPT) -> None:
    """Write a default config file if none exists."""
    if write_default_config(config):
        console.print(f"[bold green]✓ Wrote {config}[/bold green]")
    else:
        console.print(f"[dim]{config} already exists, left unchanged.[/dim]")


if __name__ == "__main__":
    app()
