from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .conversion import ToLocalResult
from .labels import SubtypeCatalog
from .model import split_multi_key

console = Console(stderr=True)

# ── Palette ────────────────────────────────────────────────────────────────────
_ACCENT  = "#4d9fff"
_GREEN   = "#3ecf8e"
_AMBER   = "#f0a500"
_DIM     = "#546075"


def print_labels(catalog: SubtypeCatalog) -> None:
    table = Table(title=f"Known subtypes — addressbook {catalog.abook_id}", header_style="bold")
    table.add_column("Field", style=_ACCENT)
    table.add_column("Subtypes")
    for field, subtypes in catalog.coltypes.items():
        cell = Text()
        for i, subtype in enumerate(subtypes):
            if i:
                cell.append(", ", style=_DIM)
            if catalog.is_xlabel(field, subtype):
                cell.append(subtype, style=f"bold {_AMBER}")
            else:
                cell.append(subtype)
        table.add_row(field, cell)
    console.print(table)
    console.print(Text("  custom labels of this addressbook are highlighted", style=f"dim {_DIM}"))


def print_conversion_summary(results: list[ToLocalResult]) -> None:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Values")
    table.add_column("Card updated")
    for r in results:
        values = sum(
            len(v or ()) for k, v in r.record.items() if split_multi_key(k) is not None
        )
        updated = Text("yes", style=_GREEN) if r.needs_update else Text("no", style=_DIM)
        table.add_row(r.record.get("name", ""), r.record.get("kind", ""), str(values), updated)
    console.print(table)
    console.print(f"  Converted [bold]{len(results)}[/bold] card(s)")
