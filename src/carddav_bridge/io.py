from __future__ import annotations

import logging
from pathlib import Path

import vobject

from .exceptions import ConversionError

logger = logging.getLogger(__name__)


def read_vcards(data: str, source_label: str = "<string>") -> list[vobject.base.Component]:
    """Parse every VCARD in `data`; other components are skipped."""
    cards: list[vobject.base.Component] = []
    try:
        for vc in vobject.readComponents(data):
            if vc.name.upper() == "VCARD":
                cards.append(vc)
            else:
                logger.debug("%s: skipping %s component", source_label, vc.name)
    except vobject.base.ParseError as e:
        raise ConversionError(f"{source_label}: not a valid vCard file", problems=[str(e)]) from e
    return cards


def parse_vcard(data: str) -> vobject.base.Component:
    cards = read_vcards(data)
    if len(cards) != 1:
        raise ConversionError(f"Expected exactly one vCard, found {len(cards)}")
    return cards[0]


def serialize_vcard(vcard: vobject.base.Component) -> str:
    # cards from servers may lack FN; they are written back as received
    return vcard.serialize(validate=False)


# ── Files ──────────────────────────────────────────────────────────────────────

def read_vcards_from_files(paths: list[Path]) -> list[tuple[vobject.base.Component, str]]:
    """Parse all .vcf files and return (vobject_component, source_label) pairs."""
    results: list[tuple[vobject.base.Component, str]] = []
    for p in paths:
        label = p.stem
        raw = p.read_text(encoding="utf-8", errors="replace")
        for vc in read_vcards(raw, label):
            results.append((vc, label))
    return results


def write_vcards(cards: list[vobject.base.Component], path: Path) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(serialize_vcard(c) for c in cards), encoding="utf-8")
    return len(cards)
