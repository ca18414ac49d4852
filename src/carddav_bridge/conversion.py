"""conversion.py — convert between vCards and local addressbook records.

A converter instance is bound to one addressbook: the custom labels
(X-ABLabel) it knows are specific to that addressbook and are loaded from the
database once, at construction.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import vobject

from .displayname import compose_displayname, determine_showas
from .exceptions import ConversionError
from .labels import SubtypeCatalog, clear_orphan_labels
from .model import (
    ADDRESS_PARTS,
    DEFAULT_KIND,
    GROUP_KIND,
    MULTI_FIELDS,
    NAME_PARTS,
    SIMPLE_PROPERTIES,
    FieldKind,
    LocalRecord,
    MultiField,
    split_multi_key,
)
from .photos import PhotoCropper, crop_photo, is_uri_photo, materialize_photo
from .storage import Database
from .transport import Collection

logger = logging.getLogger(__name__)

VCARD_VERSION = "3.0"

_DEPARTMENT_SEP = re.compile(r"\s*;\s*")

# vobject.vcard.Address attribute for each local address part
_ADR_ATTRS = dict(zip(ADDRESS_PARTS, ("box", "extended", "street", "city", "region", "code", "country")))


def _text(value: Any) -> str:
    """Flatten a vobject structured-value component (str or list) to text."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def rev_timestamp() -> str:
    """RFC 2425 date-time in UTC, e.g. 2020-11-12T16:18:41Z."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


# ── Multi-value property codecs ───────────────────────────────────────────────

class PropertyCodec(Protocol):
    def to_local(self, prop: vobject.base.ContentLine) -> Any: ...

    def to_wire(self, vcard: vobject.base.Component, mf: MultiField, value: Any) -> vobject.base.ContentLine | None: ...


class TextCodec:
    def to_local(self, prop):
        return _text(prop.value)

    def to_wire(self, vcard, mf, value):
        if not value:
            return None
        prop = vcard.add(mf.vcard_name.lower())
        prop.value = str(value)
        return prop


class AddressCodec:
    def to_local(self, prop) -> dict[str, str]:
        adr = prop.value
        addr = {}
        for part, attr in _ADR_ATTRS.items():
            text = _text(getattr(adr, attr, None))
            if text:
                addr[part] = text
        return addr

    def to_wire(self, vcard, mf, value):
        value = value or {}
        if not any(value.get(part) for part in ADDRESS_PARTS):
            return None
        prop = vcard.add(mf.vcard_name.lower())
        prop.value = vobject.vcard.Address(
            **{attr: value.get(part) or "" for part, attr in _ADR_ATTRS.items()}
        )
        return prop


CODECS: dict[FieldKind, PropertyCodec] = {
    FieldKind.TEXT: TextCodec(),
    FieldKind.ADDRESS: AddressCodec(),
}


@dataclass
class ToLocalResult:
    record: LocalRecord
    vcard: vobject.base.Component
    needs_update: bool = False


class DataConverter:
    """Converts vCards of one addressbook to local records and back.

    Collaborators are injected: the database holding the addressbook's custom
    labels and an optional photo cropper (None disables X-ABCROP-RECTANGLE).
    Not designed for concurrent use.
    """

    def __init__(self, abook_id: str, db: Database, cropper: PhotoCropper | None = None):
        self.abook_id = abook_id
        self.catalog = SubtypeCatalog(abook_id, db)
        self.cropper = cropper

    @property
    def coltypes(self) -> dict[str, list[str]]:
        return self.catalog.coltypes

    # ── vCard -> local record ──────────────────────────────────────────────────

    def to_local(self, vcard: vobject.base.Component, collection: Collection) -> ToLocalResult:
        """Create the local representation of a vCard.

        An external photo reference is downloaded and inlined into the card;
        needs_update then tells the caller to store the modified card so the
        photo is not fetched again.
        """
        if vcard.name.upper() != "VCARD":
            raise ConversionError(f"Expected a VCARD component, got {vcard.name}")

        needs_update = False
        record: LocalRecord = {"kind": DEFAULT_KIND}

        for vkey, key in SIMPLE_PROPERTIES.items():
            lines = vcard.contents.get(vkey.lower())
            if lines:
                value = lines[0].value
                record[key] = value if isinstance(value, bytes) else _text(value)

        if "photo" in record:
            photo = vcard.contents["photo"][0]
            if is_uri_photo(photo):
                needs_update = materialize_photo(record, vcard, collection)
            cropped = crop_photo(vcard.contents["photo"][0], self.cropper)
            if cropped is not None:
                record["photo"] = cropped

        n = vcard.contents.get("n")
        if n:
            name = n[0].value
            parts = (name.family, name.given, name.additional, name.prefix, name.suffix)
            for key, part in zip(NAME_PARTS, parts):
                text = _text(part)
                if text:
                    record[key] = text

        org = vcard.contents.get("org")
        if org:
            parts = org[0].value
            if not isinstance(parts, list):
                parts = [parts]
            parts = [_text(p) for p in parts]
            if parts and parts[0]:
                record["organization"] = parts[0]
            department = "; ".join(parts[1:])
            if department:
                record["department"] = department

        for mf in MULTI_FIELDS:
            codec = CODECS[mf.kind]
            for prop in vcard.contents.get(mf.vcard_name.lower(), []):
                label = self.catalog.resolve(vcard, prop, mf.field)
                record.setdefault(f"{mf.field}:{label}", []).append(codec.to_local(prop))

        if not record.get("name"):
            record["name"] = compose_displayname(record)

        return ToLocalResult(record=record, vcard=vcard, needs_update=needs_update)

    # ── local record -> vCard ──────────────────────────────────────────────────

    def from_local(self, record: LocalRecord, vcard: vobject.base.Component | None = None) -> vobject.base.Component:
        """Create a new vCard, or update `vcard` in place, from a local record.

        The record passed in is not modified.
        """
        record = dict(record)
        record.pop("vcard", None)

        is_group = record.get("kind") == GROUP_KIND

        if not record.get("name"):
            if not is_group:
                record["showas"] = determine_showas(record)
            record["name"] = compose_displayname(record)

        if vcard is None:
            vcard = vobject.vCard()
            vcard.add("version").value = VCARD_VERSION

        _replace(vcard, "rev").value = rev_timestamp()

        # N is mandatory
        if is_group:
            name = vobject.vcard.Name(family=record["name"])
        else:
            name = vobject.vcard.Name(
                **dict(zip(
                    ("family", "given", "additional", "prefix", "suffix"),
                    (record.get(key) or "" for key in NAME_PARTS),
                ))
            )
        _replace(vcard, "n").value = name

        self._set_org(record, vcard)
        self._set_single_values(record, vcard)
        self._set_multi_values(record, vcard)

        return vcard

    def _set_org(self, record: LocalRecord, vcard: vobject.base.Component) -> None:
        parts: list[str] = []
        if record.get("organization"):
            parts.append(record["organization"])

        if record.get("department"):
            # keep the organization slot so department is not read back as organization
            if not parts:
                parts.append("")
            parts.extend(_DEPARTMENT_SEP.split(record["department"]))

        if parts:
            _replace(vcard, "org").value = parts
        else:
            _remove_all(vcard, "org")

    def _set_single_values(self, record: LocalRecord, vcard: vobject.base.Component) -> None:
        # photo is only present in a record when it was edited; absent means
        # keep the card's photo, an empty value means delete it
        for vkey, key in SIMPLE_PROPERTIES.items():
            value = record.get(key)
            if not value:
                if key != "photo" or "photo" in record:
                    _remove_all(vcard, vkey)
                continue

            if key == "photo":
                line = _replace(vcard, vkey)
                line.encoding_param = "b"
                line.value_param = "binary"
                line.value = value if isinstance(value, bytes) else str(value).encode("utf-8")
            else:
                _replace(vcard, vkey).value = str(value)

    def _set_multi_values(self, record: LocalRecord, vcard: vobject.base.Component) -> None:
        # Subtypes of existing properties cannot be mapped to the edited
        # values, so all are recreated. Extra TYPEs beyond the selected one
        # are lost.
        for mf in MULTI_FIELDS:
            _remove_all(vcard, mf.vcard_name)

        clear_orphan_labels(vcard)

        for mf in MULTI_FIELDS:
            codec = CODECS[mf.kind]
            for key in list(record):
                split = split_multi_key(key)
                if split is None or split[0] != mf.field:
                    continue
                subtype = split[1]
                for value in record[key] or ():
                    prop = codec.to_wire(vcard, mf, value)
                    if prop is not None:
                        self.catalog.assign(vcard, prop, mf.field, subtype)


def _remove_all(vcard: vobject.base.Component, name: str) -> None:
    vcard.contents.pop(name.lower(), None)


def _replace(vcard: vobject.base.Component, name: str) -> vobject.base.ContentLine:
    _remove_all(vcard, name)
    return vcard.add(name.lower())
