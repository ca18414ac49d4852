"""labels.py — subtype (label) selection for multi-value properties.

A local record shows exactly one subtype per value, whereas a vCard property
may carry several TYPE parameters and, via Apple's X-ABLabel extension, a
free-text label bound to it through a shared property group:

    item1.EMAIL;type=INTERNET:foo@example.com
    item1.X-ABLabel:_$!<Anniversary>!$_

Labels first seen in an X-ABLabel are remembered per addressbook in the
xsubtypes table so they can be written back the same way.
"""
from __future__ import annotations

import logging
import re

import vobject

from .model import BUILTIN_SUBTYPES, DEFAULT_SUBTYPE, LABEL_PROPERTY, XSUBTYPES_TABLE
from .storage import Database

logger = logging.getLogger(__name__)

# special labels from the Apple namespace look like "_$!<Label>!$_"
_APPLE_LABEL = re.compile(r"_\$!<(.*)>!\$_")


def unwrap_label(text: str) -> str:
    return _APPLE_LABEL.sub(r"\1", text)


def type_params(prop: vobject.base.ContentLine) -> list[str]:
    """TYPE values of a property, including bare vCard 2.1 style params."""
    types = list(prop.params.get("TYPE", []))
    types.extend(prop.singletonparams)
    return types


def property_groups(vcard: vobject.base.Component) -> set[str]:
    """All property groups used in the card, upper-cased."""
    return {p.group.upper() for p in vcard.getChildren() if p.group}


def group_label(vcard: vobject.base.Component, group: str) -> str | None:
    for p in vcard.contents.get(LABEL_PROPERTY.lower(), []):
        if p.group and p.group.upper() == group.upper():
            return str(p.value)
    return None


def next_free_group(vcard: vobject.base.Component) -> str:
    used = property_groups(vcard)
    item = 1
    while f"ITEM{item}" in used:
        item += 1
    return f"ITEM{item}"


def clear_orphan_labels(vcard: vobject.base.Component) -> int:
    """Remove X-ABLabel properties whose group no other property uses.

    An X-ABLabel without any group is left alone. Returns the number of
    removed labels.
    """
    used: set[str] = set()
    labels = []
    for p in vcard.getChildren():
        if not p.group:
            continue
        if p.name.upper() == LABEL_PROPERTY:
            labels.append(p)
        else:
            used.add(p.group.upper())

    removed = 0
    for p in labels:
        if p.group.upper() not in used:
            vcard.remove(p)
            removed += 1
    return removed


class SubtypeCatalog:
    """Known subtypes per multi-value field for one addressbook.

    Seeded from the built-in lists and extended with the labels stored for
    the addressbook. Not safe for concurrent use.
    """

    def __init__(self, abook_id: str, db: Database):
        self.abook_id = abook_id
        self.db = db
        self.coltypes: dict[str, list[str]] = {f: list(s) for f, s in BUILTIN_SUBTYPES.items()}
        self.xlabels: dict[str, list[str]] = {f: [] for f in BUILTIN_SUBTYPES}

        rows = self.db.get(abook_id, ["typename", "subtype"], XSUBTYPES_TABLE, False, "abook_id")
        for row in rows:
            attr, subtype = row["typename"], row["subtype"]
            self.coltypes.setdefault(attr, []).append(subtype)
            self.xlabels.setdefault(attr, []).append(subtype)

    def subtypes(self, field: str) -> list[str]:
        return self.coltypes.get(field, [])

    def is_xlabel(self, field: str, subtype: str) -> bool:
        return subtype in self.xlabels.get(field, [])

    def store(self, field: str, subtype: str) -> None:
        self.db.insert(XSUBTYPES_TABLE, ["typename", "subtype", "abook_id"], [field, subtype, self.abook_id])
        self.coltypes.setdefault(field, []).append(subtype)
        self.xlabels.setdefault(field, []).append(subtype)
        logger.info("Stored new custom label %r for %s in addressbook %s", subtype, field, self.abook_id)

    def resolve(self, vcard: vobject.base.Component, prop: vobject.base.ContentLine, field: str) -> str:
        """Select the one subtype to show for a property; first match wins:

         1. the X-ABLabel sharing the property's group (registered if new),
         2. the TYPE value listed earliest in the known subtypes of the field,
            TYPE values not in the list are ignored,
         3. "other".
        """
        if prop.group:
            xlabel = group_label(vcard, prop.group)
            if xlabel:
                xlabel = unwrap_label(xlabel)
                if xlabel not in self.subtypes(field):
                    self.store(field, xlabel)
                return xlabel

        known = self.subtypes(field)
        selection: tuple[str, int] | None = None
        for t in type_params(prop):
            t = t.lower()
            if t in known:
                pref = known.index(t)
                if selection is None or pref < selection[1]:
                    selection = (t, pref)

        return selection[0] if selection else DEFAULT_SUBTYPE

    def assign(self, vcard: vobject.base.Component, prop: vobject.base.ContentLine, field: str, subtype: str) -> None:
        """Attach a subtype to a pristine property (no TYPE, no group).

        Custom labels of this addressbook go into a fresh ITEM<n> group with
        an X-ABLabel; anything else becomes the TYPE parameter.
        """
        if self.is_xlabel(field, subtype):
            group = next_free_group(vcard)
            prop.group = group
            label = vcard.add(LABEL_PROPERTY.lower(), group=group)
            label.value = subtype
        else:
            prop.type_param = subtype
