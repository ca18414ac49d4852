from __future__ import annotations

from .model import SHOWAS_COMPANY, SHOWAS_INDIVIDUAL, LocalRecord, split_multi_key

UNSET_DISPLAYNAME = "Unset Displayname"

_NAME_SOURCES = ("email", "phone")


def compose_displayname(record: LocalRecord) -> str:
    """Name to display for a record that has none.

    Used when an edit leaves the display name empty, and for cards served
    with an empty or missing FN.
    """
    showas = record.get("showas") or ""
    if showas.upper() == SHOWAS_COMPANY and record.get("organization"):
        return record["organization"]

    dname = [record[attr] for attr in ("firstname", "surname") if record.get(attr)]
    if dname:
        return " ".join(dname)

    # no name? try email and phone
    keys = []
    for k in record:
        split = split_multi_key(k)
        if split is not None and split[0] in _NAME_SOURCES:
            keys.append(k)
    for key in sorted(keys):
        for value in record[key] or ():
            if value:
                return value

    return UNSET_DISPLAYNAME


def determine_showas(record: LocalRecord) -> str:
    """INDIVIDUAL or COMPANY, for a record about to be written to a card.

    For an update the record must carry the previous showas value.
    """
    showas = record.get("showas")
    if not showas:
        if not record.get("surname") and not record.get("firstname") and record.get("organization"):
            return SHOWAS_COMPANY
        return SHOWAS_INDIVIDUAL

    if not record.get("organization"):
        return SHOWAS_INDIVIDUAL
    return showas
