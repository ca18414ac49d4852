from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# A local record: flat mapping of field key -> value. Multi-valued fields use
# composite keys "<field>:<subtype>" mapping to a list of values.
LocalRecord = dict[str, Any]


class FieldKind(Enum):
    TEXT = "text"
    ADDRESS = "address"


@dataclass(frozen=True)
class MultiField:
    vcard_name: str
    field: str
    kind: FieldKind = FieldKind.TEXT


# VCard property name -> local key, for properties with a single value
SIMPLE_PROPERTIES: dict[str, str] = {
    "BDAY": "birthday",
    "FN": "name",
    "NICKNAME": "nickname",
    "NOTE": "notes",
    "PHOTO": "photo",
    "TITLE": "jobtitle",
    "UID": "cuid",
    "X-ABSHOWAS": "showas",
    "X-ANNIVERSARY": "anniversary",
    "X-ASSISTANT": "assistant",
    "X-GENDER": "gender",
    "X-MANAGER": "manager",
    "X-SPOUSE": "spouse",
    # Apple extension; the vCard 4 KIND property is not mapped
    "X-ADDRESSBOOKSERVER-KIND": "kind",
}

MULTI_FIELDS: tuple[MultiField, ...] = (
    MultiField("EMAIL", "email"),
    MultiField("TEL", "phone"),
    MultiField("URL", "website"),
    MultiField("ADR", "address", FieldKind.ADDRESS),
)

# Order matters: earlier entries win when a property carries several TYPEs.
BUILTIN_SUBTYPES: dict[str, tuple[str, ...]] = {
    "email": ("home", "work", "other", "internet"),
    "phone": (
        "home", "work", "home2", "work2", "mobile", "main", "homefax",
        "workfax", "car", "pager", "video", "assistant", "other",
    ),
    "address": ("home", "work", "other"),
    "website": ("homepage", "work", "blog", "profile", "other"),
}

NAME_PARTS: tuple[str, ...] = ("surname", "firstname", "middlename", "prefix", "suffix")

ADDRESS_PARTS: tuple[str, ...] = (
    "pobox",     # post office box
    "extended",  # extended address
    "street",
    "locality",  # e.g. city
    "region",    # e.g. state or province
    "zipcode",
    "country",
)

DEFAULT_SUBTYPE = "other"
DEFAULT_KIND = "individual"
GROUP_KIND = "group"

SHOWAS_INDIVIDUAL = "INDIVIDUAL"
SHOWAS_COMPANY = "COMPANY"

LABEL_PROPERTY = "X-ABLABEL"
CROP_PARAM = "X-ABCROP-RECTANGLE"

# vendor label table: (typename, subtype, abook_id)
XSUBTYPES_TABLE = "xsubtypes"


def multi_field(field: str) -> MultiField | None:
    for mf in MULTI_FIELDS:
        if mf.field == field:
            return mf
    return None


def split_multi_key(key: str) -> tuple[str, str] | None:
    """Split a "<field>:<subtype>" record key, or None for plain keys."""
    field, sep, subtype = key.partition(":")
    if not sep or multi_field(field) is None:
        return None
    return field, subtype
