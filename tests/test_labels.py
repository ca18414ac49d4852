"""Tests for subtype selection, custom labels and property group bookkeeping."""
from __future__ import annotations

import vobject

from carddav_bridge.labels import (
    SubtypeCatalog,
    clear_orphan_labels,
    next_free_group,
    property_groups,
    unwrap_label,
)
from carddav_bridge.storage import JsonDatabase


# ── helpers ────────────────────────────────────────────────────────────────────

def _vcard(extra_props: str = ""):
    vcf = f"BEGIN:VCARD\nVERSION:3.0\nFN:Test\nN:;Test;;;\n{extra_props}\nEND:VCARD"
    return vobject.readOne(vcf)


def _catalog(rows=None, abook_id="42"):
    db = JsonDatabase()
    for typename, subtype, abook in rows or []:
        db.insert("xsubtypes", ["typename", "subtype", "abook_id"], [typename, subtype, abook])
    return SubtypeCatalog(abook_id, db), db


def _resolve(catalog, vc, name="email", field="email", index=0):
    return catalog.resolve(vc, vc.contents[name][index], field)


# ── Catalog loading ────────────────────────────────────────────────────────────

def test_catalog_builtin_order():
    catalog, _ = _catalog()
    assert catalog.subtypes("email") == ["home", "work", "other", "internet"]
    assert catalog.subtypes("address") == ["home", "work", "other"]


def test_catalog_loads_only_own_addressbook_labels():
    catalog, _ = _catalog([
        ("email", "Private", "42"),
        ("phone", "Boat", "42"),
        ("email", "Elsewhere", "7"),
    ])
    assert catalog.subtypes("email")[-1] == "Private"
    assert "Elsewhere" not in catalog.subtypes("email")
    assert catalog.is_xlabel("phone", "Boat")
    assert not catalog.is_xlabel("phone", "home")


# ── Label resolution ───────────────────────────────────────────────────────────

def test_resolve_single_type():
    catalog, _ = _catalog()
    vc = _vcard("EMAIL;TYPE=work:c@d.com")
    assert _resolve(catalog, vc) == "work"


def test_resolve_prefers_earliest_known_type():
    catalog, _ = _catalog()
    vc = _vcard("EMAIL;TYPE=work;TYPE=home:a@b.com")
    assert _resolve(catalog, vc) == "home"


def test_resolve_is_case_insensitive():
    catalog, _ = _catalog()
    vc = _vcard("TEL;TYPE=VOICE;TYPE=MOBILE:+49 170 1234567")
    assert _resolve(catalog, vc, "tel", "phone") == "mobile"


def test_resolve_unknown_types_default_to_other():
    catalog, _ = _catalog()
    vc = _vcard("TEL;TYPE=CELL:+49 170 1234567\nEMAIL:x@y.com")
    assert _resolve(catalog, vc, "tel", "phone") == "other"
    assert _resolve(catalog, vc) == "other"


def test_resolve_bare_type_parameter():
    catalog, _ = _catalog()
    vc = _vcard("TEL;HOME:+44 20 7946 0000")
    assert _resolve(catalog, vc, "tel", "phone") == "home"


def test_resolve_selection_does_not_leak_between_properties():
    catalog, _ = _catalog()
    vc = _vcard("EMAIL;TYPE=work:a@b.com\nEMAIL:c@d.com")
    assert _resolve(catalog, vc, index=0) == "work"
    assert _resolve(catalog, vc, index=1) == "other"


def test_resolve_xlabel_wins_over_type():
    catalog, db = _catalog()
    vc = _vcard("item1.EMAIL;TYPE=home:a@b.com\nitem1.X-ABLabel:_$!<Anniversary>!$_")
    assert _resolve(catalog, vc) == "Anniversary"
    assert catalog.subtypes("email")[-1] == "Anniversary"
    assert catalog.is_xlabel("email", "Anniversary")
    assert db.tables["xsubtypes"] == [
        {"typename": "email", "subtype": "Anniversary", "abook_id": "42"},
    ]


def test_resolve_group_lookup_is_case_insensitive():
    catalog, _ = _catalog()
    vc = _vcard("item1.EMAIL:a@b.com\nITEM1.X-ABLABEL:Private")
    assert _resolve(catalog, vc) == "Private"


def test_resolve_group_without_label_uses_type():
    catalog, db = _catalog()
    vc = _vcard("item1.EMAIL;TYPE=work:a@b.com\nitem1.X-ABADR:de")
    assert _resolve(catalog, vc) == "work"
    assert "xsubtypes" not in db.tables


def test_known_label_is_registered_once():
    catalog, db = _catalog()
    vc = _vcard(
        "item1.EMAIL:a@b.com\nitem1.X-ABLabel:Custom\n"
        "item2.EMAIL:c@d.com\nitem2.X-ABLabel:Custom"
    )
    assert _resolve(catalog, vc, index=0) == "Custom"
    assert _resolve(catalog, vc, index=1) == "Custom"
    assert _resolve(catalog, vc, index=0) == "Custom"
    assert len(db.tables["xsubtypes"]) == 1
    assert catalog.subtypes("email").count("Custom") == 1


def test_builtin_label_via_xlabel_is_not_stored():
    catalog, db = _catalog()
    vc = _vcard("item1.EMAIL:a@b.com\nitem1.X-ABLabel:work")
    assert _resolve(catalog, vc) == "work"
    assert "xsubtypes" not in db.tables


def test_unwrap_label():
    assert unwrap_label("_$!<HomePage>!$_") == "HomePage"
    assert unwrap_label("Plain") == "Plain"


# ── Label assignment ───────────────────────────────────────────────────────────

def test_assign_standard_label_sets_type():
    catalog, _ = _catalog()
    vc = _vcard()
    prop = vc.add("email")
    prop.value = "a@b.com"
    catalog.assign(vc, prop, "email", "work")
    assert prop.params["TYPE"] == ["work"]
    assert prop.group is None


def test_assign_custom_label_uses_group():
    catalog, _ = _catalog([("email", "Private", "42")])
    vc = _vcard("item1.TEL:+1 555 0100\nItem2.URL:http://example.com")
    prop = vc.add("email")
    prop.value = "a@b.com"
    catalog.assign(vc, prop, "email", "Private")
    assert prop.group == "ITEM3"
    assert "TYPE" not in prop.params
    labels = vc.contents["x-ablabel"]
    assert [(p.group, p.value) for p in labels] == [("ITEM3", "Private")]
    assert "ITEM3.X-ABLABEL:Private" in vc.serialize()


def test_custom_label_of_other_field_is_a_type():
    catalog, _ = _catalog([("phone", "Boat", "42")])
    vc = _vcard()
    prop = vc.add("email")
    prop.value = "a@b.com"
    catalog.assign(vc, prop, "email", "Boat")
    assert prop.params["TYPE"] == ["Boat"]


# ── Groups ─────────────────────────────────────────────────────────────────────

def test_next_free_group_skips_used_case_insensitive():
    vc = _vcard("item1.EMAIL:a@b.com\nITEM2.TEL:+1 555 0100")
    assert property_groups(vc) == {"ITEM1", "ITEM2"}
    assert next_free_group(vc) == "ITEM3"


def test_next_free_group_fills_gaps():
    vc = _vcard("item2.EMAIL:a@b.com")
    assert next_free_group(vc) == "ITEM1"


def test_clear_orphan_labels():
    vc = _vcard(
        "item1.EMAIL:a@b.com\nitem1.X-ABLabel:Kept\n"
        "item2.X-ABLabel:Orphan\n"
        "X-ABLabel:Ungrouped"
    )
    assert clear_orphan_labels(vc) == 1
    remaining = sorted(str(p.value) for p in vc.contents["x-ablabel"])
    assert remaining == ["Kept", "Ungrouped"]
