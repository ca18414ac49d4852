from carddav_bridge.displayname import UNSET_DISPLAYNAME, compose_displayname, determine_showas


def test_company_shows_organization():
    rec = {"showas": "COMPANY", "organization": "Acme", "firstname": "Jane"}
    assert compose_displayname(rec) == "Acme"


def test_company_without_organization_falls_back_to_name():
    rec = {"showas": "company", "organization": "", "surname": "Doe"}
    assert compose_displayname(rec) == "Doe"


def test_first_and_surname():
    assert compose_displayname({"firstname": "Jane", "surname": "Doe"}) == "Jane Doe"
    assert compose_displayname({"firstname": "Jane", "surname": ""}) == "Jane"
    assert compose_displayname({"showas": "INDIVIDUAL", "organization": "Acme", "surname": "Doe"}) == "Doe"


def test_email_and_phone_sorted_by_key():
    rec = {
        "phone:home": ["+1 555 0100"],
        "email:work": ["", "w@example.com"],
        "email:home": ["", ""],
        "website:home": ["http://example.com"],
    }
    assert compose_displayname(rec) == "w@example.com"


def test_phone_used_when_no_email():
    rec = {"website:homepage": ["http://example.com"], "phone:mobile": ["+1 555 0199"]}
    assert compose_displayname(rec) == "+1 555 0199"


def test_fallback():
    assert compose_displayname({"kind": "individual"}) == UNSET_DISPLAYNAME
    assert compose_displayname({}) == "Unset Displayname"


def test_compose_is_pure():
    rec = {"email:home": ["a@b.com"]}
    before = dict(rec)
    assert compose_displayname(rec) == compose_displayname(rec)
    assert rec == before


def test_showas_new_contact():
    assert determine_showas({"organization": "Acme"}) == "COMPANY"
    assert determine_showas({"organization": "Acme", "firstname": "Jane"}) == "INDIVIDUAL"
    assert determine_showas({"organization": "Acme", "surname": "Doe"}) == "INDIVIDUAL"
    assert determine_showas({}) == "INDIVIDUAL"


def test_showas_update():
    assert determine_showas({"showas": "COMPANY", "organization": ""}) == "INDIVIDUAL"
    assert determine_showas({"showas": "COMPANY", "organization": "Acme", "firstname": "J"}) == "COMPANY"
    assert determine_showas({"showas": "INDIVIDUAL", "organization": "Acme"}) == "INDIVIDUAL"
