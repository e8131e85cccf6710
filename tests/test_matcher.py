from relief_needs.matcher import (
    find_keyword_hits,
    parse_number,
    scan_local_terms,
    scan_locations,
    scan_quantities,
    scan_supplies,
    scan_urgency,
    scan_vulnerable_groups,
)


def _by_item(mentions):
    return {m.item: m for m in mentions}


def test_longer_keyword_claims_span_before_shorter() -> None:
    hits = find_keyword_hits("Need 150 food packets", "supplies")
    assert [h.keyword for h in hits] == ["food packets"]


def test_keywords_respect_word_boundaries() -> None:
    hits = find_keyword_hits("the toilet is broken", "supplies")
    assert [h.keyword for h in hits] == []


def test_scan_supplies_quantities_and_units() -> None:
    supplies = _by_item(scan_supplies("Need 150 food packets and 200 water bottles for 120 children"))
    assert set(supplies) == {"food packets", "water bottles"}
    assert supplies["food packets"].quantity == 150
    assert supplies["food packets"].unit == "packs"
    assert supplies["water bottles"].quantity == 200
    assert supplies["water bottles"].unit == "bottles"
    assert supplies["food packets"].category == "food"


def test_scan_supplies_unit_word_and_of() -> None:
    supplies = _by_item(scan_supplies("Please send 50 kg of rice"))
    assert supplies["rice"].quantity == 50
    assert supplies["rice"].unit == "kg"


def test_scan_supplies_quantity_after_keyword() -> None:
    supplies = _by_item(scan_supplies("Items needed: tents - 20 and blankets"))
    assert supplies["tents"].quantity == 20
    assert supplies["tents"].unit == "units"
    assert supplies["blankets"].quantity is None
    assert supplies["blankets"].unit is None


def test_scan_supplies_default_unit_from_category() -> None:
    supplies = _by_item(scan_supplies("We need 30 blankets"))
    assert supplies["blankets"].unit == "pieces"


def test_scan_supplies_thousands_separator() -> None:
    supplies = _by_item(scan_supplies("Need 1,200 food packets"))
    assert supplies["food packets"].quantity == 1200


def test_scan_supplies_dedupes_and_keeps_quantified() -> None:
    supplies = scan_supplies("Need rice. Send 40 kg rice tomorrow")
    assert len(supplies) == 1
    assert supplies[0].quantity == 40


def test_scan_supplies_bare_number_after_keyword() -> None:
    supplies = _by_item(scan_supplies("Send insulin 2 and rice 5 families"))
    assert supplies["insulin"].quantity == 2
    assert supplies["insulin"].unit == "units"
    assert supplies["rice"].quantity is None


def test_scan_supplies_bare_number_leading_next_item() -> None:
    supplies = _by_item(scan_supplies("Need rice 20 tents"))
    assert supplies["rice"].quantity is None
    assert supplies["tents"].quantity == 20


def test_scan_locations_with_names() -> None:
    locations = scan_locations("Families sheltering at St. Mary's Church need rice")
    assert len(locations) == 1
    assert locations[0].type == "religious"
    assert locations[0].name == "St. Mary's Church"


def test_scan_locations_unnamed() -> None:
    locations = scan_locations("people stuck at the hospital")
    assert [(loc.type, loc.name) for loc in locations] == [("hospital", None)]


def test_scan_locations_following_name_stops_at_location_keyword() -> None:
    locations = [(loc.type, loc.name) for loc in scan_locations("Flooding on Temple Road")]
    assert ("residential", "Temple Road") in locations
    assert ("religious", "Road") not in locations


def test_scan_vulnerable_groups_counts() -> None:
    groups = {g.group: g for g in scan_vulnerable_groups("Need 150 food packets for 120 children and 5 elderly")}
    assert groups["children"].count == 120
    assert groups["elderly"].count == 5
    assert groups["elderly"].priority == "high"


def test_scan_vulnerable_groups_age_phrase_is_special_need() -> None:
    groups = {g.group: g for g in scan_vulnerable_groups("A 3 month old baby needs milk")}
    assert groups["infant"].count is None
    assert groups["infant"].special_needs == "3 month old"
    assert groups["infant"].priority == "critical"


def test_scan_vulnerable_groups_medical_special_needs() -> None:
    groups = {g.group: g for g in scan_vulnerable_groups("Two diabetic patients without insulin")}
    assert groups["medical_conditions"].special_needs == "diabetic"


def test_scan_quantities_in_text_order() -> None:
    quantities = scan_quantities("25 families with 40 children")
    assert [(q.value, q.type) for q in quantities] == [(25, "families"), (40, "children")]


def test_scan_urgency_tiers() -> None:
    assert scan_urgency("URGENT: water needed") == "critical"
    assert scan_urgency("supplies running low") == "high"
    assert scan_urgency("we need blankets") == "medium"
    assert scan_urgency("all good here") == "none"


def test_scan_local_terms() -> None:
    assert scan_local_terms("bath and watura at the pansala") == ["bath", "watura", "pansala"]
    assert scan_local_terms("bathroom") == []


def test_parse_number() -> None:
    assert parse_number("1,500") == 1500
    assert parse_number(",") is None
