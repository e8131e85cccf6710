"""Keyword taxonomy for supplies, locations and vulnerable groups.

The tables below are static and loaded once at import. Every entry becomes an
immutable :class:`TaxonomyEntry`; lookups go through :func:`classify` so the
first-match strategy can be swapped without touching callers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Literal

Priority = Literal["critical", "high", "medium", "low"]
Domain = Literal["supplies", "locations", "vulnerable_groups"]

PRIORITY_LEVELS: Dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 4}
PRIORITY_BY_LEVEL = {v: k for k, v in PRIORITY_LEVELS.items()}

DOMAINS: tuple[str, ...] = ("supplies", "locations", "vulnerable_groups")


@dataclass(frozen=True)
class TaxonomyEntry:
    domain: str
    subcategory: str
    keywords: tuple[str, ...]
    priority: Priority
    icon: str
    unit: str | None = None


@dataclass(frozen=True)
class ClassifiedCategory:
    subcategory: str
    priority: Priority
    icon: str


@dataclass(frozen=True)
class QuantityPattern:
    words: str
    result_type: str
    regex: re.Pattern[str]
    word_regex: re.Pattern[str]


SUPPLY_KEYWORDS: Dict[str, dict] = {
    "medical": {
        "keywords": [
            "medicine", "medicines", "medication", "medications", "drugs",
            "insulin", "tablets", "pills", "syrup", "injection", "injections",
            "bandage", "bandages", "first aid", "antiseptic", "paracetamol",
            "antibiotics", "painkillers", "ointment", "cream", "drops",
            "inhaler", "nebulizer", "oxygen", "oxygen cylinder", "saline",
            "glucose", "iv drip", "syringe", "syringes", "gloves", "masks",
            "thermometer", "bp monitor", "blood pressure", "wheelchair",
            "crutches", "walking stick", "stretcher", "medical supplies",
        ],
        "priority": "critical",
        "icon": "💊",
        "unit": "units",
    },
    "baby": {
        "keywords": [
            "milk powder", "baby milk", "formula", "infant formula",
            "baby food", "cerelac", "nestum", "grow pro", "lactogen",
            "similac", "nan", "enfamil", "baby diapers", "diapers",
            "nappies", "pampers", "baby wipes", "wet wipes", "baby bottle",
            "feeding bottle", "pacifier", "baby clothes", "baby blanket",
            "baby soap", "baby oil", "baby powder", "diaper rash cream",
            "gripe water", "teething gel", "baby carrier",
        ],
        "priority": "critical",
        "icon": "👶",
        "unit": "packs",
    },
    "elderly": {
        "keywords": [
            "adult diapers", "adult nappies", "depends", "tena",
            "walking frame", "walker", "hearing aid", "dentures",
            "reading glasses", "spectacles", "blood sugar monitor",
            "diabetes kit", "bp machine", "oxygen concentrator",
            "bed pan", "urinal", "commode chair", "hospital bed",
            "mattress", "pressure mattress", "elder care",
        ],
        "priority": "high",
        "icon": "👴",
        "unit": "units",
    },
    "food": {
        "keywords": [
            "rice", "dry rations", "rations", "food packets", "food",
            "biscuits", "bread", "water", "drinking water", "water bottles",
            "bottled water", "canned food", "tinned food", "dhal", "lentils",
            "sugar", "salt", "oil", "cooking oil", "coconut", "tea", "coffee",
            "milk packets", "dry fish", "spices", "flour", "noodles",
            "instant noodles", "ready to eat", "cooked food", "meals",
            "breakfast", "lunch", "dinner", "snacks", "fruits", "vegetables",
        ],
        "priority": "high",
        "icon": "🍚",
        "unit": "packs",
    },
    "water": {
        "keywords": [
            "clean water", "safe water", "purified water", "mineral water",
            "water purification", "water tablets", "aquatabs", "water filter",
            "water tank", "water bowser", "drinking water supply",
        ],
        "priority": "critical",
        "icon": "💧",
        "unit": "liters",
    },
    "clothing": {
        "keywords": [
            "clothes", "clothing", "garments", "dress", "dresses",
            "shirts", "pants", "trousers", "sarees", "sarongs",
            "underwear", "undergarments", "socks", "shoes", "slippers",
            "sandals", "blankets", "bedsheets", "towels", "raincoats",
            "jackets", "sweaters", "warm clothes", "winter clothes",
        ],
        "priority": "medium",
        "icon": "👕",
        "unit": "pieces",
    },
    "shelter": {
        "keywords": [
            "tents", "tarpaulin", "tarps", "plastic sheets", "roofing",
            "shelter materials", "temporary shelter", "sleeping bags",
            "mattresses", "mats", "sleeping mats", "pillows", "mosquito nets",
            "rope", "nails", "tools", "hammer", "building materials",
        ],
        "priority": "high",
        "icon": "🏕️",
        "unit": "units",
    },
    "hygiene": {
        "keywords": [
            "soap", "detergent", "washing powder", "shampoo", "toothpaste",
            "toothbrush", "sanitary pads", "sanitary napkins", "tampons",
            "toilet paper", "tissue", "disinfectant", "hand sanitizer",
            "bleach", "cleaning supplies", "garbage bags", "dustbin",
        ],
        "priority": "medium",
        "icon": "🧼",
        "unit": "units",
    },
    "equipment": {
        "keywords": [
            "torch", "flashlight", "batteries", "candles", "matches",
            "lighter", "radio", "mobile charger", "power bank", "generator",
            "fuel", "petrol", "diesel", "kerosene", "gas cylinder", "stove",
            "cooking utensils", "pots", "pans", "plates", "cups", "spoons",
        ],
        "priority": "medium",
        "icon": "🔦",
        "unit": "units",
    },
}

LOCATION_KEYWORDS: Dict[str, dict] = {
    "school": {
        "keywords": [
            "school", "schools", "vidyalaya", "maha vidyalaya", "college",
            "primary school", "secondary school", "national school",
            "international school", "montessori", "preschool", "nursery",
            "university", "campus", "educational", "students", "classroom",
        ],
        "icon": "🏫",
    },
    "hospital": {
        "keywords": [
            "hospital", "hospitals", "medical center", "medical centre",
            "clinic", "dispensary", "health center", "health centre",
            "maternity", "icu", "emergency room", "ward", "opd",
            "general hospital", "teaching hospital", "private hospital",
            "government hospital", "base hospital", "district hospital",
        ],
        "icon": "🏥",
    },
    "religious": {
        "keywords": [
            "temple", "kovil", "church", "mosque", "vihara", "devalaya",
            "buddhist temple", "hindu temple", "catholic church",
            "christian church", "muslim mosque", "prayer hall",
            "meditation center", "religious place", "shrine",
        ],
        "icon": "🛕",
    },
    "government": {
        "keywords": [
            "divisional secretariat", "ds office", "grama niladhari",
            "gn office", "pradeshiya sabha", "municipal council",
            "urban council", "police station", "post office",
            "government office", "district secretariat", "kachcheri",
        ],
        "icon": "🏛️",
    },
    "shelter": {
        "keywords": [
            "relief camp", "evacuation center", "evacuation centre",
            "temporary shelter", "refugee camp", "community hall",
            "town hall", "community center", "welfare center",
            "safe zone", "assembly point", "gathering point",
        ],
        "icon": "🏠",
    },
    "residential": {
        "keywords": [
            "house", "houses", "home", "homes", "residence", "flat",
            "apartment", "building", "village", "area", "lane", "road",
            "street", "housing scheme", "estate", "colony",
        ],
        "icon": "🏘️",
    },
}

VULNERABLE_GROUP_KEYWORDS: Dict[str, dict] = {
    "elderly": {
        "keywords": [
            "elder", "elders", "elderly", "old", "aged", "senior",
            "seniors", "senior citizen", "senior citizens", "old age",
            "grandparent", "grandmother", "grandfather", "pensioner",
            "60+", "70+", "80+", "bedridden elderly",
        ],
        "priority": "high",
        "icon": "👴",
    },
    "infant": {
        "keywords": [
            "baby", "babies", "infant", "infants", "newborn", "newborns",
            "toddler", "toddlers", "month old", "months old", "year old",
            "days old", "weeks old", "nursing", "breastfeeding",
        ],
        "priority": "critical",
        "icon": "👶",
    },
    "children": {
        "keywords": [
            "child", "children", "kids", "kid", "minor", "minors",
            "school children", "students", "orphan", "orphans",
        ],
        "priority": "high",
        "icon": "🧒",
    },
    "pregnant": {
        "keywords": [
            "pregnant", "pregnancy", "expecting", "expectant mother",
            "pregnant woman", "pregnant women", "maternity", "prenatal",
            "antenatal", "delivery", "labor", "labour", "due date",
        ],
        "priority": "critical",
        "icon": "🤰",
    },
    "disabled": {
        "keywords": [
            "disabled", "disability", "handicapped", "physically challenged",
            "wheelchair bound", "paralyzed", "blind", "visually impaired",
            "deaf", "hearing impaired", "mute", "speech impaired",
            "mentally challenged", "special needs", "bedridden",
        ],
        "priority": "high",
        "icon": "♿",
    },
    "medical_conditions": {
        "keywords": [
            "diabetic", "diabetes", "heart patient", "cardiac", "asthma",
            "asthmatic", "cancer", "kidney", "dialysis", "transplant",
            "hypertension", "blood pressure", "epilepsy", "seizures",
            "chronic", "terminally ill", "patient", "patients", "sick",
            "illness", "disease", "condition", "treatment",
        ],
        "priority": "critical",
        "icon": "🏥",
    },
}

# Locations carry no severity of their own.
LOCATION_PRIORITY: Priority = "medium"

# Digits with optional thousands separators, e.g. 1,200.
NUMBER_PATTERN = r"\d{1,3}(?:,\d{3})+(?!\d)|\d+"

_QUANTITY_PATTERN_SPECS: List[tuple[str, str]] = [
    ("people|persons|individuals", "people"),
    ("families|family|households", "families"),
    ("elders?|elderly|seniors?", "elderly"),
    ("babies|baby|infants?|newborns?", "infants"),
    ("children|kids|minors?", "children"),
    ("pregnant", "pregnant"),
    ("disabled|handicapped", "disabled"),
    ("patients?|sick", "patients"),
    ("trapped|stranded|stuck|marooned", "trapped"),
    ("missing", "missing"),
    ("injured|wounded|hurt", "injured"),
    ("dead|deceased|deaths?|casualties", "deceased"),
    ("rescued|saved|evacuated", "rescued"),
    ("packs?|packets?|boxes?|cartons?", "packs"),
    ("kg|kilos?|kilograms?", "kg"),
    ("liters?|litres?|l", "liters"),
    ("bottles?", "bottles"),
    ("units?|pieces?|items?", "units"),
]

UNIT_TYPES: tuple[str, ...] = ("packs", "kg", "liters", "bottles", "units")

# Quantity pattern types that count members of each vulnerable group.
GROUP_QUANTITY_TYPES: Dict[str, tuple[str, ...]] = {
    "elderly": ("elderly",),
    "infant": ("infants",),
    "children": ("children",),
    "pregnant": ("pregnant",),
    "disabled": ("disabled",),
    "medical_conditions": ("patients",),
}

URGENCY_INDICATORS: Dict[str, List[str]] = {
    "critical": [
        "urgent", "urgently", "emergency", "critical", "immediately",
        "asap", "life threatening", "dying", "severe", "serious",
        "desperate", "dire", "crucial", "vital", "sos", "help",
        "rescue needed", "trapped", "stranded", "no food", "no water",
        "starving", "dehydrated", "bleeding", "unconscious",
    ],
    "high": [
        "soon", "quickly", "fast", "important", "needed", "required",
        "running out", "running low", "shortage", "scarce", "limited",
        "insufficient", "not enough", "more needed",
    ],
    "medium": [
        "need", "needs", "require", "requires", "want", "request",
        "asking for", "looking for", "seeking",
    ],
}

# Romanized Sinhala/Tamil words responders use that the tables above do not map.
LOCAL_LANGUAGE_TERMS: Dict[str, List[str]] = {
    "supplies": [
        "sahal", "hal", "bath", "kema", "watura", "beheth",
        "kiri", "piti", "sudu", "redda", "andum", "pohosat",
    ],
    "locations": [
        "pansala", "palliya", "kovila", "iskole", "rohala",
        "gama", "nagare", "palath", "pradeshiya",
    ],
    "people": [
        "minissu", "pavul", "lamai", "amma", "thaththa",
        "aiyya", "akka", "nangi", "malli", "seeya", "achchi",
    ],
}


def _quantity_pattern(words: str, result_type: str) -> QuantityPattern:
    return QuantityPattern(
        words=words,
        result_type=result_type,
        regex=re.compile(rf"({NUMBER_PATTERN})\s*({words})\b", re.IGNORECASE),
        word_regex=re.compile(rf"(?:{words})", re.IGNORECASE),
    )


QUANTITY_PATTERNS: tuple[QuantityPattern, ...] = tuple(
    _quantity_pattern(words, result_type) for words, result_type in _QUANTITY_PATTERN_SPECS
)


def _build_entries(domain: str, table: Dict[str, dict]) -> tuple[TaxonomyEntry, ...]:
    entries = []
    for subcategory, data in table.items():
        entries.append(
            TaxonomyEntry(
                domain=domain,
                subcategory=subcategory,
                keywords=tuple(k.lower() for k in data["keywords"]),
                priority=data.get("priority", LOCATION_PRIORITY),
                icon=data["icon"],
                unit=data.get("unit"),
            )
        )
    return tuple(entries)


TAXONOMY: Dict[str, tuple[TaxonomyEntry, ...]] = {
    "supplies": _build_entries("supplies", SUPPLY_KEYWORDS),
    "locations": _build_entries("locations", LOCATION_KEYWORDS),
    "vulnerable_groups": _build_entries("vulnerable_groups", VULNERABLE_GROUP_KEYWORDS),
}


def _build_keyword_index(entries: tuple[TaxonomyEntry, ...]) -> tuple[tuple[str, TaxonomyEntry], ...]:
    first_owner: Dict[str, TaxonomyEntry] = {}
    for entry in entries:
        for keyword in entry.keywords:
            first_owner.setdefault(keyword, entry)
    # Longest first so multi-word terms claim their span before their parts.
    return tuple(sorted(first_owner.items(), key=lambda kv: -len(kv[0])))


_KEYWORD_INDEX = {domain: _build_keyword_index(entries) for domain, entries in TAXONOMY.items()}


def normalize_text(value: str) -> str:
    return " ".join(value.casefold().split())


def entries(domain: str) -> tuple[TaxonomyEntry, ...]:
    return TAXONOMY.get(domain, ())


def get_entry(domain: str, subcategory: str) -> TaxonomyEntry | None:
    for entry in entries(domain):
        if entry.subcategory == subcategory:
            return entry
    return None


def classify(candidate: str | None, domain: str) -> ClassifiedCategory | None:
    """Map a free-form term to the first subcategory whose keywords overlap it.

    A keyword overlaps when either string contains the other. Returns ``None``
    when nothing matches.
    """
    term = normalize_text(candidate or "")
    if not term:
        return None
    for entry in entries(domain):
        for keyword in entry.keywords:
            if term in keyword or keyword in term:
                return ClassifiedCategory(
                    subcategory=entry.subcategory,
                    priority=entry.priority,
                    icon=entry.icon,
                )
    return None


def all_keywords(domain: str) -> List[str]:
    result: List[str] = []
    for entry in entries(domain):
        result.extend(entry.keywords)
    return result


def keyword_index(domain: str) -> tuple[tuple[str, TaxonomyEntry], ...]:
    return _KEYWORD_INDEX.get(domain, ())


def quantity_patterns_for(result_types: tuple[str, ...]) -> List[QuantityPattern]:
    return [p for p in QUANTITY_PATTERNS if p.result_type in result_types]


def unit_for_word(word: str) -> str | None:
    """Return the unit type a unit word denotes, e.g. ``packets`` -> ``packs``."""
    cleaned = word.strip()
    for pattern in quantity_patterns_for(UNIT_TYPES):
        if pattern.word_regex.fullmatch(cleaned):
            return pattern.result_type
    return None


def higher_priority(a: str, b: str) -> str:
    return a if PRIORITY_LEVELS.get(a, 0) >= PRIORITY_LEVELS.get(b, 0) else b


def taxonomy_summary() -> Dict[str, List[str]]:
    summary: Dict[str, List[str]] = {
        domain: [entry.subcategory for entry in domain_entries]
        for domain, domain_entries in TAXONOMY.items()
    }
    summary["priorities"] = list(PRIORITY_LEVELS)[::-1]
    return summary
