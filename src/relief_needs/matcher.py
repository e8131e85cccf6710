"""Keyword scanners turning free text into typed mention candidates."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List

from .models import LocationMention, QuantityMention, SupplyMention, Urgency, VulnerableGroupMention
from .taxonomy import (
    DOMAINS,
    GROUP_QUANTITY_TYPES,
    NUMBER_PATTERN,
    LOCAL_LANGUAGE_TERMS,
    QUANTITY_PATTERNS,
    UNIT_TYPES,
    URGENCY_INDICATORS,
    TaxonomyEntry,
    keyword_index,
    quantity_patterns_for,
    unit_for_word,
)


@dataclass(frozen=True)
class KeywordHit:
    keyword: str
    entry: TaxonomyEntry
    start: int
    end: int
    text: str


def _term_pattern(term: str) -> re.Pattern[str]:
    # Word-boundary style check so "oil" does not fire inside "toilet".
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", re.IGNORECASE)


_COMPILED_INDEX = {
    domain: tuple((kw, _term_pattern(kw), entry) for kw, entry in keyword_index(domain))
    for domain in DOMAINS
}
_URGENCY_PATTERNS = {
    tier: [_term_pattern(word) for word in words] for tier, words in URGENCY_INDICATORS.items()
}
_LOCAL_TERM_PATTERNS = [
    (term, _term_pattern(term)) for terms in LOCAL_LANGUAGE_TERMS.values() for term in terms
]

_UNIT_WORDS = "|".join(p.words for p in quantity_patterns_for(UNIT_TYPES))
_NUMBER = rf"(?<![\w.])({NUMBER_PATTERN})"
_PRECEDING_QUANTITY = re.compile(rf"{_NUMBER}\s*(?:({_UNIT_WORDS})\s+)?(?:of\s+)?$", re.IGNORECASE)
_COUNTED_WORDS = "|".join(p.words for p in QUANTITY_PATTERNS)
# "insulin: 2", "rice 5 kg" or a bare "insulin 2" that does not count people.
_FOLLOWING_QUANTITY = re.compile(
    rf"^\s*(?:[-:]\s*({NUMBER_PATTERN})(?:\s*({_UNIT_WORDS})\b)?"
    rf"|({NUMBER_PATTERN})\s*({_UNIT_WORDS})\b"
    rf"|({NUMBER_PATTERN})(?!,?\d)(?!\s*(?:{_COUNTED_WORDS})\b))",
    re.IGNORECASE,
)
_PRECEDING_COUNT = re.compile(rf"{_NUMBER}\s*$")
_FOLLOWING_COUNT = re.compile(rf"^\s*[:\-]\s*({NUMBER_PATTERN})")

_PRECEDING_NAME = re.compile(r"((?:[A-Z][\w'.-]*\s+){1,4})$")
_FOLLOWING_NAME = re.compile(r"^\s+([A-Z][\w'.-]*(?:\s+[A-Z][\w'.-]*){0,3})")
_NAME_STOPWORDS = {
    "a", "an", "the", "at", "in", "on", "near", "to", "from", "of", "and", "or",
    "we", "our", "i", "my", "they", "their", "there", "this", "that", "these",
    "please", "pls", "need", "needs", "needed", "urgent", "urgently", "help",
    "sos", "emergency", "many", "some", "all", "no",
}

_GENERIC_CONDITION_TERMS = {
    "patient", "patients", "sick", "illness", "disease", "condition", "treatment", "chronic",
}
_SPECIAL_NEEDS_GROUPS = {"medical_conditions", "disabled"}


def clean_text(text: str) -> str:
    return " ".join(text.split())


def parse_number(raw: str) -> int | None:
    digits = raw.replace(",", "")
    return int(digits) if digits.isdigit() else None


def find_keyword_hits(text: str, domain: str) -> List[KeywordHit]:
    """Return non-overlapping keyword hits in text order, longest keyword first."""
    claimed: List[tuple[int, int]] = []
    hits: List[KeywordHit] = []
    for keyword, pattern, entry in _COMPILED_INDEX.get(domain, ()):
        for match in pattern.finditer(text):
            start, end = match.span()
            if any(start < c_end and c_start < end for c_start, c_end in claimed):
                continue
            claimed.append((start, end))
            hits.append(KeywordHit(keyword=keyword, entry=entry, start=start, end=end, text=match.group(0)))
    hits.sort(key=lambda h: h.start)
    return hits


def _quantity_for_hit(text: str, hit: KeywordHit, starts: set[int]) -> tuple[int | None, str | None]:
    before = _PRECEDING_QUANTITY.search(text[: hit.start])
    if before:
        return parse_number(before.group(1)), before.group(2)
    after = _FOLLOWING_QUANTITY.search(text[hit.end :])
    if after:
        if after.group(1):
            return parse_number(after.group(1)), after.group(2)
        if after.group(3):
            return parse_number(after.group(3)), after.group(4)
        end = hit.end + after.end(5)
        gap = len(text[end:]) - len(text[end:].lstrip())
        # A bare number that leads the next supply belongs to that supply.
        if end + gap not in starts:
            return parse_number(after.group(5)), None
    return None, None


def _resolve_unit(hit: KeywordHit, unit_word: str | None) -> str:
    if unit_word:
        resolved = unit_for_word(unit_word)
        if resolved:
            return resolved
    implied = unit_for_word(hit.keyword.split()[-1])
    if implied:
        return implied
    return hit.entry.unit or "units"


def scan_supplies(text: str) -> List[SupplyMention]:
    text = clean_text(text)
    by_item: Dict[str, SupplyMention] = {}
    hits = find_keyword_hits(text, "supplies")
    starts = {h.start for h in hits}
    for hit in hits:
        quantity, unit_word = _quantity_for_hit(text, hit, starts)
        existing = by_item.get(hit.keyword)
        if existing is not None and (existing.quantity is not None or quantity is None):
            continue
        by_item[hit.keyword] = SupplyMention(
            item=hit.keyword,
            category=hit.entry.subcategory,
            quantity=quantity,
            unit=_resolve_unit(hit, unit_word) if quantity is not None else None,
            priority=hit.entry.priority,
            icon=hit.entry.icon,
        )
    return list(by_item.values())


def _location_name(text: str, hit: KeywordHit, hits: List[KeywordHit]) -> str | None:
    before = _PRECEDING_NAME.search(text[: hit.start])
    if before:
        words = before.group(1).split()
        while words and words[0].lower().strip(".") in _NAME_STOPWORDS:
            words.pop(0)
        if words:
            return " ".join(words + [hit.text]).strip(" .-'")
    after = _FOLLOWING_NAME.search(text[hit.end :])
    if after:
        offset = hit.end + after.start(1)
        following: List[str] = []
        for word_match in re.finditer(r"\S+", after.group(1)):
            word = word_match.group(0)
            start = offset + word_match.start()
            # Another location keyword names its own place ("Temple Road").
            if any(h.start <= start < h.end for h in hits if h is not hit):
                break
            if word.lower().strip(".") in _NAME_STOPWORDS:
                break
            following.append(word)
        if following:
            return " ".join(following).strip(" .-'")
    return None


def scan_locations(text: str) -> List[LocationMention]:
    text = clean_text(text)
    mentions: List[LocationMention] = []
    seen: set[tuple[str, str | None]] = set()
    hits = find_keyword_hits(text, "locations")
    for hit in hits:
        name = _location_name(text, hit, hits)
        key = (hit.entry.subcategory, name.casefold() if name else None)
        if key in seen:
            continue
        seen.add(key)
        mentions.append(LocationMention(type=hit.entry.subcategory, name=name, icon=hit.entry.icon))

    named_types = {m.type for m in mentions if m.name}
    return [m for m in mentions if m.name or m.type not in named_types]


def _is_age_phrase(keyword: str) -> bool:
    return keyword.endswith(" old")


def _group_count(text: str, group: str, hits: List[KeywordHit]) -> int | None:
    counts: List[int] = []
    for pattern in quantity_patterns_for(GROUP_QUANTITY_TYPES.get(group, ())):
        for match in pattern.regex.finditer(text):
            value = parse_number(match.group(1))
            if value is not None:
                counts.append(value)
    if not counts:
        for hit in hits:
            if _is_age_phrase(hit.keyword):
                continue
            before = _PRECEDING_COUNT.search(text[: hit.start])
            after = _FOLLOWING_COUNT.search(text[hit.end :])
            match = before or after
            if match:
                value = parse_number(match.group(1))
                if value is not None:
                    counts.append(value)
    return max(counts) if counts else None


def _special_needs(text: str, group: str, hits: List[KeywordHit]) -> str | None:
    for hit in hits:
        if _is_age_phrase(hit.keyword):
            before = _PRECEDING_COUNT.search(text[: hit.start])
            if before:
                return f"{before.group(1)} {hit.text.lower()}"
    if group in _SPECIAL_NEEDS_GROUPS:
        for hit in hits:
            if hit.keyword not in _GENERIC_CONDITION_TERMS:
                return hit.text.lower()
    return None


def scan_vulnerable_groups(text: str) -> List[VulnerableGroupMention]:
    text = clean_text(text)
    hits_by_group: Dict[str, List[KeywordHit]] = {}
    for hit in find_keyword_hits(text, "vulnerable_groups"):
        hits_by_group.setdefault(hit.entry.subcategory, []).append(hit)

    mentions: List[VulnerableGroupMention] = []
    for group, hits in hits_by_group.items():
        entry = hits[0].entry
        mentions.append(
            VulnerableGroupMention(
                group=group,
                count=_group_count(text, group, hits),
                special_needs=_special_needs(text, group, hits),
                priority=entry.priority,
                icon=entry.icon,
            )
        )
    return mentions


def scan_quantities(text: str) -> List[QuantityMention]:
    text = clean_text(text)
    found: List[tuple[int, QuantityMention]] = []
    for pattern in QUANTITY_PATTERNS:
        for match in pattern.regex.finditer(text):
            value = parse_number(match.group(1))
            if value is None:
                continue
            found.append(
                (match.start(), QuantityMention(value=value, type=pattern.result_type, context=match.group(0)))
            )
    found.sort(key=lambda pair: pair[0])
    return [mention for _, mention in found]


def scan_urgency(text: str) -> Urgency:
    for tier in ("critical", "high", "medium"):
        if any(pattern.search(text) for pattern in _URGENCY_PATTERNS[tier]):
            return tier  # type: ignore[return-value]
    return "none"


def scan_local_terms(text: str) -> List[str]:
    return [term for term, pattern in _LOCAL_TERM_PATTERNS if pattern.search(text)]
