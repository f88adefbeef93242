"""Keyword intent classifier for inbound customer messages.

The classifier is a small fixed heuristic: English keywords must start on a
word boundary, Arabic keywords match as substrings because Arabic attaches
prefixes (conjunctions, articles) directly to the word.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

INTENT_HUMAN_REQUEST = "human_request"
INTENT_ORDER = "order"
INTENT_APPOINTMENT = "appointment"
INTENT_GENERAL = "general"

_ARABIC_RE = re.compile(r"[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]")

_KEYWORDS: dict[str, dict[str, tuple[str, ...]]] = {
    INTENT_HUMAN_REQUEST: {
        "en": (
            "human",
            "support",
            "talk to someone",
            "speak with person",
            "real person",
            "agent",
            "representative",
        ),
        "ar": (
            "إنسان",
            "انسان",
            "موظف",
            "خدمة العملاء",
            "شخص حقيقي",
            "الدعم",
            "ممثل",
        ),
    },
    INTENT_ORDER: {
        "en": ("order", "buy", "purchase"),
        "ar": ("طلب", "اطلب", "أطلب", "شراء", "اشتري", "أشتري"),
    },
    INTENT_APPOINTMENT: {
        "en": ("book", "appointment", "schedule", "reserve"),
        "ar": ("حجز", "احجز", "أحجز", "موعد", "جدولة"),
    },
}

# human_request wins over order, order wins over appointment
_PRIORITY = (INTENT_HUMAN_REQUEST, INTENT_ORDER, INTENT_APPOINTMENT)

_ENGLISH_PATTERNS: dict[str, re.Pattern[str]] = {
    category: re.compile(
        r"\b(?:" + "|".join(re.escape(keyword) for keyword in sets["en"]) + r")"
    )
    for category, sets in _KEYWORDS.items()
}


@dataclass(frozen=True)
class Intent:
    category: str
    matched_language: str
    keyword: str | None = None


def contains_arabic(text: str | None) -> bool:
    return bool(text) and _ARABIC_RE.search(text) is not None


def _match_category(lowered: str, category: str) -> str | None:
    match = _ENGLISH_PATTERNS[category].search(lowered)
    if match:
        return match.group(0)
    for keyword in _KEYWORDS[category]["ar"]:
        if keyword in lowered:
            return keyword
    return None


def classify(text: str | None) -> Intent:
    lowered = (text or "").lower()
    language = "ar" if contains_arabic(lowered) else "en"
    for category in _PRIORITY:
        keyword = _match_category(lowered, category)
        if keyword is not None:
            return Intent(category=category, matched_language=language, keyword=keyword)
    return Intent(category=INTENT_GENERAL, matched_language=language)
