"""Closed vocabularies shared by the engines.

Difficulty tiers, the confusable letter pairs a question can target, the
qualitative labels a session report may carry, and the fixed word list used
when no generated or seeded question is available.
"""

from __future__ import annotations

import enum
from typing import Dict, Iterable, List, Optional

from ..errors import ValidationError


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Difficulty":
        raw = (value or "").strip().lower()
        if not raw:
            return cls.EASY
        try:
            return cls(raw)
        except ValueError:
            raise ValidationError({"difficulty": "difficulty must be one of easy, medium, hard"})


class LetterPair(str, enum.Enum):
    B_D = "b-d"
    P_Q = "p-q"
    M_W = "m-w"
    N_U = "n-u"
    M_N = "m-n"

    @property
    def letters(self) -> List[str]:
        return self.value.split("-")

    @property
    def compact(self) -> str:
        return self.value.replace("-", "")


def parse_letter_pairs(patterns: Iterable[str]) -> List[LetterPair]:
    """Validate pattern filters; an empty input means every pair is allowed.

    Entries may be comma separated. Order is preserved and duplicates removed.
    """
    pairs: List[LetterPair] = []
    invalid: List[str] = []
    for raw in patterns:
        for part in (raw or "").split(","):
            token = part.strip().lower()
            if not token:
                continue
            try:
                pair = LetterPair(token)
            except ValueError:
                invalid.append(token)
                continue
            if pair not in pairs:
                pairs.append(pair)
    if invalid:
        allowed = ", ".join(p.value for p in LetterPair)
        raise ValidationError({"pattern": f"unknown letter pair(s) {', '.join(invalid)}; allowed: {allowed}"})
    return pairs or list(LetterPair)


class PerformanceLabel(str, enum.Enum):
    """Holistic performance bands, best to worst."""

    ISTIMEWA = "istimewa"
    SANGAT_BAIK = "sangat baik"
    BAIK = "baik"
    CUKUP = "cukup"
    PERLU_PENINGKATAN = "perlu peningkatan"

    @classmethod
    def parse(cls, value: object) -> "PerformanceLabel":
        raw = str(value or "").strip().lower()
        # Older prompts used the English word for the top band
        if raw == "excellent":
            return cls.ISTIMEWA
        return cls(raw)


# One correct word followed by three visually confusable distractors.
FALLBACK_WORDS: Dict[LetterPair, List[str]] = {
    LetterPair.B_D: ["BUKU", "DUKU", "BUDU", "DUBU"],
    LetterPair.P_Q: ["PAKU", "QAKU", "PAQU", "QAQU"],
    LetterPair.M_W: ["MAMA", "WAMA", "MAWA", "WAWA"],
    LetterPair.N_U: ["NASI", "UASI", "NAUI", "UAUI"],
    LetterPair.M_N: ["MINUM", "NINUM", "MIMUM", "NINUN"],
}

QUESTION_TEXT = "Pilih kata yang benar: mana yang memakai huruf {letter}?"


def target_letter_for(word: str, pair: LetterPair) -> str:
    """First letter of ``word`` that belongs to ``pair``, upper-cased."""
    for ch in word.lower():
        if ch in pair.letters:
            return ch.upper()
    return pair.letters[0].upper()
