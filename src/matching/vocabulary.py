"""Matching vocabulary: skills, industries and South African place names."""
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_VOCABULARY_PATH = Path(__file__).parent.parent.parent / "config" / "matching.yaml"


@dataclass
class Vocabulary:
    """Fixed word lists used by the normalizer and the scorer."""

    skills: list[str] = field(default_factory=list)
    industries: list[str] = field(default_factory=list)
    senior_terms: list[str] = field(default_factory=list)
    entry_terms: list[str] = field(default_factory=list)
    provinces: dict[str, list[str]] = field(default_factory=dict)
    remote_terms: list[str] = field(default_factory=list)
    soft_skill_terms: list[str] = field(default_factory=list)
    gap_terms: list[str] = field(default_factory=list)
    max_dated_positions: int = 6

    def __post_init__(self):
        self._skill_patterns = [(skill, keyword_pattern(skill)) for skill in self.skills]
        self._place_to_province: dict[str, str] = {}
        for province, places in self.provinces.items():
            self._place_to_province[province.lower()] = province.lower()
            for place in places:
                self._place_to_province[place.lower()] = province.lower()

    @property
    def skill_patterns(self) -> list[tuple[str, re.Pattern]]:
        return self._skill_patterns

    def province_for(self, place: Optional[str]) -> Optional[str]:
        """Resolve a free-text place ("Sandton, Johannesburg") to a province key."""
        if not place:
            return None
        text = place.lower()
        exact = self._place_to_province.get(text.strip())
        if exact:
            return exact
        # Longest names first so "east london" wins over "london"
        for name in sorted(self._place_to_province, key=len, reverse=True):
            if keyword_pattern(name).search(text):
                return self._place_to_province[name]
        return None

    def is_remote(self, text: Optional[str]) -> bool:
        if not text:
            return False
        lowered = text.lower()
        return any(term in lowered for term in self.remote_terms)


@lru_cache(maxsize=1024)
def keyword_pattern(keyword: str) -> re.Pattern:
    """Case-insensitive pattern matching a keyword as a whole token.

    Plain word boundaries break on keywords that end in symbols (C++, C#,
    Node.js), so lookarounds on word characters are used instead.
    """
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)", re.IGNORECASE)


def load_vocabulary(path: Optional[Path | str] = None) -> Vocabulary:
    """Load a vocabulary from YAML."""
    with open(path or DEFAULT_VOCABULARY_PATH) as f:
        raw = yaml.safe_load(f) or {}

    experience = raw.get("experience_keywords", {})
    red_flags = raw.get("red_flags", {})
    return Vocabulary(
        skills=raw.get("skills", []),
        industries=raw.get("industries", []),
        senior_terms=experience.get("senior", []),
        entry_terms=experience.get("entry", []),
        provinces={k.lower(): [p.lower() for p in v] for k, v in raw.get("provinces", {}).items()},
        remote_terms=[t.lower() for t in raw.get("remote_terms", [])],
        soft_skill_terms=raw.get("soft_skill_keywords", []),
        gap_terms=red_flags.get("gap_terms", []),
        max_dated_positions=red_flags.get("max_dated_positions", 6),
    )


@lru_cache(maxsize=1)
def default_vocabulary() -> Vocabulary:
    """The vocabulary shipped in config/matching.yaml (cached)."""
    return load_vocabulary(DEFAULT_VOCABULARY_PATH)
