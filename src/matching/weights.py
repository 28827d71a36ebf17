"""Named weighting schemes for combining sub-scores into an overall score."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

DIMENSIONS = (
    "skills",
    "experience",
    "location",
    "industry",
    "sa_context",
    "salary",
    "availability",
)


@dataclass(frozen=True)
class WeightScheme:
    """Immutable mapping of dimension -> weight. Weights must sum to 1.0."""

    name: str
    weights: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        unknown = set(self.weights) - set(DIMENSIONS)
        if unknown:
            raise ValueError(f"Unknown score dimensions in scheme '{self.name}': {sorted(unknown)}")
        if any(w < 0 for w in self.weights.values()):
            raise ValueError(f"Negative weight in scheme '{self.name}'")
        total = sum(self.weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Weights in scheme '{self.name}' sum to {total:.3f}, expected 1.0")
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))

    def combine(self, sub_scores: Mapping[str, float]) -> int:
        """Weighted sum of the scheme's dimensions, rounded and clamped to 0-100."""
        total = sum(sub_scores.get(dim, 0.0) * weight for dim, weight in self.weights.items())
        return max(0, min(100, round(total)))


# Used by on-demand candidate ranking and the simple fallback path.
BASIC = WeightScheme(
    name="basic",
    weights={
        "skills": 0.40,
        "location": 0.20,
        "experience": 0.20,
        "sa_context": 0.20,
    },
)

# Used by the batch matching engine.
PREMIUM = WeightScheme(
    name="premium",
    weights={
        "skills": 0.35,
        "experience": 0.15,
        "salary": 0.15,
        "location": 0.12,
        "industry": 0.10,
        "sa_context": 0.08,
        "availability": 0.05,
    },
)

SCHEMES = {scheme.name: scheme for scheme in (BASIC, PREMIUM)}


def get_weight_scheme(name: str) -> WeightScheme:
    """Look up a scheme by name (case-insensitive)."""
    try:
        return SCHEMES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown weight scheme '{name}'. Use one of: {sorted(SCHEMES)}") from None
