"""
Weights - Named FSRS Parameter Set

The public weight format is a flat list of 21 floats whose positions carry
fixed roles. Inside the engine every weight is addressed by name instead.

FsrsWeights.from_vector() is the only way in from the public format. It is
validated once at load time so the update functions can trust it.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Sequence
import math

from recall_core.errors import InvalidInputError
from recall_core.fsrs.constants import (
    DEFAULT_WEIGHTS_VERSION,
    FSRS6_DEFAULT_VECTOR,
    REFERENCE_RETENTION,
    WEIGHT_COUNT,
)


@dataclass(frozen=True)
class FsrsWeights:
    """
    FSRS-6 parameters by role.

    Field order matches the public vector order for the "fsrs-6" layout.
    """
    initial_stability_again: float
    initial_stability_hard: float
    initial_stability_good: float
    initial_stability_easy: float
    initial_difficulty_base: float
    initial_difficulty_exp: float
    difficulty_delta: float
    difficulty_mean_reversion: float
    success_base: float
    success_saturation: float
    success_retrievability: float
    failure_base: float
    failure_difficulty_exp: float
    failure_stability_exp: float
    failure_retrievability: float
    hard_penalty: float
    easy_bonus: float
    same_day_rate: float
    same_day_offset: float
    same_day_saturation: float
    decay: float

    @property
    def initial_stabilities(self) -> tuple[float, float, float, float]:
        """Initial stability indexed by rating - 1."""
        return (
            self.initial_stability_again,
            self.initial_stability_hard,
            self.initial_stability_good,
            self.initial_stability_easy,
        )

    @property
    def curve_factor(self) -> float:
        """F such that (1 + F)^(-decay) equals the reference retention."""
        return REFERENCE_RETENTION ** (-1.0 / self.decay) - 1.0

    @classmethod
    def from_vector(
        cls,
        values: Sequence[float],
        version: str = DEFAULT_WEIGHTS_VERSION
    ) -> FsrsWeights:
        """
        Build named weights from the public 21-element format.

        Args:
            values: Weight vector in public order
            version: Layout version of the vector

        Returns:
            Validated FsrsWeights

        Raises:
            InvalidInputError: Unknown version, wrong length, non-finite
                entries or a non-positive decay
        """
        layout = WEIGHT_LAYOUTS.get(version)
        if layout is None:
            raise InvalidInputError(f"Unknown weight layout version: {version!r}")

        values = list(values)
        if len(values) != WEIGHT_COUNT:
            raise InvalidInputError(
                f"FSRS weights require exactly {WEIGHT_COUNT} values, got {len(values)}"
            )

        parsed = []
        for index, value in enumerate(values):
            try:
                number = float(value)
            except (TypeError, ValueError) as exc:
                raise InvalidInputError(f"Weight w{index} is not a number: {value!r}") from exc
            if not math.isfinite(number):
                raise InvalidInputError(f"Weight w{index} is not finite: {value!r}")
            parsed.append(number)

        weights = cls(**dict(zip(layout, parsed)))
        if weights.decay <= 0:
            raise InvalidInputError(f"Decay weight must be positive, got {weights.decay}")
        if any(s <= 0 for s in weights.initial_stabilities):
            raise InvalidInputError("Initial stability weights must be positive")
        return weights

    def to_vector(self, version: str = DEFAULT_WEIGHTS_VERSION) -> list[float]:
        """Return the weights in the public vector order."""
        layout = WEIGHT_LAYOUTS.get(version)
        if layout is None:
            raise InvalidInputError(f"Unknown weight layout version: {version!r}")
        return [getattr(self, name) for name in layout]


# Public index -> field name, per layout version
WEIGHT_LAYOUTS: dict[str, tuple[str, ...]] = {
    "fsrs-6": tuple(f.name for f in fields(FsrsWeights)),
}


DEFAULT_WEIGHTS = FsrsWeights.from_vector(FSRS6_DEFAULT_VECTOR)
