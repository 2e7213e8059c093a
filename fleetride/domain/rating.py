"""Rider rating rules and the driver running-average fold."""

from __future__ import annotations

from typing import Iterable, Optional

from .errors import ValidationError

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(value: object) -> int:
    # bool is an int subclass; a JSON ``true`` is not a rating
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Rating must be a whole number")
    if not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}"
        )
    return value


def mean_rating(ratings: Iterable[Optional[int]]) -> tuple[float, int]:
    """Return ``(average, count)`` over the non-null ratings; ``(0.0, 0)`` if none."""
    values = [r for r in ratings if r is not None]
    if not values:
        return 0.0, 0
    return sum(values) / len(values), len(values)
