"""
Meal quantities.

A meal cell (breakfast, lunch, dinner, guest) holds a non-negative count in
steps of half a meal. Any non-zero entry is at least half a meal.
"""
import math

MEAL_STEP = 0.5
MEAL_FIELDS = ("breakfast", "lunch", "dinner", "guest")


def normalize_quantity(value) -> float:
    """
    Normalise a raw meal count.

    Example:
        >>> normalize_quantity("0.2")
        0.5
        >>> normalize_quantity(1.3)
        1.5
        >>> normalize_quantity(-2)
        0.0
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or number <= 0:
        return 0.0
    if number < MEAL_STEP:
        return MEAL_STEP
    # Round half-up to the nearest step
    return math.floor(number / MEAL_STEP + 0.5) * MEAL_STEP
