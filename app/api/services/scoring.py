"""Widget scoring types.

Each widget is scored from a single value using one of four rules:

- ``yesno``: a boolean control (``yesValue`` / ``noValue``)
- ``range``: a count that should sit inside ``[min, max]``
- ``percentage``: higher is better, scaled and capped
- ``percentageInverse``: lower is better, scaled and capped
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

SCORING_TYPES = ("yesno", "range", "percentage", "percentageInverse")


def _is_number(value: Any) -> bool:
    # bool is an int subclass; a yes/no answer is never a measurement
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def calculate_widget_score(scoring_type: str, config: dict[str, Any] | None, value: Any) -> float:
    """Points earned by a widget value under its scoring rule."""
    config = config or {}

    if scoring_type == "yesno":
        return config.get("yesValue", 0) if value is True else config.get("noValue", 0)

    if scoring_type == "range":
        low, high = config.get("min"), config.get("max")
        if _is_number(value) and low is not None and high is not None:
            return config.get("points", 0) if low <= value <= high else config.get("fallback", 0)
        return 0

    if scoring_type in ("percentage", "percentageInverse"):
        scale, max_points = config.get("scale"), config.get("maxPoints")
        if not (_is_number(value) and scale and max_points):
            return 0
        basis = value if scoring_type == "percentage" else 100 - value
        return min(basis * scale, max_points)

    return 0


def score_unsupported_devices(value: float | None) -> int:
    """One point per 10% of supported devices, capped at 10.

    An unset value counts as fully supported.
    """
    if value is None:
        value = 100
    return min(math.floor(value / 10), 10)


def round_half_up(value: float, digits: int = 0) -> float | int:
    """Round with ties going up, so 4.5 points become 5.

    ``round()`` sends ties to the even neighbour. With ``digits`` the exact
    binary value of the float is rounded.
    """
    if digits == 0:
        return math.floor(value + 0.5)
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))
