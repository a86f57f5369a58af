"""
Rating scales - the closed, ordered enumerations each dimension is rated on.

Scales are tuples ordered worst → best so that rank comparisons
(``rating_rank``) answer "did the rating improve?".
"""

ASSIGNMENT_RATINGS = ("working_to_meet", "meeting", "exceeding")
ASPIRATION_RATINGS = ("working_to_meet", "meeting", "exceeding")
POSITION_RATINGS = (-3, -2, -1, 0, 1, 2, 3)

RATING_LABELS = {
    "working_to_meet": "Working to Meet",
    "meeting": "Meeting",
    "exceeding": "Exceeding",
}

SCALES = {
    "assignment": ASSIGNMENT_RATINGS,
    "aspiration": ASPIRATION_RATINGS,
    "position": POSITION_RATINGS,
}


def coerce_position_rating(value):
    """Return *value* as an int position rating, or None if it is not numeric.

    Form posts deliver ratings as strings ("2", "-1"); bools are rejected so
    that True does not silently become 1.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def is_valid_rating(dimension: str, value) -> bool:
    if dimension == "position":
        value = coerce_position_rating(value)
    return value in SCALES[dimension]


def rating_rank(dimension: str, value) -> int | None:
    """Position of *value* on the dimension's scale, None when off-scale."""
    if dimension == "position":
        value = coerce_position_rating(value)
    scale = SCALES[dimension]
    if value not in scale:
        return None
    return scale.index(value)


def rating_label(value) -> str:
    if value is None:
        return "Not Rated"
    return RATING_LABELS.get(value, str(value))
