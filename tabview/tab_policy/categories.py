"""Editorial tab categories and their display order."""

from __future__ import annotations

from enum import IntEnum


class Category(IntEnum):
    UNCATEGORIZED = 0
    IGNORE = 1
    USEFUL = 2
    IMPORTANT = 3


CATEGORY_NAMES = {
    Category.UNCATEGORIZED: "Uncategorized",
    Category.IGNORE: "Ignore",
    Category.USEFUL: "Useful",
    Category.IMPORTANT: "Important",
}

# Category is an editorial priority, not a sortable scalar.
CATEGORY_DISPLAY_ORDER = (
    Category.UNCATEGORIZED,
    Category.IMPORTANT,
    Category.USEFUL,
    Category.IGNORE,
)
CATEGORY_DISPLAY_INDEX = {int(c): i for i, c in enumerate(CATEGORY_DISPLAY_ORDER)}


def coerce_category(value) -> int | None:
    """Return the integer category for `value`, or None when it is not one.

    Whole-number floats and numeric strings (`2.0`, `"3"`) are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def category_name(value) -> str:
    category = coerce_category(value)
    if category is None:
        return f"Category {value}"
    try:
        return CATEGORY_NAMES[Category(category)]
    except ValueError:
        return f"Category {category}"
