"""
Category palette for the presentation layer.

Aggregation never consults this table. Any category missing from it is
drawn with the "other" color.
"""

CATEGORY_COLORS: dict[str, str] = {
    # Kinds
    "income": "#10B981",
    "expense": "#EF4444",
    "savings": "#3B82F6",
    # Expense categories
    "food": "#F59E0B",
    "transportation": "#8B5CF6",
    "entertainment": "#EC4899",
    "utilities": "#06B6D4",
    "healthcare": "#84CC16",
    "shopping": "#F97316",
    "education": "#10B981",
    # Income categories
    "salary": "#10B981",
    "freelance": "#3B82F6",
    "investment": "#8B5CF6",
    "business": "#F59E0B",
    "gift": "#EC4899",
    "other": "#6B7280",
}

DEFAULT_COLOR = CATEGORY_COLORS["other"]


def category_color(category: str) -> str:
    """Hex color for a category, falling back to the "other" color."""
    return CATEGORY_COLORS.get(category.strip().lower(), DEFAULT_COLOR)
