PREDEFINED_CATEGORIES = (
    "Breakfast",
    "Lunch",
    "Dinner",
    "Dessert",
    "Appetizer",
    "Snack",
    "Vegetarian",
    "Vegan",
    "Gluten-Free",
    "Low-Carb",
    "Mediterranean",
    "Asian",
    "Mexican",
    "Italian",
    "Quick & Easy",
    "Slow Cooker",
    "Meal Prep",
    "Holiday",
)


def is_valid_category(category) -> bool:
    return isinstance(category, str) and category in PREDEFINED_CATEGORIES
