import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# At least 8 characters with one lowercase, one uppercase and one digit
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")

PASSWORD_RULES = (
    "Password must be at least 8 characters long and contain uppercase, "
    "lowercase, and numbers"
)


def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def validate_password(password: str) -> bool:
    return bool(password) and PASSWORD_RE.match(password) is not None


def is_positive_servings(servings) -> bool:
    if isinstance(servings, bool):
        return False
    if isinstance(servings, int):
        return servings >= 1
    if isinstance(servings, str):
        value = servings.strip()
        return value.isdigit() and int(value) >= 1
    return False


def validate_recipe(recipe: dict) -> Optional[str]:
    """Return the first problem with a recipe payload, or None if it is complete.

    ``recipe`` is a plain dict using snake_case keys.
    """
    title = recipe.get("title")
    if not isinstance(title, str) or not title.strip():
        return "Recipe title is required"

    ingredients = recipe.get("ingredients")
    if not isinstance(ingredients, list) or len(ingredients) == 0:
        return "Recipe must have at least one ingredient"
    for entry in ingredients:
        name = entry.get("name") if isinstance(entry, dict) else entry
        if not isinstance(name, str) or not name.strip():
            return "Ingredient name is required"

    instructions = recipe.get("instructions")
    if not isinstance(instructions, list) or len(instructions) == 0:
        return "Recipe must have at least one instruction"
    if any(not isinstance(step, str) or not step.strip() for step in instructions):
        return "Instructions must be non-empty text"

    if not is_positive_servings(recipe.get("servings", "1")):
        return "Valid number of servings is required"

    difficulty = recipe.get("difficulty", "EASY")
    if not isinstance(difficulty, str) or not difficulty.strip():
        return "Difficulty level is required"

    return None
