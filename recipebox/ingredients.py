import re

# <amount> <unit> <name>: amount is digits, dots and slashes ("2", "0.5", "1/2")
# and must start and end with a digit, so "." or "1/" is not an amount.
# The unit is the single token after the amount, so "2 fluid ounces milk"
# yields unit "fluid" and name "ounces milk".
INGREDIENT_LINE = re.compile(r"^(\d(?:[\d./]*\d)?)\s+(\S+)\s+(.+)$")

DEFAULT_AMOUNT = "1"
DEFAULT_UNIT = "unit"


def parse_ingredient(line: str) -> dict:
    """Split a free-text ingredient line into amount, unit and name.

    Lines that do not follow the ``<amount> <unit> <name>`` shape are kept
    whole as the name, with amount "1" and unit "unit".
    """
    match = INGREDIENT_LINE.match(line.strip())
    if not match:
        return {"name": line, "amount": DEFAULT_AMOUNT, "unit": DEFAULT_UNIT}
    amount, unit, name = match.groups()
    return {"name": name.strip(), "amount": amount, "unit": unit}


def normalize_ingredient(entry) -> dict:
    """Accept either a free-text line or a ``{name, amount, unit}`` mapping."""
    if isinstance(entry, str):
        return parse_ingredient(entry)
    if hasattr(entry, "model_dump"):
        entry = entry.model_dump()
    name = (entry.get("name") or "").strip()
    return {
        "name": name,
        "amount": str(entry.get("amount") or DEFAULT_AMOUNT).strip(),
        "unit": (entry.get("unit") or DEFAULT_UNIT).strip(),
    }
