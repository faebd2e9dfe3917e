import pytest

from recipebox.ingredients import normalize_ingredient, parse_ingredient


@pytest.mark.parametrize(
    "line,expected",
    (
        ("2 cups flour", {"amount": "2", "unit": "cups", "name": "flour"}),
        ("1/2 tsp sea salt", {"amount": "1/2", "unit": "tsp", "name": "sea salt"}),
        ("0.5 lb ground beef", {"amount": "0.5", "unit": "lb", "name": "ground beef"}),
        # Only the first token after the amount is the unit
        ("2 fluid ounces milk", {"amount": "2", "unit": "fluid", "name": "ounces milk"}),
    ),
)
def test_parse_well_formed_lines(line, expected):
    assert parse_ingredient(line) == expected


@pytest.mark.parametrize(
    "line",
    ("salt to taste", "pepper", "2 eggs", "a pinch of salt", ". cups flour", "1/ cups flour", "/2 tsp salt"),
)
def test_parse_fallback_keeps_whole_line(line):
    assert parse_ingredient(line) == {"name": line, "amount": "1", "unit": "unit"}


def test_normalize_accepts_structured_entries():
    got = normalize_ingredient({"name": " butter ", "amount": 3, "unit": "tbsp"})
    assert got == {"name": "butter", "amount": "3", "unit": "tbsp"}


def test_normalize_fills_missing_amount_and_unit():
    got = normalize_ingredient({"name": "basil"})
    assert got == {"name": "basil", "amount": "1", "unit": "unit"}


def test_normalize_parses_text_lines():
    assert normalize_ingredient("3 cloves garlic")["unit"] == "cloves"
