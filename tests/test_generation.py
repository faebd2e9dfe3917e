import json
from types import SimpleNamespace

import pytest

from recipebox import generation
from recipebox.errors import RecipeGenerationError
from recipebox.generation import (
    GeminiGenerator,
    build_prompt,
    generate_recipe,
    parse_generated_recipe,
    to_preview,
)
from recipebox.schemas import RecipePrompt

from conftest import LEMON_CHICKEN, FakeGenerator


def test_prompt_includes_only_supplied_fields():
    prompt = RecipePrompt(ingredients=["chicken", "rice"], difficulty="Easy")
    text = build_prompt(prompt)
    assert "Must use these ingredients: chicken, rice" in text
    assert "Difficulty level: easy" in text
    assert "Cuisine type" not in text
    assert "Meal type" not in text
    assert "Dietary restrictions" not in text
    assert "None" not in text
    assert '"title"' in text


def test_prompt_accepts_camel_case_meal_type():
    prompt = RecipePrompt.model_validate({"mealType": "dinner", "cuisine": "Thai"})
    text = build_prompt(prompt)
    assert "Meal type: dinner" in text
    assert "Cuisine type: Thai" in text


def test_empty_lists_and_strings_count_as_absent():
    assert RecipePrompt(ingredients=[], cuisine=" ").provided() == {}


def test_parse_plain_json():
    recipe = parse_generated_recipe(json.dumps(LEMON_CHICKEN))
    assert recipe.title == "Lemon Chicken Rice"
    assert recipe.servings == 4


def test_parse_fenced_json():
    text = "```json\n" + json.dumps(LEMON_CHICKEN) + "\n```"
    assert parse_generated_recipe(text).title == "Lemon Chicken Rice"


@pytest.mark.parametrize(
    "text",
    (
        "not json at all",
        "[1, 2, 3]",
        json.dumps({"title": "No steps", "ingredients": ["1 cup rice"]}),
        json.dumps({**LEMON_CHICKEN, "title": "   "}),
        json.dumps({**LEMON_CHICKEN, "ingredients": []}),
    ),
)
def test_parse_rejects_unusable_responses(text):
    with pytest.raises(RecipeGenerationError):
        parse_generated_recipe(text)


def test_preview_normalization():
    preview = to_preview(parse_generated_recipe(json.dumps(LEMON_CHICKEN)))
    assert preview.is_preview is True
    assert preview.difficulty == "MEDIUM"
    assert preview.servings == "4"
    assert preview.ingredients[0].model_dump() == {
        "name": "chicken breast",
        "amount": "1",
        "unit": "lb",
    }
    assert preview.ingredients[2].model_dump() == {
        "name": "salt to taste",
        "amount": "1",
        "unit": "unit",
    }


def test_preview_defaults_for_missing_times_and_servings():
    data = {k: v for k, v in LEMON_CHICKEN.items() if k not in ("prepTime", "cookTime", "servings")}
    preview = to_preview(parse_generated_recipe(json.dumps(data)))
    assert preview.prep_time == "0"
    assert preview.cook_time == "0"
    assert preview.servings == "1"


def test_preview_fills_null_ingredient_fields_and_tags():
    data = {
        **LEMON_CHICKEN,
        "ingredients": [{"name": "salt", "amount": None, "unit": None}, "2 cups rice"],
        "tags": None,
    }
    preview = to_preview(parse_generated_recipe(json.dumps(data)))
    assert preview.ingredients[0].model_dump() == {"name": "salt", "amount": "1", "unit": "unit"}
    assert preview.ingredients[1].model_dump() == {"name": "rice", "amount": "2", "unit": "cups"}
    assert preview.tags == []


@pytest.mark.parametrize(
    "servings,expected",
    (
        (6, "6"),
        (" 3 ", "3"),
        ("4-6", "4"),
        ("2 people", "2"),
        (0, "1"),
        (-2, "1"),
        ("0", "1"),
        ("several", "1"),
    ),
)
def test_preview_servings_are_positive_whole_numbers(servings, expected):
    data = {**LEMON_CHICKEN, "servings": servings}
    assert to_preview(parse_generated_recipe(json.dumps(data))).servings == expected


def test_generate_recipe_uses_generator():
    generator = FakeGenerator()
    preview = generate_recipe(RecipePrompt(ingredients=["chicken"]), generator)
    assert preview.title == "Lemon Chicken Rice"
    assert preview.ingredients and preview.instructions
    assert len(generator.prompts) == 1
    assert "chicken" in generator.prompts[0]


@pytest.mark.parametrize(
    "generator",
    (
        FakeGenerator(error=ConnectionError("network down")),
        FakeGenerator(reply=""),
        FakeGenerator(reply="{broken"),
    ),
)
def test_generate_recipe_failures_collapse(generator):
    with pytest.raises(RecipeGenerationError):
        generate_recipe(RecipePrompt(ingredients=["chicken"]), generator)


class FakeModels:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.response


def gemini_response(*texts):
    parts = [SimpleNamespace(text=t) for t in texts]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def test_gemini_generator_sends_fixed_sampling():
    models = FakeModels(gemini_response('{"title": "x"}'))
    generator = GeminiGenerator(model="gemini-test", client=SimpleNamespace(models=models))
    assert generator.generate("make soup") == '{"title": "x"}'

    call = models.calls[0]
    assert call["model"] == "gemini-test"
    assert call["contents"] == "make soup"
    assert call["config"].temperature == 0.7
    assert call["config"].top_p == 0.8
    assert call["config"].top_k == 40
    assert call["config"].response_mime_type == "application/json"


def test_gemini_generator_without_candidates_returns_empty():
    models = FakeModels(SimpleNamespace(candidates=None))
    generator = GeminiGenerator(model="gemini-test", client=SimpleNamespace(models=models))
    assert generator.generate("make soup") == ""


def test_gemini_client_gets_timeout_and_retries(monkeypatch):
    built = []

    def fake_client(**kwargs):
        built.append(kwargs)
        return SimpleNamespace(models=FakeModels(gemini_response("{}")))

    monkeypatch.setattr(generation.genai, "Client", fake_client)
    generator = GeminiGenerator(
        model="gemini-test", project="p", location="us-west1", timeout_seconds=60, retries=2
    )
    client = generator.client
    assert generator.client is client
    assert len(built) == 1

    kwargs = built[0]
    assert kwargs["vertexai"] is True
    assert kwargs["project"] == "p"
    assert kwargs["location"] == "us-west1"
    assert kwargs["http_options"].timeout == 60000
    assert kwargs["http_options"].retry_options.attempts == 3
