"""
Recipe generation: prompt building, the model call and response mapping.

The model is reached through a ``RecipeGenerator``, anything with a
``generate(prompt_text) -> str`` method. ``GeminiGenerator`` is the
production implementation backed by Vertex AI; tests substitute their own.
"""
import json
import logging
import re
from functools import lru_cache
from typing import Optional, Protocol

from google import genai
from google.genai import types
from pydantic import ValidationError

from .config import settings
from .errors import RecipeGenerationError
from .ingredients import normalize_ingredient
from .schemas import GeneratedRecipe, RecipePreview, RecipePrompt
from .validation import is_positive_servings

logger = logging.getLogger(__name__)

# Sampling is fixed for every request
TEMPERATURE = 0.7
TOP_P = 0.8
TOP_K = 40

RESPONSE_FORMAT = """Please provide the recipe in the following JSON format:
{
  "title": "Recipe Title",
  "ingredients": ["2 cups ingredient 1", "1 tbsp ingredient 2"],
  "instructions": ["step 1", "step 2"],
  "prepTime": "30 minutes",
  "cookTime": "45 minutes",
  "servings": 4,
  "difficulty": "medium",
  "tags": ["tag1", "tag2"]
}
Write each ingredient as "<amount> <unit> <name>"."""

CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)
LEADING_NUMBER = re.compile(r"^(\d+)")


class RecipeGenerator(Protocol):
    def generate(self, prompt_text: str) -> str:
        ...


class GeminiGenerator:
    """Calls a Gemini model on Vertex AI and returns the first candidate's text."""

    def __init__(
        self,
        *,
        model: str,
        project: Optional[str] = None,
        location: Optional[str] = None,
        timeout_seconds: int = 60,
        retries: int = 2,
        client: Optional[genai.Client] = None,
    ) -> None:
        self.model = model
        self.project = project
        self.location = location
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self._client = client

    @classmethod
    def from_settings(cls, config=settings) -> "GeminiGenerator":
        return cls(
            model=config.google_ai_model,
            project=config.google_cloud_project,
            location=config.google_cloud_location,
            timeout_seconds=config.generation_timeout_seconds,
            retries=config.generation_retries,
        )

    @property
    def client(self) -> genai.Client:
        # Built on first use so credentials are only needed when generating
        if self._client is None:
            self._client = genai.Client(
                vertexai=True,
                project=self.project,
                location=self.location,
                http_options=types.HttpOptions(
                    timeout=self.timeout_seconds * 1000,
                    retry_options=types.HttpRetryOptions(attempts=self.retries + 1),
                ),
            )
        return self._client

    def generate(self, prompt_text: str) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt_text,
            config=types.GenerateContentConfig(
                temperature=TEMPERATURE,
                top_p=TOP_P,
                top_k=TOP_K,
                response_mime_type="application/json",
            ),
        )
        candidates = response.candidates or []
        if not candidates or not candidates[0].content:
            return ""
        parts = candidates[0].content.parts or []
        return "".join(part.text or "" for part in parts)


@lru_cache
def get_generator() -> RecipeGenerator:
    return GeminiGenerator.from_settings(settings)


def build_prompt(prompt: RecipePrompt) -> str:
    """Turn a recipe request into model instructions, skipping absent fields."""
    fields = prompt.provided()
    lines = ["Generate a recipe with the following requirements:"]
    if "ingredients" in fields:
        lines.append(f"Must use these ingredients: {', '.join(fields['ingredients'])}")
    if "dietary" in fields:
        lines.append(f"Dietary restrictions: {', '.join(fields['dietary'])}")
    if "cuisine" in fields:
        lines.append(f"Cuisine type: {fields['cuisine']}")
    if "meal_type" in fields:
        lines.append(f"Meal type: {fields['meal_type']}")
    if "difficulty" in fields:
        lines.append(f"Difficulty level: {fields['difficulty'].value}")
    lines.append("")
    lines.append(RESPONSE_FORMAT)
    return "\n".join(lines)


def parse_generated_recipe(text: str) -> GeneratedRecipe:
    text = text.strip()
    if "```" in text:
        match = CODE_FENCE.search(text)
        if match:
            text = match.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("Model returned invalid JSON: %s", text[:500])
        raise RecipeGenerationError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise RecipeGenerationError("response is not a JSON object")
    try:
        return GeneratedRecipe.model_validate(data)
    except ValidationError as e:
        logger.error("Model returned an incomplete recipe: %s", e)
        raise RecipeGenerationError("response does not describe a recipe") from e


def _duration(value) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "0"
    return str(value).strip()


def _servings(value) -> str:
    """Servings as a positive whole number; ranges like "4-6" keep the low end."""
    if is_positive_servings(value):
        return str(value).strip()
    match = LEADING_NUMBER.match(str(value).strip()) if value is not None else None
    if match and int(match.group(1)) >= 1:
        return str(int(match.group(1)))
    return "1"


def to_preview(recipe: GeneratedRecipe) -> RecipePreview:
    return RecipePreview(
        title=recipe.title,
        ingredients=[normalize_ingredient(entry) for entry in recipe.ingredients],
        instructions=recipe.instructions,
        prep_time=_duration(recipe.prep_time),
        cook_time=_duration(recipe.cook_time),
        servings=_servings(recipe.servings),
        difficulty=(recipe.difficulty or "easy").strip().upper(),
        tags=recipe.tags,
        is_preview=True,
    )


def generate_recipe(prompt: RecipePrompt, generator: RecipeGenerator) -> RecipePreview:
    """Ask the model for a recipe and return it as an unsaved preview.

    Every failure past prompt building (the call itself, an empty reply,
    unparseable or incomplete JSON) surfaces as ``RecipeGenerationError``.
    """
    prompt_text = build_prompt(prompt)
    try:
        text = generator.generate(prompt_text)
    except Exception as e:
        logger.exception("Recipe generation call failed")
        raise RecipeGenerationError("model call failed") from e
    if not text or not text.strip():
        raise RecipeGenerationError("no response from model")
    recipe = parse_generated_recipe(text)
    return to_preview(recipe)
