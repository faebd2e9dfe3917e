import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud, models, schemas
from .categories import PREDEFINED_CATEGORIES, is_valid_category
from .db import get_db
from .errors import (
    Conflict,
    NotFound,
    RecipeGenerationError,
    UpstreamFailure,
    ValidationFailed,
)
from .generation import RecipeGenerator, generate_recipe, get_generator
from .ingredients import normalize_ingredient
from .security import get_current_user
from .validation import validate_recipe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["recipes"])

DUPLICATE_TITLE = "Recipe with this title already exists"
RECIPE_NOT_FOUND = "Recipe not found"
INVALID_CATEGORY = "Invalid category provided"


def _text(value, default: str) -> str:
    text = str(value).strip() if value is not None else ""
    return text or default


def _normalize(fields: dict) -> dict:
    """Bring whichever recipe fields are present into their stored form."""
    data = {}
    if "title" in fields:
        data["title"] = fields["title"].strip()
    if "ingredients" in fields:
        data["ingredients"] = [normalize_ingredient(i) for i in fields["ingredients"]]
    if "instructions" in fields:
        data["instructions"] = [step.strip() for step in fields["instructions"]]
    if "prep_time" in fields:
        data["prep_time"] = _text(fields["prep_time"], "0")
    if "cook_time" in fields:
        data["cook_time"] = _text(fields["cook_time"], "0")
    if "servings" in fields:
        data["servings"] = _text(fields["servings"], "1")
    if "difficulty" in fields:
        data["difficulty"] = fields["difficulty"].strip().upper()
    for key in ("tags", "categories"):
        if key in fields:
            data[key] = list(fields[key])
    return data


def _check_categories(categories):
    if categories and not all(is_valid_category(c) for c in categories):
        raise ValidationFailed(INVALID_CATEGORY)


def _conflict(existing: models.Recipe, **extra) -> Conflict:
    payload = {"existingRecipe": schemas.RecipeOut.from_model(existing).as_json()}
    payload.update(extra)
    return Conflict(DUPLICATE_TITLE, payload)


def _owned_recipe(db: Session, recipe_id: int, user: models.User) -> models.Recipe:
    # Foreign recipes are reported exactly like missing ones
    recipe = crud.get_recipe(db, recipe_id, user.id)
    if recipe is None:
        raise NotFound(RECIPE_NOT_FOUND)
    return recipe


@router.post("/generate", response_model=schemas.PreviewResponse)
def generate(
    prompt: Optional[schemas.RecipePrompt] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generator: RecipeGenerator = Depends(get_generator),
):
    if prompt is None or not prompt.provided():
        raise ValidationFailed("Recipe prompt is required")

    try:
        preview = generate_recipe(prompt, generator)
    except RecipeGenerationError as e:
        logger.warning("Generation for user %s failed: %s", user.id, e.reason)
        raise UpstreamFailure("Failed to generate recipe")

    existing = crud.get_recipe_by_title(db, user.id, preview.title)
    if existing is not None:
        raise _conflict(existing, preview=preview.model_dump(by_alias=True, mode="json"))
    return schemas.PreviewResponse(preview=preview)


def _create(payload: schemas.RecipeCreate, user: models.User, db: Session):
    fields = payload.model_dump()
    error = validate_recipe(fields)
    if error:
        raise ValidationFailed(error)
    _check_categories(fields["categories"])
    data = _normalize(fields)

    existing = crud.get_recipe_by_title(db, user.id, data["title"])
    if existing is not None:
        raise _conflict(existing)
    try:
        recipe = crud.create_recipe(db, user.id, data)
    except IntegrityError:
        # Same title saved concurrently; the unique constraint caught it
        existing = crud.get_recipe_by_title(db, user.id, data["title"])
        if existing is None:
            raise
        raise _conflict(existing)
    return schemas.RecipeOut.from_model(recipe)


@router.post(
    "/save",
    response_model=schemas.RecipeOut,
    status_code=status.HTTP_201_CREATED,
)
def save_recipe(
    payload: schemas.RecipeCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Persist a previously generated preview."""
    return _create(payload, user, db)


@router.post("", response_model=schemas.RecipeOut, status_code=status.HTTP_201_CREATED)
def create_recipe(
    payload: schemas.RecipeCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _create(payload, user, db)


@router.get("", response_model=List[schemas.RecipeOut])
def list_recipes(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    recipes = crud.get_recipes(db, user.id, skip=skip, limit=limit)
    return [schemas.RecipeOut.from_model(r) for r in recipes]


@router.get("/categories/all", response_model=List[str])
def list_categories(user: models.User = Depends(get_current_user)):
    return list(PREDEFINED_CATEGORIES)


@router.get("/category/{category}", response_model=List[schemas.RecipeOut])
def recipes_in_category(
    category: str,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not is_valid_category(category):
        raise ValidationFailed("Invalid category")
    record = crud.get_category(db, category)
    if record is None:
        raise NotFound("Category not found")
    recipes = crud.get_recipes_by_category(db, user.id, record)
    return [schemas.RecipeOut.from_model(r) for r in recipes]


@router.get("/{recipe_id}", response_model=schemas.RecipeOut)
def get_recipe(
    recipe_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return schemas.RecipeOut.from_model(_owned_recipe(db, recipe_id, user))


@router.put("/{recipe_id}", response_model=schemas.RecipeOut)
def update_recipe(
    recipe_id: int,
    payload: schemas.RecipeUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    recipe = _owned_recipe(db, recipe_id, user)
    fields = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None
    }

    # Validate the recipe as it will look after the update
    current = {
        "title": recipe.title,
        "ingredients": [
            {"name": ri.ingredient.name, "amount": ri.amount, "unit": ri.unit}
            for ri in recipe.ingredients
        ],
        "instructions": recipe.instruction_list,
        "servings": recipe.servings,
        "difficulty": recipe.difficulty,
    }
    current.update(fields)
    error = validate_recipe(current)
    if error:
        raise ValidationFailed(error)
    _check_categories(fields.get("categories"))
    changes = _normalize(fields)

    if "title" in changes and models.title_key(changes["title"]) != recipe.title_key:
        existing = crud.get_recipe_by_title(db, user.id, changes["title"])
        if existing is not None:
            raise _conflict(existing)
    try:
        recipe = crud.update_recipe(db, recipe, changes)
    except IntegrityError:
        existing = crud.get_recipe_by_title(db, user.id, changes.get("title", ""))
        if existing is None:
            raise
        raise _conflict(existing)
    return schemas.RecipeOut.from_model(recipe)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe(
    recipe_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    recipe = _owned_recipe(db, recipe_id, user)
    crud.delete_recipe(db, recipe)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{recipe_id}/categories", response_model=schemas.RecipeOut)
def update_recipe_categories(
    recipe_id: int,
    payload: schemas.CategoryUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    categories = payload.categories
    if not isinstance(categories, list):
        raise ValidationFailed("Categories must be an array")
    _check_categories(categories)
    recipe = _owned_recipe(db, recipe_id, user)
    recipe = crud.set_recipe_categories(db, recipe, categories)
    return schemas.RecipeOut.from_model(recipe)
