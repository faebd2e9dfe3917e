import json
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int):
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, email: str, password_hash: str, name: Optional[str] = None):
    db_user = models.User(email=email, password_hash=password_hash, name=name)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)
    return db_user


def get_recipe(db: Session, recipe_id: int, user_id: int):
    """Fetch a recipe only if it belongs to ``user_id``."""
    logger.debug("Looking up recipe %s for user %s", recipe_id, user_id)
    return (
        db.query(models.Recipe)
        .filter(models.Recipe.id == recipe_id, models.Recipe.user_id == user_id)
        .first()
    )


def get_recipe_by_title(db: Session, user_id: int, title: str):
    logger.debug("Looking up recipe titled %r for user %s", title, user_id)
    return (
        db.query(models.Recipe)
        .filter(
            models.Recipe.user_id == user_id,
            models.Recipe.title_key == models.title_key(title),
        )
        .first()
    )


def get_recipes(db: Session, user_id: int, skip: int = 0, limit: int = 100):
    logger.debug("Listing recipes for user %s (skip=%s, limit=%s)", user_id, skip, limit)
    return (
        db.query(models.Recipe)
        .filter(models.Recipe.user_id == user_id)
        .order_by(models.Recipe.created_at.desc(), models.Recipe.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_category(db: Session, name: str):
    logger.debug("Looking up category %r", name)
    return db.query(models.Category).filter(models.Category.name == name).first()


def get_recipes_by_category(db: Session, user_id: int, category: models.Category):
    logger.debug("Listing %s recipes for user %s", category.name, user_id)
    return (
        db.query(models.Recipe)
        .join(models.Recipe.categories)
        .filter(
            models.Recipe.user_id == user_id,
            models.Category.id == category.id,
        )
        .order_by(models.Recipe.created_at.desc(), models.Recipe.id.desc())
        .all()
    )


def _get_or_create(db: Session, model, name: str):
    """Find-or-create a name-keyed lookup row.

    The insert runs in a savepoint so a concurrent insert of the same name,
    caught by the unique constraint, falls back to reading the winner's row.
    """
    instance = db.query(model).filter(model.name == name).first()
    if instance is not None:
        return instance
    try:
        with db.begin_nested():
            instance = model(name=name)
            db.add(instance)
    except IntegrityError:
        logger.debug("Lost insert race for %s %r", model.__tablename__, name)
        instance = db.query(model).filter(model.name == name).one()
    return instance


def _unique_names(names: Iterable[str]) -> List[str]:
    seen = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


def _set_ingredients(db: Session, recipe: models.Recipe, ingredients: List[dict]):
    recipe.ingredients = [
        models.RecipeIngredient(
            ingredient=_get_or_create(db, models.Ingredient, item["name"].strip()),
            amount=item.get("amount") or "1",
            unit=item.get("unit") or "unit",
        )
        for item in ingredients
    ]


def _set_tags(db: Session, recipe: models.Recipe, tags: Iterable[str]):
    recipe.tags = [_get_or_create(db, models.Tag, name) for name in _unique_names(tags)]


def _set_categories(db: Session, recipe: models.Recipe, categories: Iterable[str]):
    recipe.categories = [
        _get_or_create(db, models.Category, name) for name in _unique_names(categories)
    ]


def create_recipe(db: Session, user_id: int, data: dict):
    """Persist a recipe and link its ingredients, tags and categories.

    ``data`` holds normalized values: ingredients as ``{name, amount, unit}``
    dicts and difficulty already uppercased. Raises ``IntegrityError`` (after
    rolling back) when the user already has a recipe with this title.
    """
    db_recipe = models.Recipe(
        user_id=user_id,
        title=data["title"].strip(),
        title_key=models.title_key(data["title"]),
        instructions=json.dumps(data["instructions"]),
        prep_time=data.get("prep_time") or "0",
        cook_time=data.get("cook_time") or "0",
        servings=data.get("servings") or "1",
        difficulty=data.get("difficulty") or "EASY",
    )
    try:
        db.add(db_recipe)
        db.flush()
        _set_ingredients(db, db_recipe, data["ingredients"])
        _set_tags(db, db_recipe, data.get("tags") or [])
        _set_categories(db, db_recipe, data.get("categories") or [])
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    db.refresh(db_recipe)
    logger.info("Created recipe %s for user %s", db_recipe.id, user_id)
    return db_recipe


def update_recipe(db: Session, db_recipe: models.Recipe, changes: dict):
    """Apply the supplied fields; relation lists are replaced wholesale."""
    if "title" in changes:
        db_recipe.title = changes["title"].strip()
        db_recipe.title_key = models.title_key(changes["title"])
    if "instructions" in changes:
        db_recipe.instructions = json.dumps(changes["instructions"])
    for field in ("prep_time", "cook_time", "servings", "difficulty"):
        if field in changes:
            setattr(db_recipe, field, changes[field])
    db_recipe.updated_at = datetime.now(timezone.utc)
    try:
        db.flush()
        if "ingredients" in changes:
            _set_ingredients(db, db_recipe, changes["ingredients"])
        if "tags" in changes:
            _set_tags(db, db_recipe, changes["tags"])
        if "categories" in changes:
            _set_categories(db, db_recipe, changes["categories"])
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    db.refresh(db_recipe)
    logger.info("Updated recipe %s", db_recipe.id)
    return db_recipe


def set_recipe_categories(db: Session, db_recipe: models.Recipe, categories: List[str]):
    _set_categories(db, db_recipe, categories)
    db_recipe.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(db_recipe)
    return db_recipe


def delete_recipe(db: Session, db_recipe: models.Recipe):
    recipe_id = db_recipe.id
    db.delete(db_recipe)
    db.commit()
    logger.info("Deleted recipe %s", recipe_id)
    return True
