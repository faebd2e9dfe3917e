from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CamelModel(BaseModel):
    """Accepts both snake_case names and their camelCase aliases"""
    model_config = ConfigDict(populate_by_name=True)


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class RecipePrompt(CamelModel):
    ingredients: Optional[List[str]] = Field(
        None, json_schema_extra={"example": ["chicken", "rice"]}
    )
    dietary: Optional[List[str]] = Field(
        None, json_schema_extra={"example": ["gluten-free"]}
    )
    cuisine: Optional[str] = None
    meal_type: Optional[str] = Field(None, alias="mealType")
    difficulty: Optional[Difficulty] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    def provided(self) -> dict:
        """Fields that carry a value; empty strings and lists count as absent."""
        fields = {}
        for key, value in self.model_dump().items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, list):
                value = [v for v in value if v and v.strip()]
                if not value:
                    continue
            fields[key] = value
        return fields


class IngredientLine(BaseModel):
    name: str = Field(..., json_schema_extra={"example": "flour"})
    amount: Optional[str] = Field("1", json_schema_extra={"example": "2"})
    unit: Optional[str] = Field("unit", json_schema_extra={"example": "cups"})

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "1"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("unit", mode="before")
    @classmethod
    def _default_unit(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "unit"
        return value


class GeneratedRecipe(CamelModel):
    """Shape of the JSON object the model is asked to return"""
    title: str = Field(..., min_length=1)
    ingredients: List[Union[IngredientLine, str]] = Field(..., min_length=1)
    instructions: List[str] = Field(..., min_length=1)
    prep_time: Optional[Union[str, int, float]] = Field(None, alias="prepTime")
    cook_time: Optional[Union[str, int, float]] = Field(None, alias="cookTime")
    servings: Optional[Union[int, str]] = None
    difficulty: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value):
        return [] if value is None else value

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value.strip()


class RecipePreview(CamelModel):
    title: str
    ingredients: List[IngredientLine]
    instructions: List[str]
    prep_time: str = Field("0", alias="prepTime")
    cook_time: str = Field("0", alias="cookTime")
    servings: str = "1"
    difficulty: str = "EASY"
    tags: List[str] = Field(default_factory=list)
    is_preview: bool = Field(True, alias="isPreview")


class RecipeCreate(CamelModel):
    title: Optional[str] = Field(
        None, json_schema_extra={"example": "Simple Pancakes"}
    )
    ingredients: List[Union[IngredientLine, str]] = Field(
        default_factory=list,
        json_schema_extra={"example": ["2 cups flour", "1 cup milk"]},
    )
    instructions: List[str] = Field(
        default_factory=list,
        json_schema_extra={
            "example": [
                "Mix dry ingredients",
                "Add wet ingredients",
                "Cook on skillet until golden",
            ]
        },
    )
    prep_time: Union[str, int] = Field("0", alias="prepTime")
    cook_time: Union[str, int] = Field("0", alias="cookTime")
    servings: Union[int, str] = "1"
    difficulty: str = "EASY"
    tags: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)


class RecipeUpdate(CamelModel):
    title: Optional[str] = None
    ingredients: Optional[List[Union[IngredientLine, str]]] = None
    instructions: Optional[List[str]] = None
    prep_time: Optional[Union[str, int]] = Field(None, alias="prepTime")
    cook_time: Optional[Union[str, int]] = Field(None, alias="cookTime")
    servings: Optional[Union[int, str]] = None
    difficulty: Optional[str] = None
    tags: Optional[List[str]] = None
    categories: Optional[List[str]] = None


class CategoryUpdate(BaseModel):
    # Checked by hand so a non-list gets the dedicated error message
    categories: Any = None


class RecipeOut(CamelModel):
    id: int
    title: str
    ingredients: List[IngredientLine]
    instructions: List[str]
    prep_time: str = Field(..., alias="prepTime")
    cook_time: str = Field(..., alias="cookTime")
    servings: str
    difficulty: str
    tags: List[str]
    categories: List[str]
    user_id: int = Field(..., alias="userId")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_model(cls, recipe) -> "RecipeOut":
        return cls(
            id=recipe.id,
            title=recipe.title,
            ingredients=[
                IngredientLine(name=ri.ingredient.name, amount=ri.amount, unit=ri.unit)
                for ri in recipe.ingredients
            ],
            instructions=recipe.instruction_list,
            prep_time=recipe.prep_time,
            cook_time=recipe.cook_time,
            servings=recipe.servings,
            difficulty=recipe.difficulty,
            tags=[t.name for t in recipe.tags],
            categories=[c.name for c in recipe.categories],
            user_id=recipe.user_id,
            created_at=recipe.created_at,
            updated_at=recipe.updated_at,
        )

    def as_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class UserRegister(BaseModel):
    email: Optional[str] = Field(None, json_schema_extra={"example": "cook@example.com"})
    password: Optional[str] = Field(None, json_schema_extra={"example": "Password123"})
    name: Optional[str] = None


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None


class AuthResponse(BaseModel):
    user: UserOut
    token: str


class ProfileResponse(BaseModel):
    user: UserOut


class PreviewResponse(BaseModel):
    preview: RecipePreview
