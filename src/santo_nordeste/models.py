from __future__ import annotations
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Difficulty(str, Enum):
    EASY = "Fácil"
    MEDIUM = "Médio"
    HARD = "Difícil"


class Mode(str, Enum):
    TRADITIONAL = "traditional"
    PANTRY = "pantry"


class RecipeDraft(BaseModel):
    """A recipe as returned by the generator, before it gets an id or image."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    description: str
    ingredients: list[str]
    instructions: list[str]
    history: str
    cooking_time: str = Field(alias="cookingTime")
    difficulty: Difficulty
    drink_pairings: list[str] = Field(alias="drinkPairings")


class Recipe(RecipeDraft):
    id: str
    image_url: Optional[str] = None


class SessionState(BaseModel):
    search_query: str = ""
    is_searching: bool = False
    recipes: list[Recipe] = Field(default_factory=list)
    selected_recipe: Optional[Recipe] = None
    error: Optional[str] = None
    mode: Mode = Mode.TRADITIONAL
