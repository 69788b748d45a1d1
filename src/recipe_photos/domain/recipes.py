"""Recipe data used to describe a dish for image generation."""

from pydantic import BaseModel, Field


class RecipeIngredient(BaseModel):
    """Ingredient name with its share of the recipe cost."""

    name: str
    cost_percentage: float = Field(default=0.0, ge=0.0)


class GenerationRequest(BaseModel):
    """Recipe details used to build an image prompt."""

    recipe_name: str
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
