"""Recipe mechanism for composable region analyses."""

from regionflow.recipes.base import BaseRecipe
from regionflow.recipes.registry import get_recipe, list_datasets, list_recipes, register_recipe

__all__ = [
    "BaseRecipe",
    "register_recipe",
    "get_recipe",
    "list_recipes",
    "list_datasets",
]
