"""Recipe registry for discovery and instantiation."""

from regionflow.core.registry import StepRegistry
from regionflow.core.schema import AnalysisConfig
from regionflow.core.utils import get_logger
from regionflow.recipes.base import BaseRecipe

logger = get_logger(__name__)

# Global recipe registry
_RECIPE_REGISTRY: dict[str, dict[str, type[BaseRecipe]]] = {}
_builtins_loaded = False


def _load_builtin_recipes() -> None:
    """Register the recipes shipped with the bundled datasets."""
    global _builtins_loaded
    if _builtins_loaded:
        return
    _builtins_loaded = True

    from regionflow.datasets.ny_lyme.recipes.ny_lyme_v1 import NyLymeV1Recipe

    register_recipe("ny_lyme", "ny_lyme_v1", NyLymeV1Recipe)


def register_recipe(
    dataset_name: str,
    recipe_name: str,
    recipe_class: type[BaseRecipe],
) -> None:
    """
    Register a recipe for a dataset.

    Args:
        dataset_name: Name of the dataset
        recipe_name: Name of the recipe
        recipe_class: Recipe class to register
    """
    recipes = _RECIPE_REGISTRY.setdefault(dataset_name, {})
    if recipes.get(recipe_name) is recipe_class:
        return
    recipes[recipe_name] = recipe_class
    logger.debug(f"Registered recipe '{recipe_name}' for dataset '{dataset_name}'")


def get_recipe(
    dataset_name: str,
    recipe_name: str,
    config: AnalysisConfig | None = None,
    *,
    step_registry: StepRegistry | None = None,
) -> BaseRecipe:
    """
    Get a recipe instance.

    Args:
        dataset_name: Name of the dataset
        recipe_name: Name of the recipe
        config: Optional analysis configuration
        step_registry: Registry passed to the recipe for configured steps

    Returns:
        Recipe instance

    Raises:
        ValueError: If dataset or recipe not found
    """
    _load_builtin_recipes()
    if dataset_name not in _RECIPE_REGISTRY:
        raise ValueError(
            f"Dataset '{dataset_name}' not found. "
            f"Available datasets: {list(_RECIPE_REGISTRY.keys())}"
        )

    if recipe_name not in _RECIPE_REGISTRY[dataset_name]:
        raise ValueError(
            f"Recipe '{recipe_name}' not found for dataset '{dataset_name}'. "
            f"Available recipes: {list(_RECIPE_REGISTRY[dataset_name].keys())}"
        )

    recipe_class = _RECIPE_REGISTRY[dataset_name][recipe_name]

    if config is None:
        config = AnalysisConfig(dataset=dataset_name, recipe=recipe_name)

    logger.info(f"Creating recipe instance: {recipe_name} for dataset {dataset_name}")
    return recipe_class(config, step_registry=step_registry)


def list_recipes(dataset_name: str | None = None) -> dict[str, list[str]]:
    """
    List available recipes.

    Args:
        dataset_name: Optional dataset name to filter by

    Returns:
        Dictionary mapping dataset names to lists of recipe names
    """
    _load_builtin_recipes()
    if dataset_name is not None:
        if dataset_name not in _RECIPE_REGISTRY:
            return {}
        return {dataset_name: list(_RECIPE_REGISTRY[dataset_name].keys())}

    return {dataset: list(recipes.keys()) for dataset, recipes in _RECIPE_REGISTRY.items()}


def list_datasets() -> list[str]:
    """List datasets with registered recipes."""
    _load_builtin_recipes()
    return list(_RECIPE_REGISTRY.keys())
