#!/usr/bin/env python
"""
Example script for running the NY Lyme recipe.

This script demonstrates how to:
1. Join the Lyme incidence table onto the county boundaries
2. Apply the autocorrelation recipe
3. Save the results and maps
"""

import sys
from pathlib import Path

import yaml  # type: ignore[import-untyped]

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from regionflow.core.loaders import read_regions, write_regions
from regionflow.core.schema import AnalysisConfig, DatasetConfig
from regionflow.core.steps.registration import get_default_registry
from regionflow.datasets.ny_lyme import load_ny_lyme
from regionflow.plotting import RenderConfig, plot_choropleth, plot_lisa_clusters, save_figure
from regionflow.recipes.registry import get_recipe


def main() -> None:
    """Main execution function."""
    dataset_config_path = Path("configs/datasets/ny_lyme.yaml")
    recipe_config_path = Path("configs/recipes/ny_lyme_v1.yaml")

    print("=" * 60)
    print("NY Lyme Recipe Runner")
    print("=" * 60)

    print(f"\n1. Loading dataset configuration from {dataset_config_path}")
    with open(dataset_config_path) as f:
        dataset_config = DatasetConfig(**yaml.safe_load(f))
    print(f"   Attributes: {dataset_config.attributes_path}")
    print(f"   Boundaries: {dataset_config.boundaries_path}")
    print(f"   CRS: {dataset_config.crs}")

    print(f"\n2. Loading recipe configuration from {recipe_config_path}")
    with open(recipe_config_path) as f:
        analysis_config = AnalysisConfig(**yaml.safe_load(f))
    print(f"   Recipe: {analysis_config.recipe}")
    print(f"   Transform: {analysis_config.transform}")
    print(f"   Permutations: {analysis_config.permutations}")

    print("\n3. Joining counties...")
    joined_path = Path(dataset_config.output_path or "data/processed/ny_lyme.parquet")
    if joined_path.exists():
        region_frame = read_regions(joined_path)
        print(f"   Reusing joined dataset at {joined_path}")
    else:
        region_frame = load_ny_lyme(
            dataset_config.attributes_path,
            dataset_config.boundaries_path,
            crs=dataset_config.crs,
            output_path=joined_path,
        )
    print(f"   {region_frame.count()} counties")

    print("\n4. Running recipe...")
    recipe = get_recipe(
        analysis_config.dataset,
        analysis_config.recipe,
        analysis_config,
        step_registry=get_default_registry(),
    )
    result = recipe.run(region_frame)
    for name, summary in result.metadata.statistics.items():
        print(f"   {name}: {summary}")

    output_path = Path(analysis_config.output.get("path", "data/processed/ny_lyme_lisa.parquet"))
    print(f"\n5. Saving results to {output_path}...")
    write_regions(result, output_path)

    value_col = analysis_config.value_col or "Lyme.Incidence.Rate"
    maps_dir = output_path.parent / "maps"
    save_figure(
        plot_choropleth(result, value_col, RenderConfig(title="Lyme incidence per 100,000")),
        maps_dir / "incidence.png",
    )
    save_figure(
        plot_choropleth(result, value_col, RenderConfig(mode="interactive")),
        maps_dir / "incidence.html",
    )
    save_figure(
        plot_lisa_clusters(result, f"{recipe.analysed_col}_lisa_cluster"),
        maps_dir / "lisa_clusters.png",
    )

    print("\n" + "=" * 60)
    print("Script execution complete")
    print("=" * 60)


if __name__ == "__main__":
    main()
