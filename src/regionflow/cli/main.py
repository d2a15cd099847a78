"""Main CLI application using Typer."""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml  # type: ignore[import-untyped]

from regionflow.core.registry import OutputAdapterRegistry, StepRegistry

app = typer.Typer(help="Regionflow: spatial autocorrelation for region data")

# --------------------------------------------------------------------------- #
# Global registries (built on first access)
# --------------------------------------------------------------------------- #
_step_registry: StepRegistry | None = None
_output_registry: OutputAdapterRegistry | None = None


def get_step_registry() -> StepRegistry:
    """Return the global step registry with the built-in steps."""
    global _step_registry
    if _step_registry is None:
        from regionflow.core.steps.registration import get_default_registry

        _step_registry = get_default_registry()
    return _step_registry


def get_output_registry() -> OutputAdapterRegistry:
    """Return the global output adapter registry."""
    global _output_registry
    if _output_registry is None:
        from regionflow.core.steps.registration import get_default_output_registry

        _output_registry = get_default_output_registry()
    return _output_registry


def _load_yaml(path: str) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        typer.echo(f"Error: Config file not found: {path}", err=True)
        raise typer.Exit(code=1) from None

    with open(config_path) as f:
        config_dict = yaml.safe_load(f)
    if not isinstance(config_dict, dict):
        typer.echo(f"Error: Config file must hold a mapping: {path}", err=True)
        raise typer.Exit(code=1) from None
    return config_dict


def _echo_statistics(statistics: dict[str, Any]) -> None:
    # Round-trip through JSON so numpy scalars and ids dump as plain YAML
    plain = json.loads(json.dumps(statistics, default=str))
    typer.echo(yaml.safe_dump(plain, sort_keys=False, default_flow_style=False))


def _write_output(region_frame: Any, output: str) -> None:
    try:
        adapter = get_output_registry().for_path(output)
    except KeyError:
        typer.echo(f"Error: No output adapter for {output}; use .parquet or .geojson", err=True)
        raise typer.Exit(code=1) from None
    adapter.write(region_frame)
    typer.echo(f"Results written to {output}")


@app.command()
def join(
    attributes: Annotated[str | None, typer.Option(help="Attribute table (CSV)")] = None,
    boundaries: Annotated[str | None, typer.Option(help="Boundary file (shapefile, GeoJSON, ...)")] = None,
    output: Annotated[str | None, typer.Option(help="Output Parquet path")] = None,
    attributes_key: Annotated[str | None, typer.Option(help="Join key in the attribute table")] = None,
    boundaries_key: Annotated[str | None, typer.Option(help="Join key in the boundaries")] = None,
    dataset: Annotated[str, typer.Option(help="Dataset name ('ny_lyme' uses its own mapping)")] = "regions",
    crs: Annotated[str | None, typer.Option(help="Reproject boundaries to this CRS")] = None,
    config: Annotated[str | None, typer.Option(help="Dataset config YAML")] = None,
) -> None:
    """
    Join an attribute table onto region boundaries and save the result.

    Example:
        regionflow join --dataset ny_lyme --attributes LymeData.csv --boundaries Counties.shp --output data/ny_lyme.parquet
    """
    from regionflow.core.loaders import load_regions
    from regionflow.core.schema import DatasetConfig

    try:
        if config is not None:
            dataset_config = DatasetConfig(**_load_yaml(config))
            if output is not None:
                dataset_config = dataset_config.model_copy(update={"output_path": output})
            region_frame = load_regions(dataset_config)
            output = dataset_config.output_path
        elif attributes is None or boundaries is None:
            typer.echo("Error: --attributes and --boundaries are required without --config", err=True)
            raise typer.Exit(code=1) from None
        elif dataset == "ny_lyme":
            from regionflow.datasets.ny_lyme import load_ny_lyme

            region_frame = load_ny_lyme(attributes, boundaries, crs=crs, output_path=output)
        else:
            if attributes_key is None or boundaries_key is None:
                typer.echo("Error: --attributes-key and --boundaries-key are required", err=True)
                raise typer.Exit(code=1) from None
            region_frame = load_regions(
                DatasetConfig(
                    dataset_name=dataset,
                    attributes_path=attributes,
                    boundaries_path=boundaries,
                    attributes_key=attributes_key,
                    boundaries_key=boundaries_key,
                    crs=crs,
                    output_path=output,
                )
            )
    except (FileNotFoundError, KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"Joined {region_frame.count()} regions ({region_frame.metadata.crs})")
    if output:
        typer.echo(f"Saved to {output}")


@app.command()
def analyze(
    input: Annotated[str, typer.Option(help="Joined region dataset (Parquet)")],
    column: Annotated[str, typer.Option(help="Attribute column to analyse")],
    transform: Annotated[str, typer.Option(help="log, log1p or none")] = "log",
    criterion: Annotated[str, typer.Option(help="queen or rook contiguity")] = "queen",
    tolerance: Annotated[float, typer.Option(help="Boundary touching tolerance")] = 0.0,
    permutations: Annotated[int, typer.Option(help="Number of permutations")] = 999,
    alternative: Annotated[str, typer.Option(help="greater, less or two-sided")] = "greater",
    significance: Annotated[float, typer.Option(help="LISA significance threshold")] = 0.05,
    seed: Annotated[int | None, typer.Option(help="Random seed")] = None,
    output: Annotated[str | None, typer.Option(help="Write per-region results here")] = None,
    map_path: Annotated[str | None, typer.Option("--map", help="Save a LISA cluster map (.png or .html)")] = None,
) -> None:
    """
    Run global and local Moran's I on one column of a joined dataset.

    Example:
        regionflow analyze --input data/ny_lyme.parquet --column Lyme.Incidence.Rate --seed 42
    """
    from pydantic import ValidationError

    from regionflow.core.loaders import read_regions
    from regionflow.core.schema import AnalysisConfig, ContiguityConfig
    from regionflow.recipes.base import analysed_column, build_analysis_pipeline

    try:
        cfg = AnalysisConfig(
            dataset="adhoc",
            recipe="analyze",
            value_col=column,
            transform=transform,  # type: ignore[arg-type]
            contiguity=ContiguityConfig(criterion=criterion, tolerance=tolerance),  # type: ignore[arg-type]
            permutations=permutations,
            alternative=alternative,  # type: ignore[arg-type]
            significance=significance,
            seed=seed,
        )
    except ValidationError as e:
        typer.echo(f"Error: Invalid options: {e}", err=True)
        raise typer.Exit(code=1) from None

    analysed = analysed_column(cfg, column)
    try:
        result = build_analysis_pipeline(cfg, column).run(read_regions(input))
    except (FileNotFoundError, KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    _echo_statistics(result.metadata.statistics)

    if output:
        _write_output(result, output)
    if map_path:
        from regionflow.plotting import RenderConfig, plot_lisa_clusters, save_figure

        mode = "interactive" if map_path.lower().endswith(".html") else "static"
        figure = plot_lisa_clusters(
            result,
            f"{analysed}_lisa_cluster",
            RenderConfig(mode=mode, title=f"LISA clusters: {column}"),
        )
        save_figure(figure, map_path)
        typer.echo(f"Map written to {map_path}")


@app.command()
def run(
    dataset: str = typer.Option(..., help="Dataset name"),
    recipe: str = typer.Option(..., help="Recipe name"),
    config: str = typer.Option(..., help="Path to analysis config YAML"),
    input: str = typer.Option(..., help="Joined region dataset (Parquet)"),
    output: str | None = typer.Option(None, help="Output path for results"),
) -> None:
    """
    Run a recipe on a joined dataset.

    Example:
        regionflow run --dataset ny_lyme --recipe ny_lyme_v1 --config configs/recipes/ny_lyme_v1.yaml --input data/ny_lyme.parquet
    """
    from pydantic import ValidationError

    from regionflow.core.loaders import read_regions
    from regionflow.core.schema import AnalysisConfig
    from regionflow.recipes.registry import get_recipe

    typer.echo(f"Running recipe '{recipe}' on dataset '{dataset}'...")

    config_dict = _load_yaml(config)
    config_dict.setdefault("dataset", dataset)
    config_dict.setdefault("recipe", recipe)
    try:
        analysis_config = AnalysisConfig(**config_dict)
    except ValidationError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None

    # Inject step registry so configured steps resolve by name
    step_registry = get_step_registry()

    try:
        recipe_instance = get_recipe(
            dataset,
            recipe,
            analysis_config,
            step_registry=step_registry,
        )
        typer.echo(f"Recipe loaded: {recipe_instance}")
        result = recipe_instance.run(read_regions(input))
    except (FileNotFoundError, KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    _echo_statistics(result.metadata.statistics)

    output = output or analysis_config.output.get("path")
    if output:
        _write_output(result, output)


@app.command()
def list_datasets() -> None:
    """List all available datasets."""
    from regionflow.recipes.registry import list_datasets as get_datasets

    datasets = get_datasets()

    if not datasets:
        typer.echo("No datasets registered")
        return

    typer.echo("Available datasets:")
    for dataset in datasets:
        typer.echo(f"  - {dataset}")


@app.command()
def list_recipes(dataset: str | None = typer.Option(None, help="Filter by dataset")) -> None:
    """List all available recipes."""
    from regionflow.recipes.registry import list_recipes as get_recipes

    recipes = get_recipes(dataset)

    if not recipes:
        typer.echo(
            f"No recipes found for dataset: {dataset}" if dataset else "No recipes registered"
        )
        return

    typer.echo("Available recipes:")
    for ds, recipe_list in recipes.items():
        typer.echo(f"\n{ds}:")
        for recipe_name in recipe_list:
            typer.echo(f"  - {recipe_name}")


@app.command()
def validate(
    config: str = typer.Option(..., help="Path to config YAML to validate"),
) -> None:
    """Validate a configuration file."""
    from pydantic import ValidationError

    from regionflow.core.schema import AnalysisConfig, DatasetConfig

    config_dict = _load_yaml(config)

    try:
        if "recipe" in config_dict:
            AnalysisConfig(**config_dict)
            typer.echo(f"✓ Valid analysis configuration: {config}")
        elif "dataset_name" in config_dict:
            DatasetConfig(**config_dict)
            typer.echo(f"✓ Valid dataset configuration: {config}")
        else:
            typer.echo("Error: Unknown configuration type", err=True)
            raise typer.Exit(code=1) from None
    except ValidationError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None


@app.command()
def version() -> None:
    """Show regionflow version."""
    from regionflow import __version__

    typer.echo(f"regionflow version {__version__}")


# --------------------------------------------------------------------------- #
# Registry inspection commands
# --------------------------------------------------------------------------- #


@app.command()
def list_steps(
    tag: Annotated[str | None, typer.Option(help="Filter steps by tag")] = None,
) -> None:
    """List registered pipeline steps."""
    registry = get_step_registry()
    specs = registry.list(tag=tag)

    if not specs:
        typer.echo("No steps registered" + (f" with tag '{tag}'" if tag else ""))
        return

    typer.echo("Registered steps:")
    for spec in specs:
        tags_str = ", ".join(sorted(spec.tags)) if spec.tags else "none"
        desc = spec.description or ""
        typer.echo(f"  {spec.name}  [tags: {tags_str}]")
        if desc:
            typer.echo(f"      {desc}")


@app.command()
def list_output_adapters() -> None:
    """List registered output adapters."""
    registry = get_output_registry()
    specs = registry.list()

    if not specs:
        typer.echo("No output adapters registered")
        return

    typer.echo("Registered output adapters:")
    for spec in specs:
        tags_str = ", ".join(sorted(spec.tags)) if spec.tags else "none"
        desc = spec.description or ""
        typer.echo(f"  {spec.name}  [tags: {tags_str}]")
        if desc:
            typer.echo(f"      {desc}")


if __name__ == "__main__":
    app()
