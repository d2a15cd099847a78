"""Tests for pipeline step registry."""

from typing import Any

import polars as pl
import pytest
from pydantic import BaseModel, ValidationError

from regionflow.core.output_adapters import (
    BaseOutputAdapter,
    GeoJSONOutputAdapter,
    ParquetOutputAdapter,
)
from regionflow.core.pipeline import Pipeline, Step
from regionflow.core.region_frame import RegionFrame
from regionflow.core.registry import OutputAdapterRegistry, StepRegistry
from regionflow.core.schema import AnalysisConfig
from regionflow.core.steps import (
    GlobalMoranStep,
    get_default_output_registry,
    get_default_registry,
)
from regionflow.recipes.base import BaseRecipe


class DummyStep(Step):
    """No-op step for testing."""

    def run(self, region_frame: RegionFrame) -> RegionFrame:  # pragma: no cover - trivial pass-through
        return region_frame


class AnotherStep(Step):
    """Another no-op for tagging tests."""

    def run(self, region_frame: RegionFrame) -> RegionFrame:  # pragma: no cover - trivial pass-through
        return region_frame


class DoubleValueStep(Step):
    def run(self, region_frame: RegionFrame) -> RegionFrame:
        return region_frame.with_columns(value=pl.col("value") * 2)


@pytest.fixture()
def fresh_registry() -> StepRegistry:
    return StepRegistry()


def test_step_registry_register_and_get(fresh_registry: StepRegistry) -> None:
    class DummyConfig(BaseModel):
        permutations: int

    fresh_registry.register(
        name="dummy",
        cls=DummyStep,
        tags={"spatial", "statistics"},
        description="Dummy test step",
        config_model=DummyConfig,
    )

    spec = fresh_registry.get("dummy")
    assert spec.name == "dummy"
    assert spec.cls is DummyStep
    assert spec.tags == {"spatial", "statistics"}
    assert spec.description == "Dummy test step"
    assert spec.config_model is DummyConfig


def test_step_registry_filters_by_tag(fresh_registry: StepRegistry) -> None:
    fresh_registry.register("dummy", DummyStep, tags={"spatial"})
    fresh_registry.register("another", AnotherStep, tags={"cleaning"})

    names = {spec.name for spec in fresh_registry.list(tag="spatial")}
    assert names == {"dummy"}
    assert {spec.name for spec in fresh_registry.list()} == {"dummy", "another"}


def test_step_registry_rejects_duplicate_names(fresh_registry: StepRegistry) -> None:
    fresh_registry.register("dummy", DummyStep)
    with pytest.raises(ValueError):
        fresh_registry.register("dummy", AnotherStep)


def test_step_registry_rejects_unknown_tags(fresh_registry: StepRegistry) -> None:
    with pytest.raises(ValueError, match="Unsupported step tags"):
        fresh_registry.register("dummy", DummyStep, tags={"temporal"})


def test_step_registry_create_validates_params() -> None:
    registry = get_default_registry()

    step = registry.create("global_moran", params={"value_col": "rate", "permutations": 99})
    assert isinstance(step, GlobalMoranStep)
    assert step.permutations == 99
    assert step.criterion == "queen"

    with pytest.raises(ValidationError):
        registry.create("global_moran", params={"value_col": "rate", "criterion": "bishop"})


def test_default_registry_lists_builtin_steps() -> None:
    names = {spec.name for spec in get_default_registry().list()}

    assert names == {
        "drop_missing",
        "log_transform",
        "transform_crs",
        "spatial_lag",
        "global_moran",
        "local_moran",
    }
    assert {spec.name for spec in get_default_registry().list(tag="statistics")} == {
        "global_moran",
        "local_moran",
    }


def test_step_registry_build_pipeline_runs_steps(
    fresh_registry: StepRegistry, strip_frame: RegionFrame
) -> None:
    class AddConstantStep(Step):
        def __init__(self, column: str, value: int) -> None:
            self.column = column
            self.value = value

        def run(self, region_frame: RegionFrame) -> RegionFrame:
            return region_frame.with_columns(**{self.column: pl.lit(self.value)})

    fresh_registry.register("add_constant", AddConstantStep)
    fresh_registry.register("double_value", DoubleValueStep)

    pipeline = fresh_registry.build_pipeline(
        [
            {"name": "add_constant", "params": {"column": "source", "value": 7}},
            ("double_value", None),
        ]
    )

    df = pipeline.run(strip_frame).collect()
    assert df["source"].to_list() == [7] * 5
    assert df["value"].to_list() == [2.0, 4.0, 6.0, 8.0, 10.0]


def test_build_pipeline_from_builtin_definitions(strip_frame: RegionFrame) -> None:
    pipeline = get_default_registry().build_pipeline(
        [
            {"name": "log_transform", "params": {"column": "value"}},
            {"name": "global_moran", "config": {"value_col": "value", "permutations": 0}},
        ]
    )

    result = pipeline.run(strip_frame)
    assert "log_value" in result.collect().columns
    assert result.metadata.statistics["value_global_moran"]["I"] == pytest.approx(0.6, abs=1e-9)


def test_step_registry_build_pipeline_missing_step(fresh_registry: StepRegistry) -> None:
    with pytest.raises(KeyError):
        fresh_registry.build_pipeline(["missing"])


def test_build_pipeline_rejects_bad_definitions(fresh_registry: StepRegistry) -> None:
    fresh_registry.register("dummy", DummyStep)

    with pytest.raises(ValueError, match="name"):
        fresh_registry.build_pipeline([{"params": {}}])
    with pytest.raises(TypeError):
        fresh_registry.build_pipeline([42])  # type: ignore[list-item]


def test_recipe_uses_registry_when_steps_configured(
    fresh_registry: StepRegistry, strip_frame: RegionFrame
) -> None:
    fresh_registry.register("double", DoubleValueStep)
    config = AnalysisConfig(dataset="demo", recipe="configured", steps=["double"])

    class RegistryRecipe(BaseRecipe):
        def build_pipeline(self) -> Pipeline:
            raise AssertionError("Should use registry-defined steps")

    recipe = RegistryRecipe(config, step_registry=fresh_registry)
    df = recipe.run(strip_frame).collect()
    assert df["value"].to_list() == [2.0, 4.0, 6.0, 8.0, 10.0]


def test_recipe_requires_registry_when_steps_configured(strip_frame: RegionFrame) -> None:
    config = AnalysisConfig(dataset="demo", recipe="configured", steps=["noop"])

    class NoRegistryRecipe(BaseRecipe):
        def build_pipeline(self) -> Pipeline:
            raise AssertionError("Should not build default pipeline")

    with pytest.raises(ValueError):
        NoRegistryRecipe(config).run(strip_frame)


def test_step_registry_reports_registered_names(fresh_registry: StepRegistry) -> None:
    fresh_registry.register("dummy", DummyStep)

    with pytest.raises(KeyError, match="registered: \\['dummy'\\]"):
        fresh_registry.create("lisa")


def test_output_registry_picks_adapter_by_suffix() -> None:
    registry = get_default_output_registry()

    assert isinstance(registry.for_path("out/lisa.geojson"), GeoJSONOutputAdapter)
    assert isinstance(registry.for_path("out/lisa.JSON"), GeoJSONOutputAdapter)
    assert isinstance(registry.for_path("out/regions.parquet"), ParquetOutputAdapter)
    with pytest.raises(KeyError, match="csv"):
        registry.for_path("out/regions.csv")


def test_output_adapter_registry_registration() -> None:
    registry = OutputAdapterRegistry()

    class Config(BaseModel):
        destination: str

    class DummyAdapter(BaseOutputAdapter):
        def __init__(self, destination: str) -> None:
            self.destination = destination

        def write(self, region_frame: RegionFrame, **kwargs: Any) -> None:  # pragma: no cover
            _ = region_frame

    registry.register("dummy", DummyAdapter, config_model=Config)
    adapter = registry.create("dummy", params={"destination": "out/regions"})
    assert isinstance(adapter, DummyAdapter)


def test_default_output_registry() -> None:
    registry = get_default_output_registry()

    assert {spec.name for spec in registry.list()} == {"parquet", "geojson"}
    adapter = registry.create("geojson", params={"path": "out.geojson"})
    assert isinstance(adapter, GeoJSONOutputAdapter)
    assert adapter.path == "out.geojson"
