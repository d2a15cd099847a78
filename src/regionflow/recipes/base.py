"""Base recipe abstraction."""

from abc import ABC, abstractmethod

from regionflow.core.pipeline import Pipeline, Step
from regionflow.core.region_frame import RegionFrame
from regionflow.core.registry import StepRegistry
from regionflow.core.schema import AnalysisConfig
from regionflow.core.steps.spatial import GlobalMoranStep, LocalMoranStep
from regionflow.core.steps.transform import LogTransformStep


class BaseRecipe(ABC):
    """
    Base class for all recipes.

    A recipe encapsulates a complete analysis pipeline
    for a specific dataset and attribute.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        *,
        step_registry: StepRegistry | None = None,
    ) -> None:
        """
        Initialize recipe.

        Args:
            config: Analysis configuration
            step_registry: Registry used to build explicitly configured steps
        """
        self.config = config
        self.name = config.recipe
        self._step_registry = step_registry

    @abstractmethod
    def build_pipeline(self) -> Pipeline:
        """
        Build the analysis pipeline.

        Returns:
            Pipeline with all analysis steps
        """

    def get_pipeline(self) -> Pipeline:
        """Return a pipeline, using configured steps if provided."""
        steps_cfg = self.config.steps
        if steps_cfg:
            if self._step_registry is None:
                raise ValueError("Step registry required when steps are configured")
            return self._step_registry.build_pipeline(steps_cfg)
        return self.build_pipeline()

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """
        Run the recipe on region data.

        Args:
            region_frame: Input RegionFrame

        Returns:
            RegionFrame with derived features and recorded statistics
        """
        pipeline = self.get_pipeline()
        return pipeline.run(region_frame)

    def __repr__(self) -> str:
        """String representation."""
        return f"{self.__class__.__name__}(name={self.name})"


def analysed_column(config: AnalysisConfig, value_col: str) -> str:
    """Name of the column the Moran statistics run on after the transform."""
    if config.transform == "none":
        return value_col
    return f"{config.transform}_{value_col}"


def build_analysis_pipeline(config: AnalysisConfig, value_col: str) -> Pipeline:
    """
    Standard autocorrelation pipeline for one attribute.

    Applies the configured transform and runs the global and local Moran steps.
    Regions missing *value_col* stay in the frame: the Moran steps leave them
    out of the neighbor graph and the local step labels them undefined.
    """
    contiguity = config.contiguity
    target = analysed_column(config, value_col)

    steps: list[Step] = []
    if config.transform != "none":
        steps.append(LogTransformStep(value_col, method=config.transform, output_col=target))
    steps.append(
        GlobalMoranStep(
            target,
            criterion=contiguity.criterion,
            tolerance=contiguity.tolerance,
            permutations=config.permutations,
            alternative=config.alternative,
            seed=config.seed,
        )
    )
    steps.append(
        LocalMoranStep(
            target,
            criterion=contiguity.criterion,
            tolerance=contiguity.tolerance,
            permutations=config.permutations,
            significance=config.significance,
            seed=config.seed,
        )
    )
    return Pipeline(steps)
