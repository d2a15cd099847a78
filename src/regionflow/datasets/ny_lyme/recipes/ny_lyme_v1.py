"""Baseline NY Lyme autocorrelation recipe (v1)."""

from regionflow.core.pipeline import Pipeline
from regionflow.core.registry import StepRegistry
from regionflow.core.schema import AnalysisConfig
from regionflow.datasets.ny_lyme.schema import RATE_COL
from regionflow.recipes.base import BaseRecipe, analysed_column, build_analysis_pipeline


class NyLymeV1Recipe(BaseRecipe):
    """
    Baseline recipe for the NY Lyme dataset.

    Tests county incidence rates for spatial clustering:
    - counties without a rate stay in the output, labelled undefined
    - natural-log transform of the right-skewed rate
    - global Moran's I over queen contiguity
    - local Moran's I with high-high / low-low cluster labels
    """

    def __init__(
        self,
        config: AnalysisConfig,
        *,
        step_registry: StepRegistry | None = None,
    ) -> None:
        super().__init__(config, step_registry=step_registry)
        self.name = "ny_lyme_v1"

    @property
    def value_col(self) -> str:
        return self.config.value_col or RATE_COL

    @property
    def analysed_col(self) -> str:
        """Column the Moran statistics are computed on."""
        return analysed_column(self.config, self.value_col)

    def build_pipeline(self) -> Pipeline:
        """Build the analysis pipeline."""
        return build_analysis_pipeline(self.config, self.value_col)
