"""Sequential execution of region steps with region-set checks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from regionflow.core.region_frame import RegionFrame
from regionflow.core.utils import get_logger

logger = get_logger(__name__)


class Step(ABC):
    """
    A transformation from one RegionFrame to another.

    Steps add columns, features or statistics to the regions they receive.
    A step that may legitimately remove regions (for example dropping rows
    with missing values) sets ``drops_regions = True``; the pipeline rejects
    any other step that changes the number of regions.
    """

    drops_regions: bool = False

    @abstractmethod
    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """Return the transformed RegionFrame."""
        raise NotImplementedError

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"{self.name}()"


@dataclass(frozen=True)
class StepRecord:
    """Region counts before and after one executed step."""

    step: str
    regions_in: int
    regions_out: int

    @property
    def dropped(self) -> int:
        return self.regions_in - self.regions_out


class Pipeline:
    """
    An ordered list of steps applied to a RegionFrame.

    After every step the pipeline checks that the result is still a
    RegionFrame over the same id and geometry columns, that no feature
    provenance was lost, and that the region count only shrank when the step
    declares ``drops_regions``. Executed steps are listed in
    ``metadata.custom["pipeline_steps"]`` of the result.
    """

    def __init__(self, steps: list[Step]) -> None:
        self.steps = steps
        self.history: list[StepRecord] = []
        logger.info(f"Created pipeline with {len(steps)} steps: {[s.name for s in steps]}")

    def _check(self, step: Step, before: RegionFrame, after: object) -> RegionFrame:
        if not isinstance(after, RegionFrame):
            raise TypeError(
                f"Step {step.name} returned {type(after).__name__} instead of RegionFrame"
            )

        issues = before.schema.compatibility_issues(after.schema)
        columns = after.lazy_frame.collect_schema().names()
        for role, col in (("id", after.schema.id_col), ("geometry", after.schema.geometry_col)):
            if col not in columns:
                issues.append(f"{role} column {col!r} is missing from the output")
        if issues:
            summary = "; ".join(issues)
            logger.error("Step %s produced an incompatible schema: %s", step.name, summary)
            raise ValueError(f"Step {step.name} produced incompatible schema: {summary}")
        return after

    def run(self, region_frame: RegionFrame) -> RegionFrame:
        """
        Run every step in order.

        Args:
            region_frame: Input regions

        Returns:
            RegionFrame produced by the last step

        Raises:
            TypeError: If a step returns something other than a RegionFrame
            ValueError: If a step breaks the schema or drops regions without
                declaring ``drops_regions``
        """
        logger.info(f"Starting pipeline with {region_frame.count()} regions")
        self.history = []
        current = region_frame
        regions = current.count()

        for i, step in enumerate(self.steps, 1):
            logger.info(f"Step {i}/{len(self.steps)}: {step.name}")
            try:
                result = self._check(step, current, step.run(current))
            except Exception as e:
                logger.error(f"Step {i}/{len(self.steps)}: {step.name} failed: {e}")
                raise

            remaining = result.count()
            if remaining > regions or (remaining < regions and not step.drops_regions):
                raise ValueError(
                    f"Step {step.name} changed the region count from {regions} to {remaining}"
                )
            if remaining < regions:
                logger.warning(f"Step {step.name} dropped {regions - remaining} regions")

            self.history.append(StepRecord(step.name, regions, remaining))
            current, regions = result, remaining

        custom = {**current.metadata.custom, "pipeline_steps": [r.step for r in self.history]}
        logger.info(f"Pipeline finished with {regions} regions")
        return current.with_metadata(custom=custom)

    def add_step(self, step: Step) -> Pipeline:
        """Append *step* and return self for chaining."""
        self.steps.append(step)
        return self

    def __repr__(self) -> str:
        return f"Pipeline({' -> '.join(step.name for step in self.steps)})"

    def __len__(self) -> int:
        return len(self.steps)
