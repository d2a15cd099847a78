"""Named registries for pipeline steps and output adapters."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from regionflow.core.output_adapters import BaseOutputAdapter
from regionflow.core.pipeline import Pipeline, Step
from regionflow.core.utils import get_logger

logger = get_logger(__name__)

StepDefinition = str | tuple[str, Mapping[str, Any] | None] | Mapping[str, Any]

ALLOWED_STEP_TAGS = frozenset({"spatial", "transform", "statistics", "cleaning"})

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ComponentSpec(Generic[T]):
    """A registered class with its tags and optional pydantic config model."""

    name: str
    cls: type[T]
    tags: frozenset[str] = field(default_factory=frozenset)
    description: str | None = None
    config_model: type[BaseModel] | None = None

    def instantiate(self, params: Mapping[str, Any] | None = None) -> T:
        """Build an instance, validating *params* through the config model if any."""
        kwargs = dict(params or {})
        if self.config_model is not None and params is not None:
            kwargs = self.config_model(**kwargs).model_dump()
        return self.cls(**kwargs)


class _Registry(Generic[T]):
    kind = "component"
    allowed_tags: frozenset[str] | None = None

    def __init__(self) -> None:
        self._specs: dict[str, ComponentSpec[T]] = {}

    def register(
        self,
        name: str,
        cls: type[T],
        *,
        tags: Iterable[str] | None = None,
        description: str | None = None,
        config_model: type[BaseModel] | None = None,
    ) -> ComponentSpec[T]:
        """Register *cls* under *name* and return its spec."""
        if name in self._specs:
            raise ValueError(f"{self.kind.capitalize()} already registered: {name}")
        tag_set = frozenset(tags or ())
        if self.allowed_tags is not None and tag_set - self.allowed_tags:
            raise ValueError(f"Unsupported {self.kind} tags: {sorted(tag_set - self.allowed_tags)}")
        if config_model is not None and not issubclass(config_model, BaseModel):
            raise TypeError("config_model must inherit from pydantic.BaseModel")

        spec = ComponentSpec(name, cls, tag_set, description, config_model)
        self._specs[name] = spec
        logger.debug("Registered %s %s with tags=%s", self.kind, name, sorted(tag_set))
        return spec

    def get(self, name: str) -> ComponentSpec[T]:
        """Return the spec registered as *name*."""
        try:
            return self._specs[name]
        except KeyError:
            raise KeyError(
                f"Unknown {self.kind} {name!r}; registered: {sorted(self._specs)}"
            ) from None

    def list(self, *, tag: str | None = None) -> list[ComponentSpec[T]]:
        """Registered specs in registration order, optionally filtered by *tag*."""
        return [spec for spec in self._specs.values() if tag is None or tag in spec.tags]

    def create(self, name: str, *, params: Mapping[str, Any] | None = None) -> T:
        """Instantiate the component registered as *name*."""
        instance = self.get(name).instantiate(params)
        logger.debug("Instantiated %s %s with params=%s", self.kind, name, sorted(params or {}))
        return instance


class StepRegistry(_Registry[Step]):
    """Steps available to recipes and to YAML ``steps:`` lists."""

    kind = "step"
    allowed_tags = ALLOWED_STEP_TAGS

    def build_pipeline(self, steps: Iterable[StepDefinition]) -> Pipeline:
        """
        Build a Pipeline from step definitions.

        Each definition is a step name, a ``(name, params)`` tuple, or a mapping
        with a ``name`` key and ``params`` (or ``config``) mapping, as written in
        analysis YAML files.
        """
        instances: list[Step] = []
        for entry in steps:
            if isinstance(entry, str):
                name, params = entry, None
            elif isinstance(entry, tuple) and len(entry) == 2:
                name, params = entry
            elif isinstance(entry, Mapping):
                name = entry.get("name")
                if not isinstance(name, str):
                    raise ValueError("Step mapping must include a string 'name' key")
                params = entry.get("params", entry.get("config"))
            else:
                raise TypeError(
                    "Step definitions must be str, mapping with 'name', or (name, params) tuple"
                )
            if params is not None and not isinstance(params, Mapping):
                raise TypeError(f"Params for step {name!r} must be a mapping")
            instances.append(self.create(name, params=params))
        return Pipeline(instances)


class OutputAdapterRegistry(_Registry[BaseOutputAdapter]):
    """Writers for analysed regions, keyed by format name."""

    kind = "output adapter"

    def for_path(self, path: str | Path) -> BaseOutputAdapter:
        """Pick the adapter whose name matches the file suffix of *path*."""
        suffix = Path(path).suffix.lower().lstrip(".")
        name = {"json": "geojson"}.get(suffix, suffix)
        return self.create(name, params={"path": str(path)})
