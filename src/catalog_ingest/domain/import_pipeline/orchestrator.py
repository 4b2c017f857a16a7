"""Ordered execution of the transform-and-load stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from catalog_ingest.domain.import_pipeline.batching import StageResult

log = logging.getLogger(__name__)


class ImportStage(Protocol):
    """Contract implemented by each transform stage."""

    name: str

    def run(self) -> StageResult: ...


@dataclass(slots=True)
class ImportReport:
    stages: list[StageResult] = field(default_factory=list["StageResult"])

    def stage(self, name: str) -> StageResult:
        for result in self.stages:
            if result.name == name:
                return result
        raise KeyError(name)

    @property
    def failed_batches(self) -> int:
        return sum(len(result.failed_batches) for result in self.stages)

    @property
    def succeeded(self) -> bool:
        return all(result.succeeded for result in self.stages)


@dataclass(slots=True)
class ImportPipeline:
    """Compose and execute the transform stages in order.

    Later stages read what earlier ones wrote (albums need bands, tracks need
    albums), so order matters and is exactly the order given.
    """

    stages: Sequence[ImportStage] = field(default_factory=tuple)

    def with_stage(self, stage: ImportStage) -> ImportPipeline:
        """Return a new pipeline appending ``stage`` at the end."""

        return ImportPipeline(stages=(*self.stages, stage))

    def extend(self, stages: Iterable[ImportStage]) -> ImportPipeline:
        return ImportPipeline(stages=(*self.stages, *tuple(stages)))

    def run(self) -> ImportReport:
        report = ImportReport()
        for stage in self.stages:
            log.info("Starting %s stage", stage.name)
            result = stage.run()
            report.stages.append(result)
            if result.failed_batches:
                log.warning(
                    "%s stage finished with %d failed batch(es)",
                    stage.name,
                    len(result.failed_batches),
                )
        return report
