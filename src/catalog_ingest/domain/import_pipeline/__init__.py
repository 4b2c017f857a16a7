"""Domain-level driver for the transform-and-load stages."""

from __future__ import annotations

from catalog_ingest.domain.import_pipeline.batching import (
    BatchWindow,
    StageResult,
    iter_windows,
    run_batches,
)
from catalog_ingest.domain.import_pipeline.orchestrator import (
    ImportPipeline,
    ImportReport,
    ImportStage,
)

__all__ = [
    "BatchWindow",
    "ImportPipeline",
    "ImportReport",
    "ImportStage",
    "StageResult",
    "iter_windows",
    "run_batches",
]
