from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from catalog_ingest.domain.import_pipeline import (
    BatchWindow,
    ImportPipeline,
    StageResult,
    iter_windows,
    run_batches,
)


def test_iter_windows_covers_total() -> None:
    windows = list(iter_windows(7, 3))

    assert windows == [BatchWindow(0, 3), BatchWindow(3, 3), BatchWindow(6, 3)]
    assert [window.last_row(7) for window in windows] == [3, 6, 7]
    assert windows[1].first_row == 4


def test_iter_windows_empty_and_invalid() -> None:
    assert list(iter_windows(0, 10)) == []
    with pytest.raises(ValueError, match="batch_size"):
        list(iter_windows(10, 0))


def test_run_batches_skips_recoverable_failures(caplog: pytest.LogCaptureFixture) -> None:
    processed: list[int] = []

    def process(window: BatchWindow) -> None:
        if window.offset == 2:
            raise LookupError("bad row")
        processed.append(window.offset)

    result = run_batches("bands", 5, 2, process, recoverable_errors=(LookupError,))

    assert processed == [0, 4]
    assert result.batches == 3
    assert result.failed_batches == [BatchWindow(2, 2)]
    assert not result.succeeded
    assert "Failed to import bands rows 3-4" in caplog.text


def test_run_batches_propagates_other_errors() -> None:
    def process(window: BatchWindow) -> None:
        raise RuntimeError(f"offset {window.offset}")

    with pytest.raises(RuntimeError):
        run_batches("bands", 3, 1, process, recoverable_errors=(LookupError,))


@dataclass
class _RecordingStage:
    name: str
    calls: list[str]
    failed: list[BatchWindow] = field(default_factory=list[BatchWindow])

    def run(self) -> StageResult:
        self.calls.append(self.name)
        return StageResult(name=self.name, total=1, batches=1, failed_batches=self.failed)


def test_pipeline_runs_stages_in_order() -> None:
    calls: list[str] = []
    pipeline = ImportPipeline().with_stage(_RecordingStage("bands", calls)).extend(
        [_RecordingStage("albums", calls), _RecordingStage("tracks", calls)]
    )

    report = pipeline.run()

    assert calls == ["bands", "albums", "tracks"]
    assert [stage.name for stage in report.stages] == calls
    assert report.succeeded
    assert report.failed_batches == 0


def test_report_collects_failed_batches() -> None:
    calls: list[str] = []
    failing = _RecordingStage("albums", calls, failed=[BatchWindow(0, 10)])

    report = ImportPipeline(stages=(_RecordingStage("bands", calls), failing)).run()

    assert not report.succeeded
    assert report.failed_batches == 1
    assert report.stage("albums").failed_batches == [BatchWindow(0, 10)]
    with pytest.raises(KeyError):
        report.stage("tracks")
