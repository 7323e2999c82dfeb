"""Stream ordered stage-progress events while the orchestrator runs."""

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator

from nusascan.core.io_utils import require_image
from nusascan.errors import InputError
from nusascan.pipeline.orchestrator import AnalysisOrchestrator
from nusascan.pipeline.schema import (
    STAGE_ORDER,
    STAGE_PROGRESS,
    AnalysisReport,
    ProgressEvent,
    Stage,
)

_log = logging.getLogger(__name__)

STAGE_MESSAGES: dict[Stage, str] = {
    Stage.initializing: "Preparing analysis",
    Stage.vision_analysis: "Recognizing the cultural object",
    Stage.text_extraction: "Reading text in the image",
    Stage.grounding_search: "Searching cultural knowledge",
    Stage.finished: "Analysis complete",
}


class _StageTracker:
    """Turns stage notifications into events, dropping any that would move backwards."""

    def __init__(self, queue: "asyncio.Queue[ProgressEvent | None]") -> None:
        self._queue = queue
        self._last_index = -1

    def advance(self, stage: Stage) -> None:
        index = STAGE_ORDER.index(stage)
        if index <= self._last_index:
            return
        self._last_index = index
        self._queue.put_nowait(
            ProgressEvent(stage=stage, progress=STAGE_PROGRESS[stage], message=STAGE_MESSAGES[stage])
        )

    @property
    def last_progress(self) -> int:
        if self._last_index < 0:
            return 0
        return STAGE_PROGRESS[STAGE_ORDER[self._last_index]]


def _finished(report: AnalysisReport) -> ProgressEvent:
    return ProgressEvent(
        stage=Stage.finished,
        progress=STAGE_PROGRESS[Stage.finished],
        message=STAGE_MESSAGES[Stage.finished],
        report=report,
    )


def _error(progress: int, message: str) -> ProgressEvent:
    return ProgressEvent(stage=Stage.error, progress=progress, message="Analysis failed", error=message)


class StreamingProgressReporter:
    """
    Wraps an AnalysisOrchestrator and yields progress events:
    initializing -> vision_analysis -> text_extraction -> grounding_search -> finished,
    or error. Exactly one terminal event is yielded, always last. There is no
    deadline here; the stream lasts as long as the stages do.
    """

    def __init__(self, orchestrator: AnalysisOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def stream(self, image_path: str | Path) -> AsyncIterator[ProgressEvent]:
        queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
        tracker = _StageTracker(queue)
        tracker.advance(Stage.initializing)
        yield queue.get_nowait()

        try:
            path = require_image(image_path)
        except InputError as e:
            yield _error(tracker.last_progress, str(e))
            return

        task = asyncio.create_task(self._orchestrator.analyze(path, on_stage=tracker.advance))
        task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
            report = task.result()
        except Exception as e:
            _log.error("Streaming analysis of %s failed: %s", image_path, e, exc_info=True)
            yield _error(tracker.last_progress, str(e) or type(e).__name__)
            return
        finally:
            if not task.done():
                task.cancel()
        yield _finished(report)
