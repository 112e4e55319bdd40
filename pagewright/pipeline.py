"""Post-edit update pipeline.

Every edit ends with the same sequence: pull the markup off the surface,
recount, re-measure and repaginate, then put the caret back. Runs are
single-flight: requests made while a run is in progress are folded into
one rerun against the latest content.
"""

import asyncio
import logging
from typing import Optional, Union

from .constants import EditorConstants
from .exceptions import MeasurementError
from .state import EditorState
from .stats import compute_statistics

logger = logging.getLogger(__name__)

# A collapsed caret offset, or a (start, end) selection
RestoreTarget = Union[int, tuple[int, int]]


class UpdatePipeline:
    def __init__(self, state: EditorState,
                 debounce: float = EditorConstants.PIPELINE_DEBOUNCE,
                 restore_delay: float = EditorConstants.RESTORE_DELAY):
        self.state = state
        self.debounce = debounce
        self.restore_delay = restore_delay
        self.runs = 0
        self._busy = False
        self._rerun = False
        self._pending_restore: Optional[RestoreTarget] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._busy

    def schedule(self, restore: Optional[RestoreTarget] = None) -> Optional[asyncio.Task]:
        """Request a pipeline run.

        Returns the task carrying the run, or None when there is no running
        event loop and the run was executed synchronously.
        """
        if restore is not None:
            self._pending_restore = restore
        if self._busy:
            logger.debug("Update pipeline busy; folding request into a rerun")
            self._rerun = True
            return self._task
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._run())
            return None
        self._busy = True
        self._task = loop.create_task(self._run())
        self._task.add_done_callback(self._on_done)
        return self._task

    def _on_done(self, task: asyncio.Task) -> None:
        if task is self._task:
            self._busy = False
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Update pipeline task failed: {task.exception()}")

    async def settle(self) -> None:
        """Wait until no run is in flight."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._rerun = False

    async def _run(self) -> None:
        self._busy = True
        try:
            while True:
                self._rerun = False
                restore = self._pending_restore
                self._pending_restore = None
                await self._run_once(restore)
                self.runs += 1
                if not self._rerun:
                    break
                logger.debug("Re-running update pipeline against latest content")
        finally:
            self._busy = False

    async def _run_once(self, restore: Optional[RestoreTarget]) -> None:
        state = self.state
        self._derive()
        await asyncio.sleep(self.debounce)

        try:
            changed = await state.paginator.paginate(state.content, state.style)
        except MeasurementError as e:
            logger.warning(f"Measurement failed, keeping {state.page_count} page(s): {e.message}")
        else:
            if changed:
                state.set_current_page(state.current_page)

        await asyncio.sleep(self.restore_delay)
        if self._rerun:
            if self._pending_restore is None:
                self._pending_restore = restore
            return
        if restore is not None:
            self._restore(restore)

    def _derive(self) -> None:
        state = self.state
        if state.surface is not None:
            state.content = state.surface.get_markup()
        state.statistics = compute_statistics(state.content)
        state.touch()

    def _restore(self, target: RestoreTarget) -> None:
        surface = self.state.surface
        if surface is None:
            return
        try:
            if isinstance(target, tuple):
                surface.tracker.restore_selection(*target)
            else:
                surface.tracker.restore(target)
        except Exception as e:
            logger.warning(f"Could not restore cursor to {target!r}: {e}")
