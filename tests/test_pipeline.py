"""Tests for the single-flight update pipeline."""

import asyncio
import logging

import pytest

from pagewright.constants import PageGeometry
from pagewright.editor import Editor


class TrackingMeasurer:
    """Async measurer that records how many measurements overlap."""

    def __init__(self, height=100.0, delay=0.01):
        self.height = height
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.calls = 0

    async def measure(self, content, style):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.calls += 1
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        if isinstance(self.height, Exception):
            raise self.height
        return self.height


def make_editor(measurer, content="<p>Hello world</p>"):
    return Editor(content=content, measurer=measurer, geometry=PageGeometry(content_height=900))


@pytest.mark.asyncio
async def test_schedule_returns_task_inside_event_loop():
    editor = make_editor(TrackingMeasurer())
    task = editor.refresh()
    assert isinstance(task, asyncio.Task)
    assert editor.pipeline.busy
    await editor.settle()
    assert not editor.pipeline.busy
    assert editor.pipeline.runs == 1


@pytest.mark.asyncio
async def test_overlapping_requests_never_overlap_runs():
    measurer = TrackingMeasurer()
    editor = make_editor(measurer)
    first = editor.refresh()
    await asyncio.sleep(0)
    second = editor.refresh()
    third = editor.refresh()
    assert first is second is third
    await editor.settle()
    assert measurer.max_active == 1
    assert measurer.calls == 2
    assert editor.pipeline.runs == 2
    assert not editor.pipeline.busy


@pytest.mark.asyncio
async def test_requests_before_run_starts_are_absorbed():
    measurer = TrackingMeasurer()
    editor = make_editor(measurer)
    editor.refresh()
    editor.refresh()
    await editor.settle()
    assert measurer.calls == 1


@pytest.mark.asyncio
async def test_rerun_sees_latest_content():
    measurer = TrackingMeasurer()
    editor = make_editor(measurer)
    editor.refresh()
    await asyncio.sleep(0)
    editor.set_content("<p>Latest words here</p>")
    await editor.settle()
    assert editor.get_html() == "<p>Latest words here</p>"
    assert editor.word_count == 3
    assert editor.pages[0].content == "<p>Latest words here</p>"


@pytest.mark.asyncio
async def test_latest_restore_target_wins():
    editor = make_editor(TrackingMeasurer())
    editor.surface.focus()
    editor.pipeline.schedule(restore=3)
    await asyncio.sleep(0)
    editor.pipeline.schedule(restore=7)
    await editor.settle()
    assert editor.surface.caret_offset == 7


@pytest.mark.asyncio
async def test_measurement_failure_keeps_page_count(caplog):
    measurer = TrackingMeasurer(height=1801.0)
    editor = make_editor(measurer)
    editor.refresh()
    await editor.settle()
    assert editor.page_count == 3

    measurer.height = RuntimeError("layout unavailable")
    with caplog.at_level(logging.WARNING, logger="pagewright.pipeline"):
        editor.refresh()
        await editor.settle()
    assert editor.page_count == 3
    assert "layout unavailable" in caplog.text
    assert not editor.pipeline.busy


@pytest.mark.asyncio
async def test_current_page_is_clamped_after_shrink():
    measurer = TrackingMeasurer(height=2000.0)
    editor = make_editor(measurer)
    editor.refresh()
    await editor.settle()
    editor.set_current_page(3)
    measurer.height = 10.0
    editor.refresh()
    await editor.settle()
    assert editor.page_count == 1
    assert editor.current_page == 1


@pytest.mark.asyncio
async def test_cancel_clears_busy_flag():
    editor = make_editor(TrackingMeasurer(delay=1))
    task = editor.refresh()
    await asyncio.sleep(0)
    editor.pipeline.cancel()
    await asyncio.gather(task, return_exceptions=True)
    assert task.cancelled()
    assert not editor.pipeline.busy


@pytest.mark.asyncio
async def test_commands_inside_event_loop():
    editor = make_editor(TrackingMeasurer())
    editor.select(0, 5)
    result = editor.toggle_bold()
    assert isinstance(result.task, asyncio.Task)
    editor.toggle_italic()
    await editor.settle()
    assert editor.get_html() == "<p><b><i>Hello</i></b> world</p>"
    assert editor.surface.tracker.save_selection() == (0, 5)


def test_schedule_without_loop_runs_synchronously():
    editor = make_editor(lambda content, style: 1801.0)
    assert editor.refresh() is None
    assert editor.pipeline.runs == 1
    assert editor.page_count == 3
    assert not editor.pipeline.busy
