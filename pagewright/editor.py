"""Editor facade: wires the surface, paginator, commands and pipeline."""

import asyncio
import logging
from typing import Any, Dict, Optional

from .commands import Command, CommandKind, CommandRegistry, CommandResult
from .constants import EditorConstants, PageGeometry
from .measure import ReportLabMeasurer
from .model import ContentModel
from .paginator import Paginator
from .pipeline import UpdatePipeline
from .settings_persistence import STYLE_KEYS, SettingsPersistence, get_persistence
from .state import EditorState
from .stats import compute_statistics
from .surface import DocumentSurface, EditingSurface

logger = logging.getLogger(__name__)

# Style attribute -> CSS property used for inline style runs
STYLE_PROPERTIES = {
    "font_family": "font-family",
    "font_size": "font-size",
    "font_weight": "font-weight",
}


class Editor:
    """Pagination and formatting engine for one open document."""

    def __init__(self, content: Optional[str] = None, measurer=None,
                 geometry: Optional[PageGeometry] = None,
                 surface: Optional[EditingSurface] = None,
                 title: str = EditorConstants.DEFAULT_TITLE,
                 recompute_formats: bool = False,
                 honor_manual_breaks: bool = False,
                 debounce: float = EditorConstants.PIPELINE_DEBOUNCE,
                 restore_delay: float = EditorConstants.RESTORE_DELAY):
        if content is None:
            content = (surface.get_markup() if surface is not None
                       else EditorConstants.DEFAULT_CONTENT)
        if surface is None:
            surface = DocumentSurface(ContentModel(content))
        self.geometry = geometry or PageGeometry()
        self.measurer = measurer or ReportLabMeasurer(self.geometry)
        paginator = Paginator(self.measurer, self.geometry,
                              honor_manual_breaks=honor_manual_breaks, content=content)
        self.state = EditorState(paginator=paginator, surface=surface,
                                 title=title, content=content)
        self.state.statistics = compute_statistics(content)
        self.pipeline = UpdatePipeline(self.state, debounce=debounce,
                                       restore_delay=restore_delay)
        self.command_registry = CommandRegistry()
        self.recompute_formats = recompute_formats
        self.filename: Optional[str] = None

    # --- Surface management ---

    @property
    def surface(self) -> Optional[EditingSurface]:
        return self.state.surface

    def attach_surface(self, surface: EditingSurface) -> None:
        self.state.surface = surface

    def detach_surface(self) -> None:
        self.state.surface = None

    def select(self, start: int, end: Optional[int] = None) -> bool:
        """Focus the surface and select [start, end) by text offset."""
        surface = self.state.surface
        if surface is None:
            return False
        surface.focus()
        surface.tracker.restore_selection(start, start if end is None else end)
        return True

    # --- Commands ---

    def execute(self, command: Command) -> CommandResult:
        return self.command_registry.execute(self.state, command, self.pipeline,
                                             recompute_formats=self.recompute_formats)

    def toggle_bold(self) -> CommandResult:
        return self.execute(Command(CommandKind.BOLD))

    def toggle_italic(self) -> CommandResult:
        return self.execute(Command(CommandKind.ITALIC))

    def toggle_underline(self) -> CommandResult:
        return self.execute(Command(CommandKind.UNDERLINE))

    def toggle_bullet_list(self) -> CommandResult:
        return self.execute(Command(CommandKind.BULLET_LIST))

    def toggle_ordered_list(self) -> CommandResult:
        return self.execute(Command(CommandKind.ORDERED_LIST))

    def set_text_align(self, align: str) -> CommandResult:
        return self.execute(Command(CommandKind.ALIGN, align))

    def set_link(self, url: Optional[str]) -> CommandResult:
        return self.execute(Command(CommandKind.SET_LINK, url))

    def unset_link(self) -> CommandResult:
        return self.execute(Command(CommandKind.UNSET_LINK))

    def insert_page_break(self) -> CommandResult:
        return self.execute(Command(CommandKind.PAGE_BREAK))

    def is_active(self, name: str) -> bool:
        return self.state.formats.is_active(name)

    # --- Content ---

    def get_html(self) -> str:
        return self.state.content

    def set_content(self, markup: str) -> Optional[asyncio.Task]:
        """Replace the document content and repaginate."""
        self.state.content = markup
        if self.state.surface is not None:
            self.state.surface.set_markup(markup)
        return self.pipeline.schedule()

    def type_text(self, text: str) -> Optional[asyncio.Task]:
        """Insert text at the selection, as if typed."""
        surface = self.state.surface
        if surface is None:
            return None
        surface.focus()
        offset = surface.insert_text(text)
        return self.pipeline.schedule(restore=offset)

    def delete_selection(self) -> Optional[asyncio.Task]:
        surface = self.state.surface
        if surface is None:
            return None
        surface.focus()
        if not surface.delete_selection():
            return None
        return self.pipeline.schedule(restore=surface.tracker.save())

    def refresh(self) -> Optional[asyncio.Task]:
        return self.pipeline.schedule()

    async def settle(self) -> None:
        await self.pipeline.settle()

    def load_file(self, filename: str) -> bool:
        """Load an HTML fragment from disk. Returns success."""
        try:
            with open(filename, 'r', encoding='utf-8') as f:
                markup = f.read()
        except OSError as e:
            logger.warning(f"Could not load {filename}: {e}")
            return False
        self.filename = filename
        self.set_content(markup)
        return True

    # --- Style attributes ---

    def _set_style(self, key: str, value: Any) -> bool:
        if not self.state.style.update(key, value):
            return False
        surface = self.state.surface
        if surface is None:
            return True
        saved = surface.tracker.save_selection()
        if saved is not None and saved[0] != saved[1]:
            css_value = f"{value}px" if key == "font_size" else str(value)
            surface.apply_inline_style(STYLE_PROPERTIES[key], css_value)
        self.pipeline.schedule(restore=saved)
        return True

    def set_font_family(self, family: str) -> bool:
        return self._set_style("font_family", family)

    def set_font_size(self, size: int) -> bool:
        return self._set_style("font_size", size)

    def set_font_weight(self, weight: int) -> bool:
        return self._set_style("font_weight", weight)

    # --- Pages and statistics ---

    @property
    def pages(self):
        return self.state.pages

    @property
    def page_count(self) -> int:
        return self.state.page_count

    @property
    def current_page(self) -> int:
        return self.state.current_page

    def set_current_page(self, page: int) -> int:
        return self.state.set_current_page(page)

    @property
    def character_count(self) -> int:
        return self.state.statistics.character_count

    @property
    def word_count(self) -> int:
        return self.state.statistics.word_count

    def snapshot(self) -> Dict[str, Any]:
        """Document state in the exported document shape."""
        state = self.state
        return {
            "title": state.title,
            "content": state.content,
            "pages": [page.to_dict() for page in state.pages],
            "metadata": {
                "characterCount": state.statistics.character_count,
                "wordCount": state.statistics.word_count,
                "pageCount": state.page_count,
                "lastModified": state.last_modified.isoformat(),
            },
        }

    # --- Preferences ---

    def load_preferences(self, document_path: Optional[str] = None,
                         persistence: Optional[SettingsPersistence] = None) -> Dict[str, Any]:
        """Apply stored style preferences for a document.

        Returns:
            The settings that were applied.
        """
        persistence = persistence or get_persistence()
        settings = persistence.load_settings(document_path or self.filename)
        applied = {}
        for key, value in settings.items():
            if value is None or not persistence.validate_setting(key, value):
                if value is not None:
                    logger.warning(f"Ignoring invalid stored setting {key}={value!r}")
                continue
            if key in STYLE_KEYS and self.state.style.update(key, value):
                applied[key] = value
            elif key == "honor_manual_breaks":
                self.state.paginator.honor_manual_breaks = value
                applied[key] = value
        return applied

    def save_preferences(self, document_path: Optional[str] = None,
                         persistence: Optional[SettingsPersistence] = None) -> bool:
        persistence = persistence or get_persistence()
        settings = self.state.style.as_dict()
        settings["honor_manual_breaks"] = self.state.paginator.honor_manual_breaks
        return persistence.save_settings(document_path or self.filename, settings)
