import logging
from abc import ABC, abstractmethod
from typing import Optional

from .constants import EditorConstants
from .cursor import CursorTracker, Selection
from .model import FORMAT_TAGS, ContentModel

logger = logging.getLogger(__name__)


class EditingSurface(ABC):
    """Abstract interface for the live editable region.

    The surface owns the document tree, focus and selection. Everything
    else in the editor talks to it through linear text offsets via its
    ``tracker``.
    """

    tracker: CursorTracker

    @property
    @abstractmethod
    def root(self):
        """Root node of the editable region."""
        pass

    @abstractmethod
    def get_markup(self) -> str:
        pass

    @abstractmethod
    def set_markup(self, markup: str) -> None:
        """Replace the whole tree. Invalidates the current selection."""
        pass

    def snapshot(self):
        """Capture what a failed edit must put back."""
        return self.get_markup()

    def restore_snapshot(self, snapshot) -> None:
        self.set_markup(snapshot)

    @abstractmethod
    def text_nodes(self) -> list:
        pass

    @property
    @abstractmethod
    def has_focus(self) -> bool:
        pass

    @abstractmethod
    def focus(self) -> None:
        pass

    @abstractmethod
    def blur(self) -> None:
        pass

    @property
    @abstractmethod
    def selection(self) -> Optional[Selection]:
        pass

    @abstractmethod
    def set_selection(self, selection: Optional[Selection]) -> None:
        pass

    # Mutations act on the current selection and return whether anything changed.

    @abstractmethod
    def apply_inline_format(self, name: str) -> bool:
        pass

    @abstractmethod
    def apply_inline_style(self, prop: str, value: str) -> bool:
        pass

    @abstractmethod
    def apply_block_align(self, align: str) -> bool:
        pass

    @abstractmethod
    def toggle_list(self, ordered: bool) -> bool:
        pass

    @abstractmethod
    def apply_link(self, url: Optional[str]) -> bool:
        pass

    @abstractmethod
    def insert_page_break_marker(self) -> bool:
        pass

    @abstractmethod
    def insert_text(self, text: str) -> Optional[int]:
        pass

    @abstractmethod
    def delete_selection(self) -> bool:
        pass

    @abstractmethod
    def formats_at_selection(self) -> dict:
        pass


class DocumentSurface(EditingSurface):
    """In-memory editing surface over a ContentModel."""

    def __init__(self, model: Optional[ContentModel] = None,
                 markup: Optional[str] = None):
        if model is None:
            model = ContentModel(EditorConstants.DEFAULT_CONTENT if markup is None else markup)
        self.model = model
        self.tracker = CursorTracker(self)
        self._focused = False
        self._selection: Optional[Selection] = None
        # Formats toggled with a collapsed selection; applied to the next insertion
        self.pending_formats: dict[str, bool] = {}

    @property
    def root(self):
        return self.model.soup

    def get_markup(self) -> str:
        return self.model.get_content()

    def set_markup(self, markup: str) -> None:
        self.model.set_content(markup)
        self._selection = None
        self.pending_formats.clear()

    def snapshot(self):
        return self.get_markup(), dict(self.pending_formats)

    def restore_snapshot(self, snapshot) -> None:
        markup, pending = snapshot
        self.set_markup(markup)
        self.pending_formats.update(pending)

    def text_nodes(self) -> list:
        return self.model.text_nodes()

    @property
    def has_focus(self) -> bool:
        return self._focused

    def focus(self) -> None:
        self._focused = True
        if self._selection is None:
            self.tracker.restore(0)

    def blur(self) -> None:
        self._focused = False

    @property
    def selection(self) -> Optional[Selection]:
        return self._selection

    def set_selection(self, selection: Optional[Selection]) -> None:
        self._selection = selection

    def select(self, start: int, end: Optional[int] = None) -> None:
        self.tracker.restore_selection(start, start if end is None else end)

    @property
    def caret_offset(self) -> Optional[int]:
        return self.tracker.save()

    def _range(self) -> Optional[tuple[int, int]]:
        if not self._focused:
            logger.debug("Surface is not focused; ignoring mutation")
            return None
        selected = self.tracker.save_selection()
        if selected is None:
            logger.debug("No usable selection; ignoring mutation")
        return selected

    def _keep_selection(self, start: int, end: int) -> None:
        self.tracker.restore_selection(start, end)

    def apply_inline_format(self, name: str) -> bool:
        selected = self._range()
        if selected is None:
            return False
        start, end = selected
        if start == end:
            if name not in FORMAT_TAGS:
                return False
            current = self.formats_at_selection()[name]
            self.pending_formats[name] = not current
            return True
        changed = self.model.apply_inline_format(start, end, name)
        self._keep_selection(start, end)
        return changed

    def apply_inline_style(self, prop: str, value: str) -> bool:
        selected = self._range()
        if selected is None:
            return False
        start, end = selected
        changed = self.model.apply_inline_style(start, end, prop, value)
        self._keep_selection(start, end)
        return changed

    def apply_block_align(self, align: str) -> bool:
        selected = self._range()
        if selected is None:
            return False
        changed = self.model.apply_block_align(*selected, align)
        self._keep_selection(*selected)
        return changed

    def toggle_list(self, ordered: bool) -> bool:
        selected = self._range()
        if selected is None:
            return False
        changed = self.model.toggle_list(*selected, ordered)
        self._keep_selection(*selected)
        return changed

    def apply_link(self, url: Optional[str]) -> bool:
        selected = self._range()
        if selected is None:
            return False
        start, end = selected
        before = self.model.text_length()
        changed = self.model.apply_link(start, end, url)
        # A caret link inserts the URL itself as text
        end += self.model.text_length() - before
        self._keep_selection(start, end)
        return changed

    def insert_page_break_marker(self) -> bool:
        selected = self._range()
        if selected is None:
            return False
        start, end = selected
        if start != end:
            self.model.delete_range(start, end)
        added = self.model.insert_page_break_marker(start)
        self.tracker.restore(start + added)
        return True

    def insert_text(self, text: str) -> Optional[int]:
        """Replace the selection with text; returns the new caret offset."""
        selected = self._range()
        if selected is None:
            return None
        start, end = selected
        if start != end:
            self.model.delete_range(start, end)
        formats = dict(self.pending_formats)
        self.pending_formats.clear()
        offset = self.model.insert_text(start, text, formats)
        self.tracker.restore(offset)
        return offset

    def delete_selection(self) -> bool:
        selected = self._range()
        if selected is None:
            return False
        start, end = selected
        changed = self.model.delete_range(start, end)
        self.tracker.restore(start)
        return changed

    def formats_at_selection(self) -> dict:
        selected = self.tracker.save_selection()
        if selected is None:
            selected = (0, 0)
        formats = self.model.formats_in_range(*selected)
        if selected[0] == selected[1]:
            formats.update(self.pending_formats)
        return formats
