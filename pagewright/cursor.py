"""Caret save/restore as linear text offsets.

Markup rebuilds replace every node, so a caret expressed as (node, offset)
does not survive them. The tracker converts the live selection into an
offset over the concatenated text nodes of the surface and back.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from bs4.element import PageElement, Tag

from .model import BLOCK_TAGS, is_text_node

if TYPE_CHECKING:
    from .surface import EditingSurface

logger = logging.getLogger(__name__)


@dataclass
class Caret:
    """A DOM-style boundary point.

    For a text node, offset counts characters. For an element, offset is
    the index of the child the caret sits before.
    """
    node: PageElement
    offset: int = 0


@dataclass
class Selection:
    anchor: Caret
    focus: Caret

    @classmethod
    def collapsed_at(cls, caret: Caret) -> "Selection":
        return cls(caret, Caret(caret.node, caret.offset))

    @property
    def collapsed(self) -> bool:
        return self.anchor.node is self.focus.node and self.anchor.offset == self.focus.offset


class CursorTracker:
    def __init__(self, surface: "EditingSurface"):
        self.surface = surface

    def offset_of(self, node, offset: int) -> Optional[int]:
        """Linear offset of a boundary point, or None if node is detached."""
        pos = 0
        if is_text_node(node):
            for text in self.surface.text_nodes():
                if text is node:
                    return pos + max(0, min(offset, len(text)))
                pos += len(text)
            return None

        if not isinstance(node, Tag):
            return None
        children = node.contents
        target = children[offset] if 0 <= offset < len(children) else None
        inside = False
        root = self.surface.root
        if node is root:
            inside = True
        for element in root.descendants:
            if element is node:
                inside = True
            elif target is not None and element is target:
                return pos
            elif inside and target is None and not self._contains(node, element):
                return pos
            if is_text_node(element):
                pos += len(element)
        return pos if inside else None

    @staticmethod
    def _contains(ancestor, element) -> bool:
        parent = element.parent
        while parent is not None:
            if parent is ancestor:
                return True
            parent = parent.parent
        return False

    def save(self) -> Optional[int]:
        """Offset of the caret (the selection focus), or None if unavailable."""
        if not self.surface.has_focus:
            return None
        selection = self.surface.selection
        if selection is None:
            return None
        return self.offset_of(selection.focus.node, selection.focus.offset)

    def save_selection(self) -> Optional[tuple[int, int]]:
        """(start, end) offsets of the selection, ordered."""
        if not self.surface.has_focus:
            return None
        selection = self.surface.selection
        if selection is None:
            return None
        anchor = self.offset_of(selection.anchor.node, selection.anchor.offset)
        focus = self.offset_of(selection.focus.node, selection.focus.offset)
        if anchor is None or focus is None:
            return None
        return (anchor, focus) if anchor <= focus else (focus, anchor)

    def caret_at(self, offset: int) -> Optional[Caret]:
        offset = max(0, int(offset))
        nodes = self.surface.text_nodes()
        pos = 0
        for node in nodes:
            length = len(node)
            if pos + length >= offset:
                return Caret(node, offset - pos)
            pos += length
        if nodes:
            last = nodes[-1]
            logger.debug(f"Clamping caret offset {offset} to document end {pos}")
            return Caret(last, len(last))
        block = self.surface.root.find(BLOCK_TAGS)
        if block is not None:
            return Caret(block, 0)
        return Caret(self.surface.root, 0)

    def restore(self, offset: Optional[int]) -> None:
        """Collapse the selection at offset (clamped to the document)."""
        if offset is None:
            return
        caret = self.caret_at(offset)
        self.surface.set_selection(Selection.collapsed_at(caret) if caret else None)

    def restore_selection(self, start: int, end: int) -> None:
        anchor = self.caret_at(start)
        focus = self.caret_at(end)
        if anchor is None or focus is None:
            return
        self.surface.set_selection(Selection(anchor, focus))
