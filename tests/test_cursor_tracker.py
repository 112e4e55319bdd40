"""Tests for caret save/restore by text offset."""

import unittest

from bs4.element import NavigableString

from pagewright.cursor import Caret, Selection
from pagewright.surface import DocumentSurface


class TestCursorTracker(unittest.TestCase):
    def setUp(self):
        self.surface = DocumentSurface(markup="<p>Hello <b>world</b></p><p>again</p>")
        self.surface.focus()
        self.tracker = self.surface.tracker

    def test_focus_places_caret_at_start(self):
        self.assertEqual(self.tracker.save(), 0)

    def test_save_restore_round_trip(self):
        for offset in (0, 3, 6, 8, 11, 14, 16):
            self.tracker.restore(offset)
            self.assertEqual(self.tracker.save(), offset)

    def test_restore_prefers_end_of_earlier_node(self):
        self.tracker.restore(6)
        caret = self.surface.selection.focus
        self.assertEqual(str(caret.node), "Hello ")
        self.assertEqual(caret.offset, 6)

    def test_restore_clamps_past_end(self):
        self.tracker.restore(100)
        self.assertEqual(self.tracker.save(), 16)

    def test_restore_clamps_negative(self):
        self.tracker.restore(-5)
        self.assertEqual(self.tracker.save(), 0)

    def test_save_without_focus_is_none(self):
        self.surface.blur()
        self.assertIsNone(self.tracker.save())
        self.assertIsNone(self.tracker.save_selection())

    def test_save_with_detached_node_is_none(self):
        self.surface.set_selection(Selection.collapsed_at(Caret(NavigableString("x"), 0)))
        self.assertIsNone(self.tracker.save())

    def test_save_without_selection_is_none(self):
        self.surface.set_selection(None)
        self.assertIsNone(self.tracker.save())

    def test_element_caret_uses_child_index(self):
        paragraph = self.surface.root.p
        self.assertEqual(self.tracker.offset_of(paragraph, 1), 6)
        self.assertEqual(self.tracker.offset_of(paragraph, 2), 11)
        self.assertEqual(self.tracker.offset_of(self.surface.root, 1), 11)

    def test_selection_round_trip(self):
        self.tracker.restore_selection(9, 2)
        self.assertEqual(self.tracker.save_selection(), (2, 9))
        self.assertFalse(self.surface.selection.collapsed)

    def test_restore_survives_markup_rebuild(self):
        self.tracker.restore(8)
        offset = self.tracker.save()
        self.surface.set_markup(self.surface.get_markup())
        self.surface.focus()
        self.tracker.restore(offset)
        self.assertEqual(self.tracker.save(), 8)


def test_restore_in_document_without_text():
    surface = DocumentSurface(markup="<p><br></p>")
    surface.focus()
    caret = surface.selection.focus
    assert caret.node.name == "p"
    assert surface.tracker.save() == 0


def test_restore_none_is_ignored():
    surface = DocumentSurface(markup="<p>abc</p>")
    surface.focus()
    surface.tracker.restore(2)
    surface.tracker.restore(None)
    assert surface.caret_offset == 2
