"""Tests for formatting commands dispatched through the registry."""

import unittest
from unittest.mock import patch

from pagewright.commands import (
    Command,
    CommandKind,
    CommandRegistry,
    EditorCommand,
    ToggleFormatCommand,
)
from pagewright.editor import Editor


def fixed_height(content, style):
    return 100.0


def make_editor(content, start=None, end=None, **kwargs):
    editor = Editor(content=content, measurer=fixed_height, **kwargs)
    if start is not None:
        editor.select(start, end)
    return editor


class TestToggleCommands(unittest.TestCase):
    def test_bold_toggles_content_and_state(self):
        editor = make_editor("<p>Hello world</p>", 0, 5)
        result = editor.toggle_bold()
        self.assertTrue(result.applied)
        self.assertIsNone(result.error)
        self.assertEqual(editor.get_html(), "<p><b>Hello</b> world</p>")
        self.assertTrue(editor.is_active("bold"))

    def test_double_bold_toggle_restores_state(self):
        editor = make_editor("<p>Hello world</p>", 0, 5)
        editor.toggle_bold()
        editor.toggle_bold()
        self.assertFalse(editor.is_active("bold"))
        self.assertEqual(editor.get_html(), "<p>Hello world</p>")

    def test_selection_is_restored_after_pipeline(self):
        editor = make_editor("<p>Hello world</p>", 0, 5)
        editor.toggle_italic()
        self.assertEqual(editor.surface.tracker.save_selection(), (0, 5))

    def test_underline(self):
        editor = make_editor("<p>Hello</p>", 0, 5)
        editor.toggle_underline()
        self.assertEqual(editor.get_html(), "<p><u>Hello</u></p>")
        self.assertTrue(editor.is_active("underline"))

    def test_lists(self):
        editor = make_editor("<p>one</p><p>two</p>", 0, 6)
        editor.toggle_bullet_list()
        self.assertEqual(editor.get_html(), "<ul><li>one</li><li>two</li></ul>")
        self.assertTrue(editor.is_active("bullet_list"))
        editor.toggle_ordered_list()
        self.assertEqual(editor.get_html(), "<ol><li>one</li><li>two</li></ol>")
        self.assertTrue(editor.is_active("ordered_list"))

    def test_unknown_format_name_is_inactive(self):
        editor = make_editor("<p>x</p>")
        self.assertFalse(editor.is_active("strikethrough"))


class TestOptimisticState(unittest.TestCase):
    def test_optimistic_flip_ignores_actual_content(self):
        editor = make_editor("<p><b>Hello</b> world</p>", 0, 5)
        editor.toggle_bold()
        self.assertEqual(editor.get_html(), "<p>Hello world</p>")
        self.assertTrue(editor.is_active("bold"))

    def test_recompute_formats_reads_content(self):
        editor = make_editor("<p><b>Hello</b> world</p>", 0, 5, recompute_formats=True)
        editor.toggle_bold()
        self.assertFalse(editor.is_active("bold"))
        editor.toggle_bold()
        self.assertTrue(editor.is_active("bold"))


class TestAlignAndLinks(unittest.TestCase):
    def test_align_sets_state_and_markup(self):
        editor = make_editor("<p>Hello</p>", 0)
        result = editor.set_text_align("center")
        self.assertTrue(result.applied)
        self.assertEqual(editor.state.style.text_align, "center")
        self.assertEqual(editor.get_html(), '<p style="text-align: center">Hello</p>')

    def test_invalid_align_is_reported(self):
        editor = make_editor("<p>Hello</p>", 0)
        with self.assertLogs("pagewright.commands", level="WARNING"):
            result = editor.set_text_align("diagonal")
        self.assertFalse(result.applied)
        self.assertIn("diagonal", result.error)
        self.assertEqual(editor.state.style.text_align, "left")
        self.assertEqual(editor.get_html(), "<p>Hello</p>")

    def test_set_and_unset_link(self):
        editor = make_editor("<p>Hello world</p>", 6, 11)
        editor.set_link("https://example.com")
        self.assertEqual(editor.get_html(),
                         '<p>Hello <a href="https://example.com">world</a></p>')
        self.assertTrue(editor.is_active("link"))
        editor.unset_link()
        self.assertEqual(editor.get_html(), "<p>Hello world</p>")
        self.assertFalse(editor.is_active("link"))

    def test_empty_url_is_noop(self):
        editor = make_editor("<p>Hello</p>", 0, 5)
        for url in ("", None):
            result = editor.set_link(url)
            self.assertFalse(result.applied)
        self.assertFalse(editor.is_active("link"))
        self.assertEqual(editor.get_html(), "<p>Hello</p>")


class TestPageBreakCommand(unittest.TestCase):
    def test_page_break_on_empty_document(self):
        editor = make_editor("", 0)
        result = editor.insert_page_break()
        self.assertTrue(result.applied)
        self.assertEqual(editor.get_html().count('class="manual-page-break"'), 1)
        self.assertEqual(editor.character_count, len("Page Break"))
        # Restore target is clamped to the end of the document
        self.assertEqual(editor.surface.caret_offset, len("Page Break"))

    def test_page_break_restore_target(self):
        editor = make_editor("<p>" + "x" * 50 + "</p>", 10)
        editor.insert_page_break()
        self.assertEqual(editor.surface.caret_offset, 30)

    def test_page_break_replaces_selection(self):
        editor = make_editor("<p>Hello world</p>", 0, 5)
        result = editor.insert_page_break()
        self.assertTrue(result.applied)
        self.assertTrue(editor.get_html().endswith("</div><p> world</p>"))
        self.assertNotIn("Hello", editor.surface.model.plain_text())
        # Restore target is clamped to the end of the document
        self.assertEqual(editor.surface.caret_offset, len("Page Break world"))


class TestCommandFailures(unittest.TestCase):
    def test_no_surface_is_noop(self):
        editor = make_editor("<p>Hello</p>")
        editor.detach_surface()
        result = editor.toggle_bold()
        self.assertFalse(result.applied)
        self.assertFalse(editor.is_active("bold"))
        self.assertEqual(editor.pipeline.runs, 0)

    def test_mutation_failure_rolls_back(self):
        editor = make_editor("<p>Hello</p>", 0, 5)
        with patch.object(editor.surface, "apply_inline_format", side_effect=RuntimeError("boom")):
            with self.assertLogs("pagewright.commands", level="WARNING") as logs:
                result = editor.toggle_bold()
        self.assertFalse(result.applied)
        self.assertEqual(result.error, "boom")
        self.assertIn("boom", logs.output[0])
        self.assertEqual(editor.get_html(), "<p>Hello</p>")
        # The flag flips even though nothing was applied
        self.assertTrue(editor.is_active("bold"))
        self.assertEqual(editor.pipeline.runs, 1)

    def test_failed_command_keeps_caret_formats(self):
        editor = make_editor("<p>Hello</p>", 5)
        editor.toggle_bold()
        with self.assertLogs("pagewright.commands", level="WARNING"):
            result = editor.set_text_align("justify")
        self.assertFalse(result.applied)
        self.assertTrue(editor.is_active("bold"))
        editor.type_text("X")
        self.assertEqual(editor.get_html(), "<p>Hello<b>X</b></p>")


class TestRegistry(unittest.TestCase):
    def test_every_kind_is_registered(self):
        registry = CommandRegistry()
        for kind in CommandKind:
            self.assertIsInstance(registry.get_command(kind), EditorCommand)

    def test_register_overrides(self):
        registry = CommandRegistry()
        command = ToggleFormatCommand("italic")
        registry.register(CommandKind.BOLD, command)
        self.assertIs(registry.get_command(CommandKind.BOLD), command)

    def test_missing_command(self):
        editor = make_editor("<p>Hello</p>", 0, 5)
        editor.command_registry._commands.pop(CommandKind.BOLD)
        with self.assertLogs("pagewright.commands", level="WARNING"):
            result = editor.execute(Command(CommandKind.BOLD))
        self.assertFalse(result.applied)
        self.assertIsNotNone(result.error)

    def test_command_is_hashable_value(self):
        self.assertEqual(Command(CommandKind.ALIGN, "center"), Command(CommandKind.ALIGN, "center"))
        self.assertEqual(len({Command(CommandKind.BOLD), Command(CommandKind.BOLD)}), 1)


if __name__ == '__main__':
    unittest.main()


class TestNestedListContent(unittest.TestCase):
    NESTED = "<ul><li>item<ul><li>sub</li></ul></li></ul><p>tail</p>"

    def test_align_targets_text_beside_nested_list(self):
        editor = make_editor(self.NESTED, 2)
        editor.set_text_align("center")
        self.assertEqual(editor.get_html(),
                         '<ul><li><p style="text-align: center">item</p>'
                         '<ul><li>sub</li></ul></li></ul><p>tail</p>')
        self.assertEqual(editor.state.style.text_align, "center")

    def test_enter_splits_text_beside_nested_list(self):
        editor = make_editor(self.NESTED, 2)
        editor.type_text("\n")
        self.assertEqual(editor.get_html(),
                         "<ul><li><p>it</p><p>em</p><ul><li>sub</li></ul></li></ul><p>tail</p>")
        self.assertEqual(editor.surface.caret_offset, 2)
