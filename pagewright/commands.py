"""Command pattern implementation for toolbar actions."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

from .constants import EditorConstants
from .exceptions import CommandError

if TYPE_CHECKING:
    from .pipeline import RestoreTarget, UpdatePipeline
    from .state import EditorState
    from .surface import EditingSurface

logger = logging.getLogger(__name__)


class CommandKind(Enum):
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    BULLET_LIST = "bullet_list"
    ORDERED_LIST = "ordered_list"
    ALIGN = "align"
    SET_LINK = "set_link"
    UNSET_LINK = "unset_link"
    PAGE_BREAK = "page_break"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    value: Optional[str] = None


@dataclass
class CommandResult:
    command: Command
    applied: bool
    error: Optional[str] = None
    task: Optional[asyncio.Task] = None


class EditorCommand(ABC):
    """Base class for commands that edit the active surface.

    Subclasses implement ``_apply`` (the mutation) and ``_update_state``
    (what the toolbar should show afterwards).
    """

    def execute(self, state: 'EditorState', command: Command,
                pipeline: 'UpdatePipeline', recompute_formats: bool = False) -> CommandResult:
        """Execute the command.

        Args:
            state: Editor state holding the active surface
            command: The command and its argument
            pipeline: Update pipeline to schedule once the edit is done
            recompute_formats: Derive IsActive flags from the content
                instead of flipping them

        Returns:
            Result telling whether the mutation was applied
        """
        surface = state.surface
        if surface is None:
            logger.debug(f"Ignoring {command.kind.value}: no editing surface attached")
            return CommandResult(command=command, applied=False)
        if not self._accepts(command):
            logger.debug(f"Ignoring {command.kind.value} with value {command.value!r}")
            return CommandResult(command=command, applied=False)

        surface.focus()
        saved = surface.tracker.save_selection()
        before = surface.snapshot()
        error = None
        try:
            self._apply(surface, command)
        except Exception as e:
            logger.warning(f"Command {command.kind.value} failed: {e}")
            error = str(e)
            surface.restore_snapshot(before)
            if saved is not None:
                surface.tracker.restore_selection(*saved)

        if recompute_formats:
            state.formats.update(surface.formats_at_selection())
        self._update_state(state, command, optimistic=not recompute_formats)

        task = pipeline.schedule(restore=self._restore_target(saved))
        return CommandResult(command=command, applied=error is None, error=error, task=task)

    def _accepts(self, command: Command) -> bool:
        return True

    @abstractmethod
    def _apply(self, surface: 'EditingSurface', command: Command):
        """Perform the mutation."""
        pass

    def _update_state(self, state: 'EditorState', command: Command, optimistic: bool):
        pass

    def _restore_target(self, saved) -> Optional['RestoreTarget']:
        if saved is None:
            return None
        start, end = saved
        return start if start == end else saved


class ToggleFormatCommand(EditorCommand):
    """Bold, italic or underline over the selection."""

    def __init__(self, name: str):
        self.name = name

    def _apply(self, surface, command):
        surface.apply_inline_format(self.name)

    def _update_state(self, state, command, optimistic):
        if optimistic:
            state.formats.flip(self.name)


class ToggleListCommand(EditorCommand):
    def __init__(self, ordered: bool):
        self.ordered = ordered
        self.name = "ordered_list" if ordered else "bullet_list"

    def _apply(self, surface, command):
        surface.toggle_list(self.ordered)

    def _update_state(self, state, command, optimistic):
        if optimistic:
            state.formats.flip(self.name)


class AlignCommand(EditorCommand):
    def _apply(self, surface, command):
        if command.value not in EditorConstants.TEXT_ALIGNMENTS:
            raise CommandError(f"Unknown alignment: {command.value!r}", command=command)
        surface.apply_block_align(command.value)

    def _update_state(self, state, command, optimistic):
        if command.value in EditorConstants.TEXT_ALIGNMENTS:
            state.style.text_align = command.value


class SetLinkCommand(EditorCommand):
    def _accepts(self, command):
        return bool(command.value)

    def _apply(self, surface, command):
        surface.apply_link(command.value)

    def _update_state(self, state, command, optimistic):
        if optimistic:
            state.formats.set("link", True)


class UnsetLinkCommand(EditorCommand):
    def _apply(self, surface, command):
        surface.apply_link(None)

    def _update_state(self, state, command, optimistic):
        if optimistic:
            state.formats.set("link", False)


class PageBreakCommand(EditorCommand):
    def _apply(self, surface, command):
        surface.insert_page_break_marker()

    def _restore_target(self, saved):
        if saved is None:
            return None
        # Approximate: lands after the marker label, clamped on restore
        return saved[0] + EditorConstants.PAGE_BREAK_CURSOR_DELTA


class CommandRegistry:
    """Registry mapping command kinds to their implementations."""

    def __init__(self):
        self._commands: Dict[CommandKind, EditorCommand] = {}
        self._setup_default_commands()

    def _setup_default_commands(self):
        """Set up the default command mappings."""
        self.register(CommandKind.BOLD, ToggleFormatCommand("bold"))
        self.register(CommandKind.ITALIC, ToggleFormatCommand("italic"))
        self.register(CommandKind.UNDERLINE, ToggleFormatCommand("underline"))
        self.register(CommandKind.BULLET_LIST, ToggleListCommand(ordered=False))
        self.register(CommandKind.ORDERED_LIST, ToggleListCommand(ordered=True))
        self.register(CommandKind.ALIGN, AlignCommand())
        self.register(CommandKind.SET_LINK, SetLinkCommand())
        self.register(CommandKind.UNSET_LINK, UnsetLinkCommand())
        self.register(CommandKind.PAGE_BREAK, PageBreakCommand())

    def register(self, kind: CommandKind, command: EditorCommand):
        """Register a command implementation for a kind."""
        self._commands[kind] = command

    def get_command(self, kind: CommandKind) -> Optional[EditorCommand]:
        return self._commands.get(kind)

    def execute(self, state: 'EditorState', command: Command, pipeline: 'UpdatePipeline',
                recompute_formats: bool = False) -> CommandResult:
        handler = self.get_command(command.kind)
        if handler is None:
            logger.warning(f"No command registered for {command.kind}")
            return CommandResult(command=command, applied=False,
                                 error=f"No command registered for {command.kind}")
        return handler.execute(state, command, pipeline, recompute_formats=recompute_formats)
