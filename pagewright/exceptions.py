"""Exceptions raised inside the editing engine.

None of these are fatal: the command executor and the update pipeline
catch them, log a warning and fall back to the previous state.
"""


class PagewrightError(Exception):
    """Base exception for all editing engine errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class CommandError(PagewrightError):
    """Raised when a formatting mutation cannot be applied."""

    def __init__(self, message: str, command=None, *args, **kwargs):
        self.command = command
        super().__init__(message, *args, **kwargs)


class MeasurementError(PagewrightError):
    """Raised when the measurer fails or reports an unusable height."""

    def __init__(self, message: str, height=None, *args, **kwargs):
        self.height = height
        super().__init__(message, *args, **kwargs)
