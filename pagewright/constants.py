"""Constants and configuration for the pagewright editor."""


class PageGeometry:
    """A4 page geometry in CSS pixels (96 dpi).

    Class attributes are the defaults; an instance may override any of
    them, e.g. ``PageGeometry(content_height=900)`` in tests.
    """

    PAGE_WIDTH = 794  # 210mm at 96dpi
    PAGE_HEIGHT = 1123  # 297mm at 96dpi
    MARGIN = 40
    HEADER_HEIGHT = 60
    FOOTER_HEIGHT = 40

    def __init__(self, page_width=None, page_height=None, margin=None,
                 header_height=None, footer_height=None, content_height=None):
        self.page_width = page_width if page_width is not None else self.PAGE_WIDTH
        self.page_height = page_height if page_height is not None else self.PAGE_HEIGHT
        self.margin = margin if margin is not None else self.MARGIN
        self.header_height = header_height if header_height is not None else self.HEADER_HEIGHT
        self.footer_height = footer_height if footer_height is not None else self.FOOTER_HEIGHT
        self._content_height = content_height

    @property
    def content_height(self) -> float:
        """Usable height per page after header, footer and both margins."""
        if self._content_height is not None:
            return self._content_height
        return (self.page_height - self.header_height
                - self.footer_height - 2 * self.margin)

    @property
    def content_width(self) -> float:
        """Usable width per page; measurement always wraps at this width."""
        return self.page_width - 2 * self.margin


# Module-level defaults, for callers that just need the numbers
CONTENT_HEIGHT = PageGeometry().content_height
CONTENT_WIDTH = PageGeometry().content_width


class EditorConstants:
    """Central configuration constants for the editor."""

    # Content
    DEFAULT_CONTENT = "<p>Start writing your document...</p>"
    DEFAULT_TITLE = "Untitled Document"
    EMPTY_PARAGRAPH = "<p><br></p>"

    # Default style applied to new input
    DEFAULT_FONT_FAMILY = "Times New Roman"
    DEFAULT_FONT_SIZE = 12
    DEFAULT_FONT_WEIGHT = 400
    DEFAULT_TEXT_ALIGN = "left"
    TEXT_ALIGNMENTS = ("left", "center", "right")
    LINE_HEIGHT = 1.6  # Multiple of font size

    # Manual page break marker
    PAGE_BREAK_CLASS = "manual-page-break"
    PAGE_BREAK_LABEL = "Page Break"
    PAGE_BREAK_HEIGHT = 80  # 20px marker + 30px margin above and below
    # Caret advance after inserting a page break. Approximate: it does not
    # track the marker's real text length.
    PAGE_BREAK_CURSOR_DELTA = 20

    # Update pipeline
    PIPELINE_DEBOUNCE = 0.0  # Seconds between mutation and measurement
    RESTORE_DELAY = 0.0  # Seconds between repagination and cursor restore

    # Preferences persistence
    SETTINGS_APP_NAME = "pagewright"
    SETTINGS_FILENAME = "settings.json"
