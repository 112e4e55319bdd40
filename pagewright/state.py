import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from .constants import EditorConstants
from .stats import DocumentStatistics

if TYPE_CHECKING:
    from .paginator import Page, Paginator
    from .surface import EditingSurface

logger = logging.getLogger(__name__)

FORMAT_NAMES = ("bold", "italic", "underline", "bullet_list", "ordered_list", "link")


@dataclass
class FormatState:
    """IsActive flags shown by the toolbar."""
    bold: bool = False
    italic: bool = False
    underline: bool = False
    bullet_list: bool = False
    ordered_list: bool = False
    link: bool = False

    def is_active(self, name: str) -> bool:
        if name not in FORMAT_NAMES:
            return False
        return getattr(self, name)

    def set(self, name: str, value: bool) -> None:
        if name in FORMAT_NAMES:
            setattr(self, name, bool(value))

    def flip(self, name: str) -> bool:
        self.set(name, not self.is_active(name))
        return self.is_active(name)

    def update(self, values: dict) -> None:
        for name, value in values.items():
            self.set(name, value)

    def as_dict(self) -> dict:
        return asdict(self)


def validate_style_value(key: str, value: Any) -> bool:
    """Check one style attribute value (also used for stored preferences)."""
    if key == "font_family":
        return isinstance(value, str) and bool(value.strip())
    elif key == "font_size":
        return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 400
    elif key == "font_weight":
        return (isinstance(value, int) and not isinstance(value, bool)
                and 100 <= value <= 900 and value % 100 == 0)
    elif key == "text_align":
        return value in EditorConstants.TEXT_ALIGNMENTS
    return False


@dataclass
class StyleAttributes:
    font_family: str = EditorConstants.DEFAULT_FONT_FAMILY
    font_size: int = EditorConstants.DEFAULT_FONT_SIZE
    font_weight: int = EditorConstants.DEFAULT_FONT_WEIGHT
    text_align: str = EditorConstants.DEFAULT_TEXT_ALIGN

    def update(self, key: str, value: Any) -> bool:
        """Set one attribute if the value is valid. Returns success."""
        if not validate_style_value(key, value):
            logger.warning(f"Ignoring invalid style value {key}={value!r}")
            return False
        setattr(self, key, value)
        return True

    def as_dict(self) -> dict:
        return asdict(self)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EditorState:
    """Everything the editor shell observes about the open document."""
    paginator: "Paginator"
    surface: Optional["EditingSurface"] = None
    title: str = EditorConstants.DEFAULT_TITLE
    content: str = EditorConstants.DEFAULT_CONTENT
    formats: FormatState = field(default_factory=FormatState)
    style: StyleAttributes = field(default_factory=StyleAttributes)
    statistics: DocumentStatistics = field(default_factory=DocumentStatistics)
    current_page: int = 1
    last_modified: datetime = field(default_factory=_now)

    @property
    def pages(self) -> list["Page"]:
        return self.paginator.pages

    @property
    def page_count(self) -> int:
        return self.paginator.page_count

    def set_current_page(self, page: int) -> int:
        self.current_page = max(1, min(int(page), self.page_count))
        return self.current_page

    def touch(self) -> None:
        self.last_modified = _now()
