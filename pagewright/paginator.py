import inspect
import logging
import math
from dataclasses import asdict, dataclass
from typing import Optional

from .constants import EditorConstants, PageGeometry
from .exceptions import MeasurementError
from .measure import Measurer
from .model import ContentModel
from .state import StyleAttributes

logger = logging.getLogger(__name__)


@dataclass
class Page:
    id: int
    content: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


class Paginator:
    """Keep the page list sized to the measured content height.

    All content lives on page 1; later pages are empty placeholders that
    only exist so the shell can draw the right number of sheets.
    """

    def __init__(self, measurer: Measurer, geometry: Optional[PageGeometry] = None,
                 honor_manual_breaks: bool = False,
                 content: str = EditorConstants.DEFAULT_CONTENT):
        self.measurer = measurer
        self.geometry = geometry or PageGeometry()
        self.honor_manual_breaks = honor_manual_breaks
        self.pages: list[Page] = [Page(id=1, content=content)]
        self.last_height: Optional[float] = None

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def pages_needed(self, total_height: float, content: Optional[str] = None) -> int:
        needed = max(1, math.ceil(total_height / self.geometry.content_height))
        if self.honor_manual_breaks and content:
            markers = ContentModel(content).count_page_break_markers()
            needed = max(needed, markers + 1)
        return needed

    async def measure(self, content: str, style: StyleAttributes) -> float:
        """Ask the measurer for the content height, awaiting it if needed.

        Raises:
            MeasurementError: If measuring fails or yields an unusable height.
        """
        measure = getattr(self.measurer, "measure", self.measurer)
        try:
            height = measure(content, style)
            if inspect.isawaitable(height):
                height = await height
        except MeasurementError:
            raise
        except Exception as e:
            raise MeasurementError(f"Measuring content failed: {e}") from e
        if isinstance(height, bool) or not isinstance(height, (int, float)):
            raise MeasurementError(f"Measurer returned a non-numeric height: {height!r}",
                                   height=height)
        if not math.isfinite(height) or height < 0:
            raise MeasurementError(f"Measurer returned an invalid height: {height!r}",
                                   height=height)
        return float(height)

    async def paginate(self, content: str, style: StyleAttributes) -> bool:
        """Measure content and resize the page list. Returns True if it changed."""
        total = await self.measure(content, style)
        self.last_height = total
        return self.apply(self.pages_needed(total, content), content)

    def apply(self, pages_needed: int, content: str) -> bool:
        if pages_needed == self.page_count:
            self.pages[0].content = content
            return False
        logger.debug(f"Repaginating: {self.page_count} -> {pages_needed} pages")
        self.rebuild(pages_needed, content)
        return True

    def rebuild(self, pages_needed: int, content: str) -> None:
        self.pages = [Page(id=index + 1, content=content if index == 0 else "")
                      for index in range(max(1, pages_needed))]
