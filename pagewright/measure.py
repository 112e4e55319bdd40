"""Measure the rendered height of document content.

The paginator only needs one number: how tall the content is when laid
out at the page's content width. ``ReportLabMeasurer`` gets it by flowing
each block through ReportLab's paragraph layout with the document's font
settings, the same way a page renderer would.
"""

import html
import logging
import re
from typing import Awaitable, Optional, Protocol, Union

from bs4.element import Tag
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import Paragraph

from .constants import EditorConstants, PageGeometry
from .model import ContentModel, get_style_property, is_page_break, is_text_node
from .state import StyleAttributes

logger = logging.getLogger(__name__)

ALIGNMENTS = {
    "left": TA_LEFT,
    "center": TA_CENTER,
    "right": TA_RIGHT,
    "justify": TA_JUSTIFY,
}

# Standard PDF font faces: (regular, bold, italic, bold italic)
FONT_FACES = {
    "times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
}
SANS_HINTS = ("arial", "helvetica", "verdana", "sans", "calibri", "segoe", "roboto", "inter")
MONO_HINTS = ("courier", "mono", "consolas", "menlo", "monaco")

HEADING_SCALE = {"h1": 2.0, "h2": 1.5, "h3": 1.17, "h4": 1.0, "h5": 0.83, "h6": 0.67}

_PX_SIZE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(px|pt)?\s*$")


class Measurer(Protocol):
    """Anything that can report the laid-out height of markup in pixels."""

    def measure(self, content: str, style: StyleAttributes) -> Union[float, Awaitable[float]]:
        ...


def resolve_font(font_family: str, font_weight: int) -> str:
    """Map a CSS font family and weight to a standard PDF font name."""
    family = (font_family or "").lower()
    if any(hint in family for hint in MONO_HINTS):
        key = "courier"
    elif any(hint in family for hint in SANS_HINTS):
        key = "helvetica"
    else:
        key = "times"
    faces = FONT_FACES[key]
    return faces[1] if font_weight >= 600 else faces[0]


def _font_size(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = _PX_SIZE.match(value)
    if match is None:
        return None
    return float(match.group(1))


def inline_markup(node) -> str:
    """Convert an element's inline content to ReportLab paragraph markup."""
    parts = []
    for child in node.children:
        if is_text_node(child):
            parts.append(html.escape(str(child), quote=False))
            continue
        if not isinstance(child, Tag):
            continue
        name = child.name
        if name == "br":
            parts.append("<br/>")
            continue
        inner = inline_markup(child)
        if name in ("b", "strong"):
            parts.append(f"<b>{inner}</b>")
        elif name in ("i", "em"):
            parts.append(f"<i>{inner}</i>")
        elif name == "u":
            parts.append(f"<u>{inner}</u>")
        elif name == "a" and child.get("href"):
            parts.append(f'<a href="{html.escape(child["href"])}">{inner}</a>')
        elif name == "span":
            size = _font_size(get_style_property(child, "font-size"))
            weight = get_style_property(child, "font-weight")
            if weight in ("bold", "bolder") or (weight or "").isdigit() and int(weight) >= 600:
                inner = f"<b>{inner}</b>"
            parts.append(f'<font size="{size:g}">{inner}</font>' if size else inner)
        else:
            parts.append(inner)
    return "".join(parts)


class ReportLabMeasurer:
    """Measure content height by flowing it through ReportLab paragraphs."""

    def __init__(self, geometry: Optional[PageGeometry] = None,
                 line_height: float = EditorConstants.LINE_HEIGHT):
        self.geometry = geometry or PageGeometry()
        self.line_height = line_height

    def _paragraph_style(self, block: Tag, style: StyleAttributes) -> ParagraphStyle:
        size = style.font_size * HEADING_SCALE.get(block.name, 1.0)
        weight = 700 if block.name in HEADING_SCALE else style.font_weight
        align = get_style_property(block, "text-align") or style.text_align
        in_list = block.name == "li" or block.find_parent("li") is not None
        return ParagraphStyle(
            name=f"block-{block.name}",
            fontName=resolve_font(style.font_family, weight),
            fontSize=size,
            leading=size * self.line_height,
            alignment=ALIGNMENTS.get(align, TA_LEFT),
            spaceAfter=size,
            leftIndent=size * 2 if in_list else 0,
            bulletIndent=size * 0.5 if in_list else 0,
        )

    @staticmethod
    def _bullet_text(block: Tag) -> Optional[str]:
        item = block if block.name == "li" else block.find_parent("li")
        if item is None or item.parent is None:
            return None
        if item.parent.name == "ol":
            return f"{len(item.find_previous_siblings('li')) + 1}."
        return "•"

    def block_height(self, block: Tag, style: StyleAttributes) -> float:
        """Height of one leaf block including the space after it."""
        if is_page_break(block):
            return float(EditorConstants.PAGE_BREAK_HEIGHT)
        para_style = self._paragraph_style(block, style)
        markup = inline_markup(block).strip()
        if not block.get_text().strip():
            return para_style.leading + para_style.spaceAfter
        paragraph = Paragraph(markup, para_style, bulletText=self._bullet_text(block))
        _, height = paragraph.wrap(self.geometry.content_width, self.geometry.page_height * 1000)
        return height + para_style.spaceAfter

    def measure(self, content: str, style: StyleAttributes) -> float:
        model = ContentModel(content)
        total = sum(self.block_height(block, style) for block in model.layout_blocks())
        logger.debug(f"Measured content height {total:.1f}px")
        return total
