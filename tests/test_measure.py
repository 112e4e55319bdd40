"""Tests for the ReportLab-based content measurer."""

import pytest

from pagewright.constants import CONTENT_HEIGHT, EditorConstants
from pagewright.measure import ReportLabMeasurer, inline_markup, resolve_font
from pagewright.model import ContentModel
from pagewright.state import StyleAttributes


@pytest.fixture
def measurer():
    return ReportLabMeasurer()


@pytest.fixture
def style():
    return StyleAttributes()


def test_resolve_font():
    assert resolve_font("Times New Roman", 400) == "Times-Roman"
    assert resolve_font("Times New Roman", 700) == "Times-Bold"
    assert resolve_font("Arial", 400) == "Helvetica"
    assert resolve_font("Courier New", 700) == "Courier-Bold"
    assert resolve_font("", 400) == "Times-Roman"


def test_inline_markup_converts_emphasis_and_escapes():
    model = ContentModel('<p>a &amp; <b>b</b> <em>c</em> <a href="https://x.io">d</a><br></p>')
    assert inline_markup(model.soup.p) == 'a &amp; <b>b</b> <i>c</i> <a href="https://x.io">d</a><br/>'


def test_single_line_paragraph(measurer, style):
    height = measurer.measure("<p>Hello</p>", style)
    line = style.font_size * EditorConstants.LINE_HEIGHT
    assert height == pytest.approx(line + style.font_size)


def test_empty_paragraph_takes_one_line(measurer, style):
    assert measurer.measure("<p><br></p>", style) == measurer.measure("<p>x</p>", style)


def test_empty_content_has_no_height(measurer, style):
    assert measurer.measure("", style) == 0


def test_page_break_marker_height(measurer, style):
    plain = measurer.measure("<p>a</p>", style)
    model = ContentModel("<p>a</p>")
    model.insert_page_break_marker(1)
    with_break = measurer.measure(model.get_content(), style)
    one_line = style.font_size * EditorConstants.LINE_HEIGHT + style.font_size
    assert with_break == pytest.approx(plain + EditorConstants.PAGE_BREAK_HEIGHT + one_line)


def test_long_paragraph_wraps(measurer, style):
    short = measurer.measure("<p>word</p>", style)
    long = measurer.measure("<p>" + "word " * 1000 + "</p>", style)
    assert long > short * 10


def test_larger_font_is_taller(measurer):
    text = "<p>" + "word " * 100 + "</p>"
    small = measurer.measure(text, StyleAttributes(font_size=10))
    large = measurer.measure(text, StyleAttributes(font_size=20))
    assert large > small


def test_many_paragraphs_exceed_one_page(measurer, style):
    content = "".join(f"<p>Paragraph {i}</p>" for i in range(60))
    assert measurer.measure(content, style) > CONTENT_HEIGHT


def test_list_items_are_measured(measurer, style):
    height = measurer.measure("<ol><li>one</li><li>two</li></ol>", style)
    assert height == pytest.approx(2 * measurer.measure("<p>one</p>", style))


def test_text_beside_nested_list_is_measured(measurer, style):
    nested = measurer.measure("<ul><li>" + "word " * 400 + "<ul><li>s</li></ul></li></ul>", style)
    assert nested > measurer.measure("<ul><li>s</li></ul>", style) * 5
