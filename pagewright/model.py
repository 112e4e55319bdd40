"""Rich-text content model backed by a BeautifulSoup tree.

All positions are linear offsets into the concatenated text nodes of the
tree (the same projection the cursor tracker uses), so every operation
here survives node replacement: callers hold offsets, never nodes.
"""

import copy
import logging
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import NavigableString, Tag

from .constants import EditorConstants
from .exceptions import CommandError

logger = logging.getLogger(__name__)

# Inline emphasis: format name -> tags that carry it. The first tag is the
# one we create.
FORMAT_TAGS = {
    "bold": ("b", "strong"),
    "italic": ("i", "em"),
    "underline": ("u",),
}
LINK_TAGS = ["a"]
LIST_TAGS = ["ul", "ol"]
BLOCK_TAGS = ["p", "div", "li", "blockquote", "pre",
              "h1", "h2", "h3", "h4", "h5", "h6"]
VOID_TAGS = ["br", "img", "hr"]


def is_text_node(node) -> bool:
    """True for plain text nodes (comments, doctypes and script text excluded)."""
    return type(node) is NavigableString


def is_page_break(node) -> bool:
    if not isinstance(node, Tag) or node.name != "div":
        return False
    classes = node.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return EditorConstants.PAGE_BREAK_CLASS in classes


def parse_style(value: Optional[str]) -> dict:
    """Parse an inline CSS declaration list into an ordered dict."""
    declarations = {}
    for part in (value or "").split(";"):
        if ":" not in part:
            continue
        prop, val = part.split(":", 1)
        prop = prop.strip().lower()
        if prop:
            declarations[prop] = val.strip()
    return declarations


def format_style(declarations: dict) -> str:
    return "; ".join(f"{prop}: {val}" for prop, val in declarations.items())


def get_style_property(tag: Tag, prop: str) -> Optional[str]:
    return parse_style(tag.get("style")).get(prop)


def set_style_property(tag: Tag, prop: str, value: Optional[str]) -> None:
    """Set or (with value None) remove one CSS declaration on a tag."""
    declarations = parse_style(tag.get("style"))
    if value is None:
        declarations.pop(prop, None)
    else:
        declarations[prop] = value
    if declarations:
        tag["style"] = format_style(declarations)
    elif "style" in tag.attrs:
        del tag["style"]


def _copy_attrs(tag: Tag) -> dict:
    return {k: (list(v) if isinstance(v, list) else v) for k, v in tag.attrs.items()}


class ContentModel:
    """Mutable HTML fragment with offset-addressed formatting operations."""

    def __init__(self, markup: Optional[str] = EditorConstants.DEFAULT_CONTENT):
        self.soup = self._parse(markup)

    @staticmethod
    def _parse(markup: Optional[str]) -> BeautifulSoup:
        return BeautifulSoup(markup or "", "html.parser")

    # --- Content access ---

    def get_content(self) -> str:
        return self.soup.decode()

    def set_content(self, markup: Optional[str]) -> None:
        self.soup = self._parse(markup)

    def text_nodes(self, root=None) -> list:
        root = self.soup if root is None else root
        return [node for node in root.descendants if is_text_node(node)]

    def plain_text(self) -> str:
        """Offset projection: every text node, in document order."""
        return "".join(self.text_nodes())

    def text_length(self, root=None) -> int:
        return sum(len(node) for node in self.text_nodes(root))

    def inner_text(self) -> str:
        """Counting projection: leaf blocks separated by newlines.

        Whitespace between block-level elements is layout, not text, and
        is skipped; ``<br>`` becomes a newline.
        """
        parts: list[str] = []

        def newline():
            if parts and not parts[-1].endswith("\n"):
                parts.append("\n")

        def walk(node):
            for child in node.children:
                if is_text_node(child):
                    if not self._is_layout_whitespace(child):
                        parts.append(str(child))
                elif isinstance(child, Tag):
                    if child.name == "br":
                        parts.append("\n")
                    elif child.name in BLOCK_TAGS or child.name in LIST_TAGS:
                        newline()
                        walk(child)
                        newline()
                    else:
                        walk(child)

        walk(self.soup)
        return "".join(parts).rstrip("\n")

    def count_page_break_markers(self) -> int:
        return sum(1 for tag in self.soup.find_all("div") if is_page_break(tag))

    def layout_blocks(self) -> list:
        """Leaf blocks and page-break markers in document order.

        Loose inline content next to other blocks is wrapped in paragraphs
        first, so every piece of text belongs to exactly one block.
        """
        self._wrap_stray_inline()
        result = []
        for tag in self.soup.find_all(BLOCK_TAGS):
            if is_page_break(tag):
                result.append(tag)
            elif tag.find_parent(is_page_break) is None and tag.find(BLOCK_TAGS) is None:
                result.append(tag)
        return result

    # --- Offset bookkeeping ---

    def _clamp(self, offset: int) -> int:
        return max(0, min(int(offset), self.text_length()))

    def _normalize_range(self, start: int, end: int) -> tuple[int, int]:
        start, end = self._clamp(start), self._clamp(end)
        return (start, end) if start <= end else (end, start)

    def _node_starts(self) -> dict:
        """Map id(node) -> offset of the first character at or after it."""
        starts = {}
        pos = 0
        for node in self.soup.descendants:
            starts[id(node)] = pos
            if is_text_node(node):
                pos += len(node)
        return starts

    def _spans(self, tags) -> list:
        starts = self._node_starts()
        return [(tag, starts[id(tag)], starts[id(tag)] + self.text_length(tag))
                for tag in tags]

    def _is_layout_whitespace(self, node) -> bool:
        if node.strip():
            return False
        parent = node.parent
        return isinstance(parent, BeautifulSoup) or (parent is not None and parent.name in LIST_TAGS)

    def _split_text_at(self, offset: int) -> None:
        """Make sure a text node boundary falls exactly on offset."""
        pos = 0
        for node in self.text_nodes():
            end = pos + len(node)
            if pos < offset < end:
                cut = offset - pos
                left = NavigableString(node[:cut])
                right = NavigableString(node[cut:])
                node.replace_with(left)
                left.insert_after(right)
                return
            pos = end

    def _nodes_in_range(self, start: int, end: int) -> list:
        """Split at both ends and return the text nodes fully inside."""
        self._split_text_at(start)
        self._split_text_at(end)
        result = []
        pos = 0
        for node in self.text_nodes():
            length = len(node)
            if (length and pos >= start and pos + length <= end
                    and not self._is_layout_whitespace(node) and not self._in_page_break(node)):
                result.append(node)
            pos += length
        return result

    def _touching_nodes(self, start: int, end: int) -> list:
        """Non-mutating lookup of the text nodes a range touches.

        A collapsed range touches the node on its left (the caret inherits
        formatting from the preceding character), or the following node at
        the very start of a run.
        """
        candidates = []
        pos = 0
        for node in self.text_nodes():
            length = len(node)
            if length and not self._is_layout_whitespace(node) and not self._in_page_break(node):
                candidates.append((node, pos, pos + length))
            pos += length
        if start == end:
            for node, node_start, node_end in candidates:
                if node_start < start <= node_end:
                    return [node]
            for node, node_start, _ in candidates:
                if node_start == start:
                    return [node]
            return []
        return [node for node, node_start, node_end in candidates
                if node_start < end and node_end > start]

    @staticmethod
    def _ancestors(node):
        parent = node.parent
        while parent is not None and not isinstance(parent, BeautifulSoup):
            yield parent
            parent = parent.parent

    def _in_page_break(self, node) -> bool:
        return any(is_page_break(tag) for tag in self._ancestors(node))

    def _has_ancestor(self, node, names) -> bool:
        return any(tag.name in names for tag in self._ancestors(node))

    # --- Structural helpers ---

    def _has_text(self, tag) -> bool:
        return any(len(node) for node in self.text_nodes(tag))

    def _has_content(self, tag) -> bool:
        return self._has_text(tag) or tag.find(VOID_TAGS) is not None

    def _empty_paragraph(self) -> Tag:
        paragraph = self.soup.new_tag("p")
        paragraph.append(self.soup.new_tag("br"))
        return paragraph

    def _is_inline_content(self, node) -> bool:
        if is_text_node(node):
            return True
        if not isinstance(node, Tag):
            return False
        return node.name not in BLOCK_TAGS and node.name not in LIST_TAGS and node.name not in ("hr", "table")

    def _wrap_stray_inline(self) -> None:
        """Wrap runs of inline content that sit beside blocks in paragraphs.

        Covers the top level and any block that also holds other blocks,
        such as a list item with a nested list.
        """
        containers = [self.soup] + [
            tag for tag in self.soup.find_all(BLOCK_TAGS)
            if not is_page_break(tag) and tag.find_parent(is_page_break) is None
            and tag.find(BLOCK_TAGS) is not None]
        for container in containers:
            self._wrap_runs_in(container)

    def _wrap_runs_in(self, container) -> None:
        run: list = []
        for child in list(container.contents):
            if self._is_inline_content(child):
                run.append(child)
                continue
            self._wrap_run(run)
            run = []
        self._wrap_run(run)

    def _wrap_run(self, run: list) -> None:
        if not any(isinstance(n, Tag) or n.strip() for n in run):
            return
        paragraph = self.soup.new_tag("p")
        run[0].insert_before(paragraph)
        for node in run:
            paragraph.append(node)

    def _leaf_blocks(self) -> list:
        return [tag for tag in self.layout_blocks() if not is_page_break(tag)]

    def _blocks_in_range(self, start: int, end: int, wrap: bool = True) -> list:
        start, end = self._normalize_range(start, end)
        if wrap:
            blocks = self._leaf_blocks()
        else:
            found = self._enclosing_blocks(self._touching_nodes(start, end))
            if found:
                return found
            blocks = [tag for tag in self.soup.find_all(BLOCK_TAGS)
                      if not is_page_break(tag) and tag.find_parent(is_page_break) is None
                      and tag.find(BLOCK_TAGS) is None]
        spans = self._spans(blocks)
        if not spans:
            if not wrap:
                return []
            paragraph = self._empty_paragraph()
            self.soup.append(paragraph)
            return [paragraph]
        if start == end:
            for block, block_start, block_end in spans:
                if block_start <= start <= block_end:
                    return [block]
            # Caret inside a marker label: use the block before it
            preceding = [block for block, block_start, _ in spans if block_start <= start]
            return [preceding[-1] if preceding else spans[0][0]]
        return [block for block, block_start, block_end in spans
                if (block_start < end and block_end > start)
                or (block_start == block_end and start <= block_start < end)]

    @staticmethod
    def _enclosing_blocks(nodes) -> list:
        """Nearest block ancestor of each text node, outside markers."""
        blocks = []
        for node in nodes:
            block = node.find_parent(BLOCK_TAGS)
            if (block is None or is_page_break(block)
                    or block.find_parent(is_page_break) is not None):
                continue
            if not any(block is seen for seen in blocks):
                blocks.append(block)
        return blocks

    def _top_block_at(self, offset: int) -> Optional[Tag]:
        tops = [child for child in self.soup.contents if isinstance(child, Tag)]
        spans = self._spans(tops)
        for tag, tag_start, tag_end in spans:
            if tag_start <= offset <= tag_end:
                return tag
        return spans[-1][0] if spans else None

    def _prune_upwards(self, tag, stop) -> None:
        """Remove inline wrappers (and list items) left without content."""
        while (tag is not None and tag is not stop and not isinstance(tag, BeautifulSoup)
               and (self._is_inline_content(tag) or tag.name == "li")
               and not self._has_content(tag)):
            parent = tag.parent
            tag.extract()
            tag = parent

    def _delete_text_in(self, root, start: int, end: int) -> None:
        """Delete text between offsets relative to root's own text."""
        pos = 0
        emptied = []
        for node in self.text_nodes(root):
            length = len(node)
            lo, hi = max(pos, start), min(pos + length, end)
            if lo < hi:
                kept = node[:lo - pos] + node[hi - pos:]
                if kept:
                    node.replace_with(NavigableString(kept))
                else:
                    emptied.append(node.parent)
                    node.extract()
            pos += length
        for parent in emptied:
            self._prune_upwards(parent, root)

    def _split_element(self, element: Tag, offset: int) -> Optional[Tag]:
        """Split element at an absolute offset; return the right half.

        Returns None when the right half would hold no text.
        """
        element_start = self._node_starts()[id(element)]
        relative = offset - element_start
        length = self.text_length(element)
        right = copy.copy(element)
        self._delete_text_in(element, relative, length)
        self._delete_text_in(right, 0, relative)
        if not self._has_content(element):
            element.append(self.soup.new_tag("br"))
        if not self._has_text(right):
            return None
        element.insert_after(right)
        return right

    def _strip_wrappers(self, nodes: list, names) -> None:
        """Remove wrappers named names from exactly these text nodes.

        Wrappers that also cover text outside the set are unwrapped and
        re-applied to that outside text only.
        """
        targets = {id(node) for node in nodes}
        for node in nodes:
            for wrapper in [tag for tag in self._ancestors(node) if tag.name in names]:
                if wrapper.parent is None:
                    continue
                outside = [n for n in self.text_nodes(wrapper) if id(n) not in targets and len(n)]
                name, attrs = wrapper.name, _copy_attrs(wrapper)
                wrapper.unwrap()
                for other in outside:
                    other.wrap(self.soup.new_tag(name, attrs=copy.deepcopy(attrs)))

    def _merge_adjacent(self, names) -> None:
        for tag in self.soup.find_all(list(names)):
            if tag.parent is None:
                continue
            sibling = tag.next_sibling
            while isinstance(sibling, Tag) and sibling.name == tag.name and sibling.attrs == tag.attrs:
                for child in list(sibling.contents):
                    tag.append(child)
                sibling.extract()
                sibling = tag.next_sibling

    def _remove_empty_lists(self) -> None:
        for tag in self.soup.find_all(list(LIST_TAGS)):
            if tag.parent is not None and tag.find("li") is None:
                tag.extract()

    # --- Inline formatting ---

    def _set_format(self, start: int, end: int, name: str, enabled: bool) -> bool:
        tags = FORMAT_TAGS[name]
        nodes = self._nodes_in_range(start, end)
        if not nodes:
            return False
        if enabled:
            for node in nodes:
                if not self._has_ancestor(node, tags):
                    node.wrap(self.soup.new_tag(tags[0]))
            self._merge_adjacent(tags)
        else:
            self._strip_wrappers(nodes, tags)
        self.soup.smooth()
        return True

    def apply_inline_format(self, start: int, end: int, name: str) -> bool:
        """Toggle bold/italic/underline over a range.

        Removes the format when every character in the range already has
        it; otherwise applies it to the whole range. Collapsed ranges do
        not touch the markup.
        """
        if name not in FORMAT_TAGS:
            raise CommandError(f"Unknown inline format: {name}", command=name)
        start, end = self._normalize_range(start, end)
        if start == end:
            return False
        nodes = self._touching_nodes(start, end)
        if not nodes:
            return False
        every_has = all(self._has_ancestor(node, FORMAT_TAGS[name]) for node in nodes)
        return self._set_format(start, end, name, not every_has)

    def apply_inline_style(self, start: int, end: int, prop: str, value: str) -> bool:
        """Wrap a range in ``<span style="prop: value">``."""
        start, end = self._normalize_range(start, end)
        if start == end:
            return False
        nodes = self._nodes_in_range(start, end)
        if not nodes:
            return False
        for node in nodes:
            parent = node.parent
            if parent.name == "span" and len(parent.contents) == 1:
                set_style_property(parent, prop, value)
            else:
                node.wrap(self.soup.new_tag("span", attrs={"style": format_style({prop: value})}))
        self._merge_adjacent(("span",))
        self.soup.smooth()
        return True

    def formats_in_range(self, start: int, end: int) -> dict:
        """Report which formats the whole range (or the caret) carries."""
        start, end = self._normalize_range(start, end)
        nodes = self._touching_nodes(start, end)
        result = {name: bool(nodes) and all(self._has_ancestor(n, tags) for n in nodes)
                  for name, tags in FORMAT_TAGS.items()}
        result["link"] = bool(nodes) and all(self._has_ancestor(n, LINK_TAGS) for n in nodes)
        items = [self._list_item_of(block) for block in self._blocks_in_range(start, end, wrap=False)]
        for name, list_tag in (("bullet_list", "ul"), ("ordered_list", "ol")):
            result[name] = bool(items) and all(
                item is not None and item.parent is not None and item.parent.name == list_tag
                for item in items)
        return result

    # --- Block formatting ---

    def apply_block_align(self, start: int, end: int, align: str) -> bool:
        if align not in EditorConstants.TEXT_ALIGNMENTS:
            raise CommandError(f"Unknown alignment: {align!r}", command="align")
        blocks = self._blocks_in_range(start, end)
        for block in blocks:
            set_style_property(block, "text-align", None if align == "left" else align)
        return bool(blocks)

    @staticmethod
    def _list_item_of(block: Tag) -> Optional[Tag]:
        if block.name == "li":
            return block
        return block.find_parent("li")

    def toggle_list(self, start: int, end: int, ordered: bool) -> bool:
        """Turn the blocks in range into a list, or back into paragraphs."""
        list_name = "ol" if ordered else "ul"
        blocks = self._blocks_in_range(start, end)
        if not blocks:
            return False
        items = [self._list_item_of(block) for block in blocks]
        if all(item is not None and item.parent.name == list_name for item in items):
            seen = set()
            for item in items:
                if id(item) not in seen:
                    seen.add(id(item))
                    self._unlist_item(item)
        else:
            self._make_list(blocks, list_name)
        self._remove_empty_lists()
        return True

    def _split_list_before(self, item: Tag) -> Tag:
        """Move item and its following siblings into a new list after its parent."""
        parent = item.parent
        tail = self.soup.new_tag(parent.name, attrs=_copy_attrs(parent))
        for sibling in [item] + list(item.next_siblings):
            tail.append(sibling)
        parent.insert_after(tail)
        return tail

    def _unlist_item(self, item: Tag) -> None:
        tail = self._split_list_before(item)
        if item.find(BLOCK_TAGS) is not None:
            for child in list(item.contents):
                tail.insert_before(child)
            item.extract()
        else:
            item.name = "p"
            tail.insert_before(item)

    def _make_list(self, blocks: list, list_name: str) -> None:
        units = []
        for block in blocks:
            unit = self._list_item_of(block) or block
            if not any(unit is seen for seen in units):
                units.append(unit)
        first = units[0]
        if first.name == "li":
            first = self._split_list_before(first)
        new_list = self.soup.new_tag(list_name)
        first.insert_before(new_list)
        for unit in units:
            if unit.name != "li":
                unit.name = "li"
            new_list.append(unit)

    # --- Links ---

    def _link_at(self, offset: int) -> Optional[Tag]:
        nodes = self._touching_nodes(offset, offset)
        if not nodes:
            return None
        return nodes[0].find_parent("a")

    def apply_link(self, start: int, end: int, url: Optional[str]) -> bool:
        """Link the range to url, or remove links when url is empty."""
        start, end = self._normalize_range(start, end)
        if not url:
            if start == end:
                link = self._link_at(start)
                if link is None:
                    return False
                link.unwrap()
                self.soup.smooth()
                return True
            linked = [node for node in self._nodes_in_range(start, end)
                      if self._has_ancestor(node, LINK_TAGS)]
            if not linked:
                return False
            self._strip_wrappers(linked, LINK_TAGS)
            self.soup.smooth()
            return True

        if start == end:
            link = self._link_at(start)
            if link is not None:
                link["href"] = url
                return True
            anchor = self.soup.new_tag("a", href=url)
            anchor.string = url
            self._insert_nodes(start, [anchor])
            return True

        nodes = self._nodes_in_range(start, end)
        if not nodes:
            return False
        self._strip_wrappers([n for n in nodes if self._has_ancestor(n, LINK_TAGS)], LINK_TAGS)
        for node in nodes:
            node.wrap(self.soup.new_tag("a", href=url))
        self._merge_adjacent(LINK_TAGS)
        self.soup.smooth()
        return True

    # --- Insertion and deletion ---

    def _make_page_break(self) -> Tag:
        marker = self.soup.new_tag("div", attrs={
            "class": EditorConstants.PAGE_BREAK_CLASS,
            "style": "page-break-before: always",
        })
        label = self.soup.new_tag("span")
        label.string = EditorConstants.PAGE_BREAK_LABEL
        marker.append(label)
        return marker

    def insert_page_break_marker(self, offset: int) -> int:
        """Insert a page-break marker and an empty paragraph at offset.

        Splits the top-level block holding the caret. Returns the number of
        characters the marker adds to the text projection.
        """
        offset = self._clamp(offset)
        self._wrap_stray_inline()
        marker = self._make_page_break()
        added = self.text_length(marker)
        top = self._top_block_at(offset)
        if top is None:
            self.soup.append(marker)
            self.soup.append(self._empty_paragraph())
            return added

        starts = self._node_starts()
        top_start = starts[id(top)]
        top_end = top_start + self.text_length(top)
        if offset == top_start and top_end > top_start:
            top.insert_before(marker)
            return added

        after = None
        if offset < top_end:
            after = self._split_element(top, offset)
        top.insert_after(marker)
        if after is None:
            marker.insert_after(self._empty_paragraph())
        else:
            after.extract()
            marker.insert_after(after)
        return added

    def _insert_nodes(self, offset: int, new_nodes: list) -> None:
        """Insert nodes at offset, inheriting the formatting on the left."""
        self._split_text_at(offset)
        before = after = None
        pos = 0
        for node in self.text_nodes():
            length = len(node)
            if length and not self._is_layout_whitespace(node):
                if pos + length == offset:
                    before = node
                if pos == offset and after is None:
                    after = node
            pos += length

        if before is not None:
            last = before
            for node in new_nodes:
                last.insert_after(node)
                last = node
        elif after is not None:
            for node in new_nodes:
                after.insert_before(node)
        else:
            block = self._blocks_in_range(offset, offset)[0]
            self._append_to_empty_block(block, new_nodes)

    def _append_to_empty_block(self, block: Tag, new_nodes: list) -> None:
        for br in block.find_all("br"):
            br.extract()
        for node in new_nodes:
            block.append(node)

    def _split_block_at(self, offset: int) -> Tag:
        """Paragraph break at offset; returns the block after the break."""
        block = self._blocks_in_range(offset, offset)[0]
        right = self._split_element(block, offset)
        if right is None:
            right = self.soup.new_tag(block.name, attrs=_copy_attrs(block))
            right.append(self.soup.new_tag("br"))
            block.insert_after(right)
        return right

    def insert_text(self, offset: int, text: str, formats: Optional[dict] = None) -> int:
        """Insert text at offset and return the offset just after it.

        Newlines split the current block. ``formats`` maps format names to
        on/off and is applied to the inserted run only.
        """
        offset = self._clamp(offset)
        if not text:
            return offset
        self._wrap_stray_inline()
        pos = offset
        target = None
        for index, part in enumerate(text.split("\n")):
            if index > 0:
                target = self._split_block_at(pos)
            if not part:
                continue
            node = NavigableString(part)
            if target is not None:
                first = next((n for n in self.text_nodes(target) if len(n)), None)
                if first is not None:
                    first.insert_before(node)
                else:
                    self._append_to_empty_block(target, [node])
                target = None
            else:
                self._insert_nodes(pos, [node])
            for name, enabled in (formats or {}).items():
                if name in FORMAT_TAGS:
                    self._set_format(pos, pos + len(part), name, enabled)
            pos += len(part)
        self.soup.smooth()
        return pos

    def delete_range(self, start: int, end: int) -> bool:
        """Delete text in range, merging the blocks at both ends."""
        start, end = self._normalize_range(start, end)
        if start == end:
            return False
        first = self._blocks_in_range(start, start)[0]
        last = self._blocks_in_range(end, end)[0]
        doomed = [tag for tag, tag_start, tag_end in self._spans(self.layout_blocks())
                  if tag is not first and tag is not last
                  and start <= tag_start and tag_end <= end]
        self._delete_text_in(self.soup, start, end)
        for tag in doomed:
            tag.extract()
        if first is not last and first.parent is not None and last.parent is not None:
            if self._has_text(last):
                for br in first.find_all("br"):
                    br.extract()
            for child in list(last.contents):
                if not (isinstance(child, Tag) and child.name == "br" and self._has_text(first)):
                    first.append(child)
            last_parent = last.parent
            last.extract()
            if last_parent.name in LIST_TAGS and last_parent.find("li") is None:
                last_parent.extract()
        if not self._has_content(first) and first.parent is not None:
            first.append(self.soup.new_tag("br"))
        self._remove_empty_lists()
        self.soup.smooth()
        return True
