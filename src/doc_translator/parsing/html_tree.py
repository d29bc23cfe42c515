"""A small standalone HTML tree: tag, attributes, text and children."""

import re
from dataclasses import dataclass, field
from html.parser import HTMLParser

VOID_ELEMENTS = {"br", "hr", "img", "meta", "link", "input", "col", "wbr", "source"}

TEXT_NODE = "#text"
ROOT_NODE = "#root"

_WHITESPACE = re.compile(r"\s+")


@dataclass
class HtmlNode:
    """One element (or text run) of a parsed HTML document."""

    tag: str
    attrs: dict[str, str] = field(default_factory=dict)
    children: list["HtmlNode"] = field(default_factory=list)
    text: str = ""

    @property
    def is_text(self) -> bool:
        return self.tag == TEXT_NODE

    @property
    def style(self) -> dict[str, str]:
        return parse_inline_style(self.attrs.get("style", ""))

    @property
    def classes(self) -> set[str]:
        return set(self.attrs.get("class", "").split())

    def text_content(self) -> str:
        """Concatenated text of the subtree with whitespace collapsed."""
        return _WHITESPACE.sub(" ", self._raw_text()).strip()

    def _raw_text(self) -> str:
        if self.is_text:
            return self.text
        if self.tag == "br":
            return "\n"
        return "".join(child._raw_text() for child in self.children)

    def elements(self) -> list["HtmlNode"]:
        """Child element nodes, skipping text runs."""
        return [child for child in self.children if not child.is_text]

    def find_all(self, tag: str) -> list["HtmlNode"]:
        """Descendants with the given tag, in document order."""
        found = []
        for child in self.elements():
            if child.tag == tag:
                found.append(child)
            found.extend(child.find_all(tag))
        return found


def parse_inline_style(style: str) -> dict[str, str]:
    """Parse a ``style`` attribute into a property -> value mapping."""
    declarations: dict[str, str] = {}
    for declaration in style.split(";"):
        name, sep, value = declaration.partition(":")
        if sep and name.strip():
            declarations[name.strip().lower()] = value.strip().lower()
    return declarations


class _TreeBuilder(HTMLParser):
    """Builds an HtmlNode tree, tolerating unclosed and stray end tags."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.root = HtmlNode(tag=ROOT_NODE)
        self._stack: list[HtmlNode] = [self.root]

    def handle_starttag(self, tag, attrs):
        node = HtmlNode(tag=tag, attrs={k: v or "" for k, v in attrs})
        self._stack[-1].children.append(node)
        if tag not in VOID_ELEMENTS:
            self._stack.append(node)

    def handle_startendtag(self, tag, attrs):
        self._stack[-1].children.append(
            HtmlNode(tag=tag, attrs={k: v or "" for k, v in attrs})
        )

    def handle_endtag(self, tag):
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data):
        if data:
            self._stack[-1].children.append(HtmlNode(tag=TEXT_NODE, text=data))


def parse_html(html: str) -> HtmlNode:
    """Parse an HTML string into a tree rooted at a ``#root`` node."""
    builder = _TreeBuilder()
    builder.feed(html)
    builder.close()
    return builder.root
