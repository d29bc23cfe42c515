"""Tests for the HTML tree and container-format structure building."""

from doc_translator.parsing.containers import (
    BREAK_AFTER,
    BREAK_BEFORE,
    build_structure_from_html,
    element_text,
    has_page_break,
    node_to_element,
    page_break_decision,
    split_page_texts,
)
from doc_translator.parsing.html_tree import parse_html, parse_inline_style
from doc_translator.parsing.models import PAGE_BREAK, DocumentElement, ElementType


def table_html(rows: int) -> str:
    body = "".join(f"<tr><td>r{i}</td><td>v{i}</td></tr>" for i in range(rows))
    return f"<table>{body}</table>"


class TestParseHtml:
    """Tests for parse_html and HtmlNode."""

    def test_nested_elements(self):
        """Test that nesting and attributes are preserved."""
        root = parse_html('<div class="a b"><p id="x">Hello <b>bold</b></p></div>')
        div = root.elements()[0]
        assert div.tag == "div"
        assert div.classes == {"a", "b"}
        paragraph = div.elements()[0]
        assert paragraph.attrs == {"id": "x"}
        assert paragraph.text_content() == "Hello bold"

    def test_whitespace_collapsed(self):
        """Test that runs of whitespace collapse to single spaces."""
        root = parse_html("<p>  one\n   two\t three  </p>")
        assert root.elements()[0].text_content() == "one two three"

    def test_unclosed_and_stray_tags(self):
        """Test that sloppy markup still builds a usable tree."""
        root = parse_html("<p>first<p>second</span></p><br><p>third")
        assert [n.tag for n in root.find_all("p")] == ["p", "p", "p"]
        assert root.text_content() == "firstsecond third"

    def test_void_elements_have_no_children(self):
        """Test that void elements do not swallow following content."""
        root = parse_html('<p>a<img src="x.png">b</p>')
        paragraph = root.elements()[0]
        img = paragraph.find_all("img")[0]
        assert img.children == []
        assert paragraph.text_content() == "ab"

    def test_char_references(self):
        """Test that entities are decoded."""
        root = parse_html("<p>Fish &amp; chips</p>")
        assert root.text_content() == "Fish & chips"

    def test_inline_style(self):
        """Test that style declarations are parsed and normalised."""
        assert parse_inline_style("Text-Align: Center; font-size:12pt;;bogus") == {
            "text-align": "center",
            "font-size": "12pt",
        }


class TestNodeToElement:
    """Tests for node_to_element function."""

    def _element(self, html: str) -> DocumentElement | None:
        return node_to_element(parse_html(html).elements()[0])

    def test_heading_levels(self):
        """Test that h1-h3 map to their level and deeper headings to level 3."""
        assert self._element("<h1>A</h1>").type == ElementType.HEADING1
        assert self._element("<h2>A</h2>").type == ElementType.HEADING2
        assert self._element("<h5>A</h5>").type == ElementType.HEADING3

    def test_paragraph_style(self):
        """Test that inline alignment and pixel sizes are carried over."""
        element = self._element(
            '<p style="text-align: center; font-size: 16px; font-weight: bold">Hi</p>'
        )
        assert element.type == ElementType.PARAGRAPH
        assert element.style.alignment == "center"
        assert element.style.font_size == 12.0
        assert element.style.font_weight == "bold"

    def test_point_sizes_kept(self):
        """Test that point sizes are used unchanged."""
        assert self._element('<p style="font-size: 11pt">Hi</p>').style.font_size == 11.0

    def test_malformed_font_size_ignored(self):
        """Test that a size without digits is dropped instead of failing."""
        assert self._element('<p style="font-size: .pt">Hi</p>').style.font_size is None
        assert self._element('<p style="font-size: .5pt">Hi</p>').style.font_size == 0.5

    def test_title_class(self):
        """Test that an h1 of class title becomes a title element."""
        element = self._element('<h1 class="title">Cover</h1>')
        assert element.type == ElementType.TITLE
        assert element.style.level == 1

    def test_empty_blocks_dropped(self):
        """Test that blocks without text produce no element."""
        assert self._element("<p>   </p>") is None
        assert self._element("<h1></h1>") is None
        assert self._element("<ul></ul>") is None

    def test_table(self):
        """Test that rows and header cells are recognised."""
        element = self._element(
            "<table><tr><th>Name</th><th>Qty</th></tr><tr><td>Pen</td><td>2</td></tr></table>"
        )
        assert element.type == ElementType.TABLE
        assert element.style.is_header is True
        assert [c.content for c in element.children[1].children] == ["Pen", "2"]
        assert element.children[0].children[0].style.is_header is True

    def test_nested_list_flattened(self):
        """Test that nested lists become deeper-level items of the same list."""
        element = self._element("<ol><li>one<ul><li>inner</li></ul></li><li>two</li></ol>")
        assert element.type == ElementType.LIST
        assert element.style.list_type == "ordered"
        assert [(i.content, i.style.level) for i in element.children] == [
            ("one", 1),
            ("inner", 2),
            ("two", 1),
        ]

    def test_image(self):
        """Test that images keep their alt text."""
        element = self._element('<img src="a.png" alt="Logo">')
        assert element.type == ElementType.IMAGE
        assert element.content == "Logo"


class TestPageBreaks:
    """Tests for has_page_break and page_break_decision."""

    def test_explicit_indicators(self):
        """Test each supported page-break indicator."""
        for html in [
            '<div style="page-break-before: always"></div>',
            '<div style="page-break-after: always"></div>',
            '<div style="break-before: page"></div>',
            '<div class="page-break"></div>',
            '<div class="pagebreak"></div>',
            "<div data-page-break></div>",
        ]:
            assert has_page_break(parse_html(html).elements()[0]), html

    def test_plain_div(self):
        """Test that an ordinary div is not a page break."""
        assert not has_page_break(parse_html('<div class="note"></div>').elements()[0])

    def test_heading1_breaks_before(self):
        """Test that a level-1 heading starts a page."""
        element = DocumentElement(type=ElementType.HEADING1, content="A")
        assert page_break_decision(element) == BREAK_BEFORE
        title = DocumentElement(type=ElementType.TITLE, content="A")
        assert page_break_decision(title) == BREAK_BEFORE

    def test_long_table_breaks_after(self):
        """Test that only tables over the row limit end a page."""
        long_table = node_to_element(parse_html(table_html(11)).elements()[0])
        short_table = node_to_element(parse_html(table_html(10)).elements()[0])
        assert page_break_decision(long_table) == BREAK_AFTER
        assert page_break_decision(short_table) is None

    def test_paragraph_never_breaks(self):
        """Test that paragraphs do not force a break."""
        element = DocumentElement(type=ElementType.PARAGRAPH, content="A")
        assert page_break_decision(element) is None


class TestElementText:
    """Tests for element_text function."""

    def test_list_rendering(self):
        """Test that lists render with bullets, numbers and indentation."""
        ordered = node_to_element(parse_html("<ol><li>a</li><li>b</li></ol>").elements()[0])
        unordered = node_to_element(
            parse_html("<ul><li>a<ul><li>b</li></ul></li></ul>").elements()[0]
        )
        assert element_text(ordered) == "1. a\n2. b"
        assert element_text(unordered) == "- a\n  - b"

    def test_table_rendering(self):
        """Test that tables render as pipe-separated rows."""
        table = node_to_element(parse_html(table_html(2)).elements()[0])
        assert element_text(table) == "r0 | v0\nr1 | v1"


class TestBuildStructureFromHtml:
    """Tests for build_structure_from_html function."""

    def test_heading1_starts_new_page(self):
        """Test that each level-1 heading opens a page."""
        document = build_structure_from_html(
            "<h1>Intro</h1><p>Text</p><h1>Next</h1><p>More</p>"
        )
        assert document.metadata.page_count == 2
        assert document.text == f"Intro\n\nText{PAGE_BREAK}Next\n\nMore"

    def test_leading_heading_does_not_add_empty_page(self):
        """Test that a heading at the very start does not create a blank page."""
        document = build_structure_from_html("<h1>Only</h1>")
        assert document.metadata.page_count == 1

    def test_page_break_div(self):
        """Test that an explicit page-break block splits pages."""
        document = build_structure_from_html(
            '<p>A</p><div style="page-break-before: always"></div><p>B</p>'
        )
        assert split_page_texts(document.text) == ["A", "B"]

    def test_page_break_container_keeps_children(self):
        """Test that content inside a page-break container is kept."""
        document = build_structure_from_html('<p>A</p><div class="page-break"><p>B</p></div>')
        assert document.text == f"A{PAGE_BREAK}B"

    def test_long_table_ends_page(self):
        """Test that a table over the row limit is followed by a new page."""
        document = build_structure_from_html(table_html(11) + "<p>After</p>")
        assert document.metadata.page_count == 2
        assert document.pages[0].elements[0].type == ElementType.TABLE
        assert document.pages[1].elements[0].content == "After"

    def test_short_table_stays_on_page(self):
        """Test that a short table does not break the page."""
        document = build_structure_from_html(table_html(10) + "<p>After</p>")
        assert document.metadata.page_count == 1

    def test_element_indices_per_page(self):
        """Test that element indices restart on every page."""
        document = build_structure_from_html("<h1>A</h1><p>x</p><h1>B</h1><p>y</p>")
        for page in document.pages:
            assert [e.element_index for e in page.elements] == [0, 1]
        assert [p.metadata.page_number for p in document.pages] == [1, 2]

    def test_loose_text_is_a_paragraph(self):
        """Test that bare text between blocks becomes a paragraph."""
        document = build_structure_from_html("<body>loose text<p>para</p></body>")
        assert [e.content for e in document.elements] == ["loose text", "para"]

    def test_empty_html(self):
        """Test that an empty document has no pages."""
        document = build_structure_from_html("")
        assert document.metadata.page_count == 0
        assert document.text == ""
        assert split_page_texts(document.text) == []

    def test_metadata(self):
        """Test that metadata is attached to the structure."""
        document = build_structure_from_html("<p>x</p>", metadata={"title": "Doc", "author": "Ana"})
        assert document.metadata.title == "Doc"
        assert document.metadata.author == "Ana"
