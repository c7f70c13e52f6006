import pytest
from pdfminer.pdfpage import PDFPage

from tagged_parse import MarkdownParser, ParserConfig
from tagged_parse.errors import MalformedDocumentError, UnsupportedFileError
from tagged_parse.models import SpanRef
from tagged_parse.objects import build_page_map, open_document, resolve
from tagged_parse.spans import build_span_index, index_page
from tagged_parse.structure import StructureTreeReader, has_structure_tree, read_structure_tree
from tagged_parse.text import TextReconstructor


def test_page_map(tagged_pdf):
    with open_document(tagged_pdf) as document:
        assert build_page_map(document) == {3: 1}


def test_reads_simple_tree(tagged_pdf):
    with open_document(tagged_pdf) as document:
        root = read_structure_tree(document)
    assert root.tag == "StructTreeRoot"
    [doc] = root.children
    assert doc.tag == "Document"
    assert [child.tag for child in doc.children] == ["H1", "P"]
    assert doc.children[0].span_refs == [SpanRef(page=1, mcid=0)]
    assert doc.children[1].span_refs == [SpanRef(page=1, mcid=1)]


def test_role_map_and_page_inheritance(tagged_rich_pdf):
    with open_document(tagged_rich_pdf) as document:
        reader = StructureTreeReader(document)
        root = reader.read()
    assert reader.role_map == {"Heading": "H1"}
    doc = root.children[0]
    assert [child.tag for child in doc.children] == ["H1", "L", "Figure"]
    first_item = doc.children[1].children[0]
    assert [child.tag for child in first_item.children] == ["Lbl", "LBody"]
    # The MCR dictionary and bare integers inherit /Pg from Document
    assert first_item.children[1].span_refs == [SpanRef(page=1, mcid=2)]
    assert doc.children[2].alt_text == "Chart"


def test_untagged_has_no_tree(untagged_pdf):
    with open_document(untagged_pdf) as document:
        assert not has_structure_tree(document)
        assert read_structure_tree(document) is None


def test_cyclic_tree_is_rejected(cyclic_tagged_pdf):
    with open_document(cyclic_tagged_pdf) as document:
        assert has_structure_tree(document)
        with pytest.raises(MalformedDocumentError):
            read_structure_tree(document)


def test_span_index(tagged_pdf):
    with open_document(tagged_pdf) as document:
        index = build_span_index(document, show_progress=False)
    assert index.page_numbers == [1]
    assert len(index) == 2
    title = index.lookup(1, 0)
    assert "".join(g.value for g in title.glyphs) == "Title"
    indices = [g.index for g in index.lookup(1, 1).glyphs]
    assert indices == sorted(indices)
    assert min(indices) > max(g.index for g in title.glyphs)
    assert index.lookup(1, 99) is None
    assert index.lookup(2, 0) is None


def test_artifacts_are_not_indexed(tagged_rich_pdf):
    with open_document(tagged_rich_pdf) as document:
        index = build_span_index(document, show_progress=False)
    assert sorted(index.page(1)) == [0, 1, 2, 3, 4, 5]
    assert index.lookup(1, 5).glyphs == []


def test_open_document_rejects_garbage(tmp_path):
    bogus = tmp_path / "bogus.pdf"
    bogus.write_bytes(b"this is not a pdf")
    with pytest.raises(UnsupportedFileError):
        with open_document(bogus):
            pass


def test_index_single_page(tagged_pdf):
    with open_document(tagged_pdf) as document:
        [first] = PDFPage.create_pages(document)
        spans = index_page(1, first)
    assert sorted(spans) == [0, 1]
    assert "".join(g.value for g in spans[1].glyphs) == "Hello world"


def test_child_page_overrides_inherited_page(page_override_pdf):
    with open_document(page_override_pdf) as document:
        assert build_page_map(document) == {3: 1, 5: 2}
        root = read_structure_tree(document)
    document_node, orphan = root.children
    [paragraph] = document_node.children
    assert paragraph.span_refs == [SpanRef(page=2, mcid=0)]
    # The Span below the P inherits the P's page, not the Document's
    assert paragraph.children[0].span_refs == [SpanRef(page=2, mcid=1)]
    # No /Pg on the element or any ancestor
    assert orphan.span_refs == [SpanRef(page=0, mcid=2)]


def test_page_override_text(page_override_pdf):
    parser = MarkdownParser(ParserConfig(show_progress=False))
    assert parser.convert_pdf(page_override_pdf) == "Second page continued\n"


def test_nested_spans_are_indexed(nested_spans_pdf):
    with open_document(nested_spans_pdf) as document:
        [first] = PDFPage.create_pages(document)
        spans = index_page(1, first)
        index = build_span_index(document, show_progress=False)
    assert sorted(spans) == [0, 1, 2]
    outer = spans[0]
    assert "".join(g.value for g in outer.glyphs) == "Outer"
    assert outer.children == [spans[1]]
    assert "".join(g.value for g in spans[1].glyphs) == "Inner"
    assert all(g.page == 1 for g in spans[1].glyphs)

    text = TextReconstructor(index)
    assert text.text_of_refs([SpanRef(page=1, mcid=0)]) == "Outer Inner"
    assert text.text_of_refs([SpanRef(page=1, mcid=1)]) == "Inner"


def test_duplicate_mcid_keeps_last_span(nested_spans_pdf):
    with open_document(nested_spans_pdf) as document:
        index = build_span_index(document, show_progress=False)
    assert TextReconstructor(index).text_of_refs([SpanRef(page=1, mcid=2)]) == "Second"


def test_reference_chains_are_bounded(reference_chain_pdf):
    with open_document(reference_chain_pdf) as document:
        with pytest.raises(MalformedDocumentError):
            resolve(document.catalog["Chain"])
        assert resolve(document.catalog["Chain"], max_hops=64) == 42
        with pytest.raises(MalformedDocumentError):
            resolve(document.catalog["Loop"])
