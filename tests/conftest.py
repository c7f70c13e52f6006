from pathlib import Path
from typing import List

import pytest

FONT = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"


def stream(content: bytes) -> bytes:
    return b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream"


def build_pdf(objects: List[bytes]) -> bytes:
    """Serialize objects numbered from 1 with a correct xref table; object 1 is the catalog."""
    out = bytearray(b"%PDF-1.7\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


def page(contents_ref: int, struct_parents: bool = False) -> bytes:
    extra = b" /StructParents 0" if struct_parents else b""
    return (
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792]"
        b" /Resources << /Font << /F1 4 0 R >> >> /Contents %d 0 R" % contents_ref
        + extra
        + b" >>"
    )


def write_pdf(path: Path, objects: List[bytes]) -> Path:
    path.write_bytes(build_pdf(objects))
    return path


@pytest.fixture
def tagged_pdf(tmp_path):
    """One page: H1 "Title" (MCID 0) then P "Hello world" (MCID 1)."""
    content = (
        b"/H1 <</MCID 0>> BDC BT /F1 24 Tf 72 700 Td (Title) Tj ET EMC\n"
        b"/P <</MCID 1>> BDC BT /F1 12 Tf 72 660 Td (Hello world) Tj ET EMC\n"
    )
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R /StructTreeRoot 5 0 R /MarkInfo << /Marked true >> >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        page(9, struct_parents=True),
        FONT,
        b"<< /Type /StructTreeRoot /K 6 0 R >>",
        b"<< /Type /StructElem /S /Document /P 5 0 R /K [7 0 R 8 0 R] >>",
        b"<< /Type /StructElem /S /H1 /P 6 0 R /Pg 3 0 R /K 0 >>",
        b"<< /Type /StructElem /S /P /P 6 0 R /Pg 3 0 R /K 1 >>",
        stream(content),
    ]
    return write_pdf(tmp_path / "tagged.pdf", objects)


@pytest.fixture
def tagged_rich_pdf(tmp_path):
    """Role-mapped heading, page artifact, numbered list and a figure with /Alt.

    Only the Document element carries /Pg; every descendant inherits it.
    """
    content = (
        b"/Heading <</MCID 0>> BDC BT /F1 24 Tf 72 700 Td (Report) Tj ET EMC\n"
        b"/Artifact BMC BT /F1 10 Tf 300 40 Td (Page 1) Tj ET EMC\n"
        b"/Lbl <</MCID 1>> BDC BT /F1 12 Tf 72 650 Td (1.) Tj ET EMC\n"
        b"/LBody <</MCID 2>> BDC BT /F1 12 Tf 90 650 Td (First item) Tj ET EMC\n"
        b"/Lbl <</MCID 3>> BDC BT /F1 12 Tf 72 634 Td (2.) Tj ET EMC\n"
        b"/LBody <</MCID 4>> BDC BT /F1 12 Tf 90 634 Td (Second item) Tj ET EMC\n"
        b"/Figure <</MCID 5>> BDC EMC\n"
    )
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R /StructTreeRoot 5 0 R /MarkInfo << /Marked true >> >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        page(16, struct_parents=True),
        FONT,
        b"<< /Type /StructTreeRoot /K 6 0 R /RoleMap << /Heading /H1 >> >>",
        b"<< /Type /StructElem /S /Document /P 5 0 R /Pg 3 0 R /K [7 0 R 8 0 R 15 0 R] >>",
        b"<< /Type /StructElem /S /Heading /P 6 0 R /K 0 >>",
        b"<< /Type /StructElem /S /L /P 6 0 R /K [9 0 R 10 0 R] >>",
        b"<< /Type /StructElem /S /LI /P 8 0 R /K [11 0 R 12 0 R] >>",
        b"<< /Type /StructElem /S /LI /P 8 0 R /K [13 0 R 14 0 R] >>",
        b"<< /Type /StructElem /S /Lbl /P 9 0 R /K 1 >>",
        b"<< /Type /StructElem /S /LBody /P 9 0 R /K << /Type /MCR /MCID 2 >> >>",
        b"<< /Type /StructElem /S /Lbl /P 10 0 R /K 3 >>",
        b"<< /Type /StructElem /S /LBody /P 10 0 R /K 4 >>",
        b"<< /Type /StructElem /S /Figure /P 6 0 R /Alt (Chart) /K 5 >>",
        stream(content),
    ]
    return write_pdf(tmp_path / "tagged_rich.pdf", objects)


@pytest.fixture
def cyclic_tagged_pdf(tmp_path):
    """A structure element that lists its own parent as a kid."""
    content = b"/P <</MCID 0>> BDC BT /F1 12 Tf 72 700 Td (Loop) Tj ET EMC\n"
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R /StructTreeRoot 5 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        page(8, struct_parents=True),
        FONT,
        b"<< /Type /StructTreeRoot /K 6 0 R >>",
        b"<< /Type /StructElem /S /Sect /P 5 0 R /Pg 3 0 R /K [7 0 R] >>",
        b"<< /Type /StructElem /S /Div /P 6 0 R /K [0 6 0 R] >>",
        stream(content),
    ]
    return write_pdf(tmp_path / "cyclic.pdf", objects)


@pytest.fixture
def untagged_pdf(tmp_path):
    """A 22pt heading above two lines of 12pt body text; no structure tree."""
    content = (
        b"BT /F1 22 Tf 72 700 Td (Introduction) Tj ET\n"
        b"BT /F1 12 Tf 72 650 Td (This is the body text of the untagged sample.) Tj\n"
        b"0 -14 Td (It continues on a second line.) Tj ET\n"
    )
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        page(5),
        FONT,
        stream(content),
    ]
    return write_pdf(tmp_path / "untagged.pdf", objects)


@pytest.fixture
def untagged_table_pdf(tmp_path):
    """A heading above a ruled 2x2 table."""
    content = (
        b"BT /F1 22 Tf 72 700 Td (Inventory) Tj ET\n"
        b"1 w\n"
        b"72 600 m 272 600 l S\n"
        b"72 580 m 272 580 l S\n"
        b"72 560 m 272 560 l S\n"
        b"72 560 m 72 600 l S\n"
        b"172 560 m 172 600 l S\n"
        b"272 560 m 272 600 l S\n"
        b"BT /F1 12 Tf 80 586 Td (Name) Tj ET\n"
        b"BT /F1 12 Tf 180 586 Td (Qty) Tj ET\n"
        b"BT /F1 12 Tf 80 566 Td (Apple) Tj ET\n"
        b"BT /F1 12 Tf 180 566 Td (3) Tj ET\n"
    )
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        page(5),
        FONT,
        stream(content),
    ]
    return write_pdf(tmp_path / "table.pdf", objects)


@pytest.fixture
def empty_pages_pdf(tmp_path):
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [] /Count 0 >>",
    ]
    return write_pdf(tmp_path / "empty.pdf", objects)


@pytest.fixture
def page_override_pdf(tmp_path):
    """Two pages. Document points at page 1 but its P child overrides /Pg with
    page 2, and the P's Span child inherits that. A second root element has no
    /Pg anywhere above it."""
    first = b"/P <</MCID 0>> BDC BT /F1 12 Tf 72 700 Td (Wrong page) Tj ET EMC\n"
    second = (
        b"/P <</MCID 0>> BDC BT /F1 12 Tf 72 700 Td (Second page) Tj ET EMC\n"
        b"/Span <</MCID 1>> BDC BT /F1 12 Tf 72 680 Td (continued) Tj ET EMC\n"
    )
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R /StructTreeRoot 6 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R 5 0 R] /Count 2 >>",
        page(11, struct_parents=True),
        FONT,
        page(12, struct_parents=True),
        b"<< /Type /StructTreeRoot /K [7 0 R 10 0 R] >>",
        b"<< /Type /StructElem /S /Document /P 6 0 R /Pg 3 0 R /K [8 0 R] >>",
        b"<< /Type /StructElem /S /P /P 7 0 R /Pg 5 0 R /K [0 9 0 R] >>",
        b"<< /Type /StructElem /S /Span /P 8 0 R /K 1 >>",
        b"<< /Type /StructElem /S /P /P 6 0 R /K 2 >>",
        stream(first),
        stream(second),
    ]
    return write_pdf(tmp_path / "page_override.pdf", objects)


@pytest.fixture
def nested_spans_pdf(tmp_path):
    """MCID 1 is opened inside MCID 0; MCID 2 is used twice on the page."""
    content = (
        b"/Span <</MCID 0>> BDC BT /F1 12 Tf 72 700 Td (Outer) Tj ET\n"
        b"/Span <</MCID 1>> BDC BT /F1 12 Tf 120 700 Td (Inner) Tj ET EMC EMC\n"
        b"/P <</MCID 2>> BDC BT /F1 12 Tf 72 660 Td (First) Tj ET EMC\n"
        b"/P <</MCID 2>> BDC BT /F1 12 Tf 72 640 Td (Second) Tj ET EMC\n"
    )
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        page(5),
        FONT,
        stream(content),
    ]
    return write_pdf(tmp_path / "nested_spans.pdf", objects)


@pytest.fixture
def reference_chain_pdf(tmp_path):
    """The catalog's /Chain is a run of 40 references ending in 42; /Loop is a
    pair of references that point at each other."""
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R /Chain 3 0 R /Loop 43 0 R >>",
        b"<< /Type /Pages /Kids [] /Count 0 >>",
    ]
    objects += [b"%d 0 R" % (number + 1) for number in range(3, 42)]
    objects += [b"42", b"44 0 R", b"43 0 R"]
    return write_pdf(tmp_path / "reference_chain.pdf", objects)
