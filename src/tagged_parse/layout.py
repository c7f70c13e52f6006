"""Layout-analysis fallback for documents without a usable structure tree.

pdfminer segments each page into text boxes and orders them; this module
turns the boxes into ``TextBlock`` objects and classifies every block as a
heading, a list or a paragraph by comparing its typography with the
document-wide median font size.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import pdfplumber
from pdfminer.converter import PDFPageAggregator
from pdfminer.layout import LAParams, LTAnno, LTChar, LTPage, LTTextBox, LTTextLine
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.psexceptions import PSException
from pydantic import BaseModel
from tqdm import tqdm

from .constants import (
    BOLD_HEADING_MAX_LINES,
    BOLD_MARKERS,
    BULLET_PATTERN,
    DEFAULT_MEDIAN_FONT_SIZE,
    HEADING_MAX_CHARS,
    HEADING_RATIO_H1,
    HEADING_RATIO_H2,
    HEADING_RATIO_H3,
    NUMBERED_PATTERN,
)
from .markdown import table_units
from .models import (
    BulletItem,
    ConversionUnit,
    Glyph,
    Heading,
    ListStart,
    NumberedItem,
    Paragraph,
    TextBlock,
)

_logger = logging.getLogger(__name__)

Rect = Tuple[float, float, float, float]


def _is_bold_font(name: str) -> bool:
    """Heuristic to detect bold fonts from a font name string."""
    name_low = name.lower()
    return any(mark in name_low for mark in BOLD_MARKERS)


def _iter_chars(item: Any) -> Iterator[LTChar]:
    """Yield every LTChar below a pdfminer layout item."""
    if isinstance(item, LTChar):
        yield item
        return
    try:
        children = iter(item)
    except TypeError:
        return
    for child in children:
        yield from _iter_chars(child)


# ---------- Typography measures ----------


def median_font_size(sizes: Iterable[float]) -> float:
    """Median of all positive sizes; 12.0 when there are none."""
    ordered = sorted(size for size in sizes if size > 0)
    if not ordered:
        return DEFAULT_MEDIAN_FONT_SIZE
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2.0
    return ordered[mid]


def predominant_font_size(glyphs: Sequence[Glyph]) -> float:
    """Most frequent size rounded to 0.1; ties go to the first seen."""
    counts = Counter(round(g.size, 1) for g in glyphs if g.size > 0)
    if not counts:
        return DEFAULT_MEDIAN_FONT_SIZE
    return counts.most_common(1)[0][0]


def is_predominantly_bold(glyphs: Sequence[Glyph]) -> bool:
    if not glyphs:
        return False
    bold = sum(1 for g in glyphs if _is_bold_font(g.fontname))
    return bold > len(glyphs) / 2


# ---------- Block classification ----------


def heading_level(block: TextBlock, median_size: float) -> int:
    """Heading level 1-4 for short, large or bold blocks; 0 otherwise."""
    glyphs = block.glyphs
    if not glyphs or len(block.text) >= HEADING_MAX_CHARS:
        return 0

    ratio = predominant_font_size(glyphs) / median_size
    bold = is_predominantly_bold(glyphs)

    if ratio >= HEADING_RATIO_H1:
        return 1
    if ratio >= HEADING_RATIO_H2:
        return 2
    if ratio >= HEADING_RATIO_H3 and bold:
        return 3
    if bold and len(block.lines) <= BOLD_HEADING_MAX_LINES:
        return 4
    return 0


def classify_list(block: TextBlock) -> Optional[List[ConversionUnit]]:
    """List units when the block reads as a bullet or numbered list, else None."""
    lines = [block.line_text(i) for i in range(len(block.lines))]
    if not lines:
        return None

    if len(lines) == 1:
        line = lines[0]
        if BULLET_PATTERN.match(line):
            return [ListStart(), BulletItem(text=BULLET_PATTERN.sub("", line, count=1))]
        if NUMBERED_PATTERN.match(line):
            return [
                ListStart(),
                NumberedItem(index=1, text=NUMBERED_PATTERN.sub("", line, count=1)),
            ]
        return None

    bullet_count = sum(1 for line in lines if BULLET_PATTERN.match(line))
    numbered_count = sum(1 for line in lines if NUMBERED_PATTERN.match(line))

    if 2 * bullet_count >= len(lines):
        units: List[ConversionUnit] = [ListStart()]
        units.extend(
            BulletItem(text=BULLET_PATTERN.sub("", line, count=1)) for line in lines
        )
        return units

    if 2 * numbered_count >= len(lines):
        units = [ListStart()]
        units.extend(
            NumberedItem(index=number, text=NUMBERED_PATTERN.sub("", line, count=1))
            for number, line in enumerate(lines, start=1)
        )
        return units

    return None


def classify_block(block: TextBlock, median_size: float) -> List[ConversionUnit]:
    """Classify one block independently of its neighbours."""
    if not block.lines:
        return []

    flat = block.text.replace("\n", " ").strip()
    level = heading_level(block, median_size)
    if level and flat:
        return [Heading(level=level, text=flat)]

    list_units = classify_list(block)
    if list_units is not None:
        return list_units

    if not flat:
        return []
    return [Paragraph(text=flat)]


# ---------- pdfminer layout adapters ----------


def _line_words(line: LTTextLine) -> List[List[Glyph]]:
    words: List[List[Glyph]] = []
    current: List[Glyph] = []
    for item in line:
        text = item.get_text() if isinstance(item, (LTChar, LTAnno)) else ""
        if isinstance(item, LTAnno) or not text.strip():
            if current:
                words.append(current)
            current = []
            continue
        current.append(Glyph.from_char(item))
    if current:
        words.append(current)
    return words


def block_from_textbox(box: LTTextBox, rank: int) -> TextBlock:
    lines: List[List[List[Glyph]]] = []
    for line in box:
        if isinstance(line, LTTextLine):
            words = _line_words(line)
            if words:
                lines.append(words)
    return TextBlock(lines=lines, rank=rank, bbox=tuple(float(v) for v in box.bbox))


def blocks_from_layout(layout: LTPage) -> List[TextBlock]:
    """Text boxes of a page as TextBlocks ranked in reading order."""
    boxes = [element for element in layout if isinstance(element, LTTextBox)]
    # analyze() assigns box.index only when boxes_flow is enabled
    if boxes and all(box.index >= 0 for box in boxes):
        boxes.sort(key=lambda box: box.index)
    return [block_from_textbox(box, rank) for rank, box in enumerate(boxes)]


def iter_layouts(
    document: PDFDocument, laparams: LAParams
) -> Iterator[Tuple[int, LTPage]]:
    """Analyzed layout of every page; pages pdfminer cannot render are skipped."""
    rsrcmgr = PDFResourceManager()
    device = PDFPageAggregator(rsrcmgr, laparams=laparams)
    interpreter = PDFPageInterpreter(rsrcmgr, device)
    for page_number, page in enumerate(PDFPage.create_pages(document), start=1):
        try:
            interpreter.process_page(page)
        except PSException as e:
            _logger.warning("Skipping page %d: %s", page_number, e)
            continue
        yield page_number, device.get_result()


class PageTable(BaseModel):
    """A ruled table found by pdfplumber, in pdfminer coordinates."""

    bbox: Rect
    rows: List[List[str]]


def _plumber_to_miner_bbox(bbox: Rect, page_height: float) -> Rect:
    x0, top, x1, bottom = bbox
    return (float(x0), float(page_height - bottom), float(x1), float(page_height - top))


def _rects_overlap(a: Rect, b: Rect) -> bool:
    """True if two rectangles overlap; touching edges do not count."""
    return not (a[2] <= b[0] or a[0] >= b[2] or a[3] <= b[1] or a[1] >= b[3])


def extract_tables(pdf_path: Path) -> Dict[int, List[PageTable]]:
    """Collect ruled tables per 1-based page number via pdfplumber."""
    tables: Dict[int, List[PageTable]] = {}
    with pdfplumber.open(str(pdf_path)) as plumber_pdf:
        for page_number, plumber_page in enumerate(plumber_pdf.pages, start=1):
            page_tables: List[PageTable] = []
            for table in plumber_page.find_tables():
                content = table.extract()
                if not content:
                    continue
                rows = [["" if cell is None else str(cell) for cell in row] for row in content]
                page_tables.append(
                    PageTable(
                        bbox=_plumber_to_miner_bbox(table.bbox, float(plumber_page.height)),
                        rows=rows,
                    )
                )
            if page_tables:
                tables[page_number] = page_tables
    return tables


class LayoutAnalyzer:
    """Two-phase conversion: measure the median size, then classify each page."""

    def __init__(
        self,
        laparams: Optional[LAParams] = None,
        show_progress: bool = True,
    ) -> None:
        self.laparams = laparams or LAParams()
        self.show_progress = show_progress

    def convert(
        self,
        document: PDFDocument,
        tables: Optional[Dict[int, List[PageTable]]] = None,
    ) -> List[ConversionUnit]:
        layouts = list(iter_layouts(document, self.laparams))
        _logger.info("Analyzed layout of %d pages", len(layouts))

        # Phase 1: one baseline for the whole document
        median_size = median_font_size(
            float(char.size) for _, layout in layouts for char in _iter_chars(layout)
        )
        _logger.debug("Median font size: %.2f", median_size)

        # Phase 2
        units: List[ConversionUnit] = []
        tables = tables or {}
        for page_number, layout in tqdm(
            layouts, desc="Classifying page blocks", disable=not self.show_progress
        ):
            units.extend(
                self.convert_page(layout, median_size, tables.get(page_number, []))
            )
        return units

    def convert_page(
        self,
        layout: LTPage,
        median_size: float,
        tables: Sequence[PageTable] = (),
    ) -> List[ConversionUnit]:
        blocks = blocks_from_layout(layout)
        if not blocks and not tables:
            return []
        if tables:
            table_boxes = [table.bbox for table in tables]
            blocks = [
                block
                for block in blocks
                if not any(_rects_overlap(block.bbox, tb) for tb in table_boxes)
            ]
        return self.classify_blocks(blocks, median_size, tables)

    @staticmethod
    def classify_blocks(
        blocks: Sequence[TextBlock],
        median_size: float,
        tables: Sequence[PageTable] = (),
    ) -> List[ConversionUnit]:
        """Classify ranked blocks; tables go before the first block below their top."""
        pending = sorted(tables, key=lambda table: -table.bbox[3])
        units: List[ConversionUnit] = []
        for block in sorted(blocks, key=lambda b: b.rank):
            while pending and pending[0].bbox[3] >= block.bbox[3]:
                units.extend(table_units(pending.pop(0).rows))
            units.extend(classify_block(block, median_size))
        for table in pending:
            units.extend(table_units(table.rows))
        return units
