"""Content-span index: page-scoped MCID -> marked-content span with its glyphs."""

import logging
from typing import Any, Dict, List, Optional

from pdfminer.converter import PDFLayoutAnalyzer
from pdfminer.layout import LTChar
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.psexceptions import PSException
from pdfminer.psparser import PSLiteral
from tqdm import tqdm

from .models import Glyph, MarkedSpan
from .objects import build_page_map, int_of, name_of, text_of_string

_logger = logging.getLogger(__name__)


class MarkedContentRecorder(PDFLayoutAnalyzer):
    """pdfminer device that files every rendered glyph under its open span."""

    def __init__(self, rsrcmgr: PDFResourceManager, pageno: int = 1) -> None:
        super().__init__(rsrcmgr, pageno=pageno, laparams=None)
        self.spans: Dict[int, MarkedSpan] = {}
        self._open: List[MarkedSpan] = []
        self._emitted = 0

    def begin_page(self, page: PDFPage, ctm: Any) -> None:
        super().begin_page(page, ctm)
        self.spans = {}
        self._open = []
        self._emitted = 0

    def begin_tag(self, tag: PSLiteral, props: Any = None) -> None:
        tag_name = name_of(tag) or ""
        span = MarkedSpan(tag=tag_name, artifact=tag_name == "Artifact")

        # Named property lists live in page resources and carry no MCID here
        if isinstance(props, dict):
            mcid = int_of(props.get("MCID"))
            if mcid is not None and mcid >= 0:
                span.mcid = mcid
            span.actual_text = text_of_string(props.get("ActualText"))

        if self._open:
            self._open[-1].children.append(span)
        self._open.append(span)

        # Duplicate ids on one page: the most recently scanned span wins
        if span.mcid is not None:
            if span.mcid in self.spans:
                _logger.debug(
                    "Duplicate MCID %d on page %d; keeping the later span",
                    span.mcid,
                    self.pageno,
                )
            self.spans[span.mcid] = span

    def end_tag(self) -> None:
        if self._open:
            self._open.pop()
        else:
            _logger.debug("Unbalanced EMC on page %d", self.pageno)

    def render_char(self, *args: Any, **kwargs: Any) -> float:
        adv = super().render_char(*args, **kwargs)
        char = self.cur_item._objs[-1]
        if self._open and isinstance(char, LTChar):
            self._open[-1].glyphs.append(Glyph.from_char(char, self._emitted, self.pageno))
        self._emitted += 1
        return adv


class SpanIndex:
    """Read-only lookup of marked-content spans keyed by (page, mcid)."""

    def __init__(self) -> None:
        self._pages: Dict[int, Dict[int, MarkedSpan]] = {}

    def add_page(self, page_number: int, spans: Dict[int, MarkedSpan]) -> None:
        self._pages[page_number] = spans

    def lookup(self, page_number: int, mcid: int) -> Optional[MarkedSpan]:
        """Return the span or None when the page or id was never indexed."""
        return self._pages.get(page_number, {}).get(mcid)

    def page(self, page_number: int) -> Dict[int, MarkedSpan]:
        return self._pages.get(page_number, {})

    @property
    def page_numbers(self) -> List[int]:
        return sorted(self._pages)

    def __len__(self) -> int:
        return sum(len(spans) for spans in self._pages.values())


def index_page(
    page_number: int, page: PDFPage, rsrcmgr: Optional[PDFResourceManager] = None
) -> Dict[int, MarkedSpan]:
    """Identified spans of one page; a page that fails to render yields what was read."""
    rsrcmgr = rsrcmgr or PDFResourceManager()
    device = MarkedContentRecorder(rsrcmgr, pageno=page_number)
    interpreter = PDFPageInterpreter(rsrcmgr, device)
    try:
        interpreter.process_page(page)
    except PSException as e:
        _logger.warning("Failed to index marked content on page %d: %s", page_number, e)
    return device.spans


def build_span_index(
    document: PDFDocument,
    page_map: Optional[Dict[int, int]] = None,
    show_progress: bool = True,
) -> SpanIndex:
    """Scan every page's content stream and index all identified spans.

    Page numbers come from ``page_map`` (page object id -> 1-based number) so
    they agree with the page references of the structure tree.
    """
    if page_map is None:
        page_map = build_page_map(document)

    index = SpanIndex()
    rsrcmgr = PDFResourceManager()

    pages = list(PDFPage.create_pages(document))
    for position, page in enumerate(
        tqdm(pages, desc="Indexing marked content", disable=not show_progress),
        start=1,
    ):
        page_number = page_map.get(page.pageid, position)
        index.add_page(page_number, index_page(page_number, page, rsrcmgr))

    _logger.info("Indexed %d marked-content spans on %d pages", len(index), len(pages))
    return index
