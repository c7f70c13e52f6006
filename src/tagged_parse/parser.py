import logging
from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional, Union

from pdfminer.layout import LAParams
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfpage import PDFPage
from pydantic import BaseModel

from .constants import MAX_REFERENCE_HOPS
from .errors import MalformedDocumentError, TaggedParseError, UnsupportedFileError
from .layout import LayoutAnalyzer, extract_tables
from .markdown import render
from .models import ConversionUnit
from .objects import build_page_map, open_document
from .spans import build_span_index
from .structure import StructureTreeReader, has_structure_tree
from .tagged import convert_node
from .text import TextReconstructor

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    STRUCTURE_TREE = "structure"
    LAYOUT_ANALYSIS = "layout"


class ParserConfig(BaseModel):
    """Configuration settings for PDF to Markdown conversion."""

    strategy: Literal["auto", "structure", "layout"] = "auto"  # Force a conversion path
    text_order: Literal["stream", "geometric"] = "stream"  # Glyph order for tagged text
    word_margin: float = 0.1  # Word gap as a fraction of glyph size
    line_overlap: float = 0.5  # Vertical overlap needed to share a line
    char_margin: float = 2.0  # pdfminer text line grouping
    line_margin: float = 0.5  # pdfminer text box grouping
    boxes_flow: Optional[float] = 0.5  # pdfminer reading-order weighting; None disables
    detect_tables: bool = False  # Ruled tables via pdfplumber on the layout path
    show_progress: bool = True  # tqdm progress bars
    max_reference_hops: int = MAX_REFERENCE_HOPS  # Bound for indirect reference chains

    def laparams(self) -> LAParams:
        return LAParams(
            line_overlap=self.line_overlap,
            char_margin=self.char_margin,
            line_margin=self.line_margin,
            word_margin=self.word_margin,
            boxes_flow=self.boxes_flow,
        )


def select_strategy(
    document: PDFDocument, max_hops: int = MAX_REFERENCE_HOPS
) -> Strategy:
    """Structure tree when it holds at least one element, layout analysis otherwise."""
    if has_structure_tree(document, max_hops):
        return Strategy.STRUCTURE_TREE
    return Strategy.LAYOUT_ANALYSIS


def validate_pdf_path(pdf_path: Union[str, Path]) -> Path:
    pdf_path = Path(pdf_path)
    if not pdf_path.exists() or not pdf_path.is_file():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")
    if pdf_path.suffix.lower() != ".pdf":
        raise UnsupportedFileError(f"File is not a PDF: {pdf_path}")
    return pdf_path


class MarkdownParser:
    """Convert a PDF into Markdown from its structure tree or its page layout."""

    def __init__(self, config: Optional[ParserConfig] = None) -> None:
        self.config = config or ParserConfig()
        self.last_strategy: Optional[Strategy] = None
        self.last_page_count = 0

    def _resolve_strategy(self, document: PDFDocument) -> Strategy:
        if self.config.strategy != "auto":
            return Strategy(self.config.strategy)
        return select_strategy(document, self.config.max_reference_hops)

    def convert_pdf(self, pdf_path: Union[str, Path]) -> str:
        """Convert the whole PDF and return the Markdown text."""
        return render(self.convert_units(pdf_path))

    def convert_units(self, pdf_path: Union[str, Path]) -> List[ConversionUnit]:
        """Classified units of the whole document in final order."""
        pdf_path = validate_pdf_path(pdf_path)
        try:
            with open_document(pdf_path) as document:
                page_map = build_page_map(document)
                self.last_page_count = len(page_map) or sum(
                    1 for _ in PDFPage.create_pages(document)
                )
                if self.last_page_count == 0:
                    raise MalformedDocumentError(f"No pages found in {pdf_path.name}")

                strategy = self._resolve_strategy(document)
                self.last_strategy = strategy
                logger.info(
                    "Converting %s (%d pages) using %s strategy",
                    pdf_path.name,
                    self.last_page_count,
                    strategy.value,
                )

                if strategy is Strategy.STRUCTURE_TREE:
                    units = self._convert_structure_tree(document, page_map)
                    if units is not None:
                        return units
                    logger.warning(
                        "%s has no structure tree; falling back to layout analysis",
                        pdf_path.name,
                    )
                    self.last_strategy = Strategy.LAYOUT_ANALYSIS
                return self._convert_layout(document, pdf_path)
        except TaggedParseError:
            raise
        except RecursionError as e:
            raise MalformedDocumentError(
                f"Structure of {pdf_path.name} is nested too deeply: {str(e)}"
            ) from e

    def _convert_structure_tree(
        self, document: PDFDocument, page_map: dict
    ) -> Optional[List[ConversionUnit]]:
        root = StructureTreeReader(document, self.config.max_reference_hops).read()
        if root is None:
            return None
        index = build_span_index(
            document, page_map=page_map, show_progress=self.config.show_progress
        )
        text = TextReconstructor(
            index,
            order=self.config.text_order,
            word_margin=self.config.word_margin,
            line_overlap=self.config.line_overlap,
            char_margin=self.config.char_margin,
        )
        return convert_node(root, text)

    def _convert_layout(
        self, document: PDFDocument, pdf_path: Path
    ) -> List[ConversionUnit]:
        tables = extract_tables(pdf_path) if self.config.detect_tables else None
        analyzer = LayoutAnalyzer(
            laparams=self.config.laparams(), show_progress=self.config.show_progress
        )
        return analyzer.convert(document, tables)
