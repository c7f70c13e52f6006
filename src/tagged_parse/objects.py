"""Helpers over pdfminer's object model: bounded dereferencing and coercion."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Union

from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfparser import PDFParser
from pdfminer.pdftypes import PDFObjRef
from pdfminer.psexceptions import PSException
from pdfminer.psparser import PSLiteral
from pdfminer.utils import decode_text

from .constants import MAX_REFERENCE_HOPS
from .errors import MalformedDocumentError, UnsupportedFileError

_logger = logging.getLogger(__name__)


def resolve(obj: Any, max_hops: int = MAX_REFERENCE_HOPS) -> Any:
    """Dereference ``obj`` until a concrete value is reached.

    A reference to a missing object resolves to None. A chain that revisits an
    object or is longer than ``max_hops`` raises MalformedDocumentError.
    """
    seen: Set[int] = set()
    while isinstance(obj, PDFObjRef):
        if obj.objid in seen or len(seen) >= max_hops:
            raise MalformedDocumentError(
                f"Reference chain does not terminate at object {obj.objid}"
            )
        seen.add(obj.objid)
        try:
            obj = obj.resolve()
        except PSException as e:
            _logger.debug("Unable to resolve object %s: %s", obj.objid, e)
            return None
    return obj


def object_id(obj: Any) -> Optional[int]:
    """Return the object number of an indirect reference, else None."""
    if isinstance(obj, PDFObjRef):
        return obj.objid
    return None


def name_of(obj: Any) -> Optional[str]:
    """Return the string value of a PDF name, or None if ``obj`` is not one."""
    value = resolve(obj)
    if not isinstance(value, PSLiteral):
        return None
    name = value.name
    if isinstance(name, bytes):
        return name.decode("latin-1")
    return str(name)


def int_of(obj: Any) -> Optional[int]:
    """Return an integer value, or None for anything else."""
    value = resolve(obj)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def text_of_string(obj: Any) -> Optional[str]:
    """Decode a PDF text string (PDFDocEncoding or UTF-16BE with BOM)."""
    value = resolve(obj)
    if isinstance(value, bytes):
        return decode_text(value)
    if isinstance(value, str):
        return value
    return None


def build_page_map(document: PDFDocument) -> Dict[int, int]:
    """Map page object ids to 1-based page numbers in page-tree order."""
    page_ids: List[int] = []
    _collect_page_ids(document.catalog.get("Pages"), page_ids, set())
    return {objid: number for number, objid in enumerate(page_ids, start=1)}


def _collect_page_ids(token: Any, page_ids: List[int], visited: Set[int]) -> None:
    objid = object_id(token)
    if objid is not None:
        if objid in visited:
            return
        visited.add(objid)

    node = resolve(token)
    if not isinstance(node, dict):
        return

    # Intermediate nodes sometimes omit /Type
    node_type = name_of(node.get("Type")) or "Pages"
    if node_type == "Page":
        if objid is not None:
            page_ids.append(objid)
        return

    if node_type == "Pages":
        kids = resolve(node.get("Kids"))
        if isinstance(kids, list):
            for kid in kids:
                _collect_page_ids(kid, page_ids, visited)


@contextmanager
def open_document(pdf_path: Union[str, Path]) -> Iterator[PDFDocument]:
    """Open a PDF for the duration of the block; the file is always closed."""
    pdf_path = Path(pdf_path)
    with open(pdf_path, "rb") as fp:
        try:
            document = PDFDocument(PDFParser(fp))
        except PSException as e:
            raise UnsupportedFileError(
                f"Unable to read {pdf_path.name} as a PDF: {str(e)}"
            )
        yield document
