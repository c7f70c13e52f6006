"""Reads the logical structure tree (StructTreeRoot) into StructureNode objects.

Structure elements point at page objects rather than page numbers, and their
leaves point at marked-content identifiers (MCIDs) that are only unique within
one page. The reader resolves both so every leaf ends up as a ``SpanRef`` the
content-span index can answer.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from pdfminer.pdfdocument import PDFDocument

from .constants import MAX_REFERENCE_HOPS, UNRESOLVED_PAGE
from .errors import MalformedDocumentError
from .models import SpanRef, StructureNode
from .objects import build_page_map, int_of, name_of, object_id, resolve, text_of_string

_logger = logging.getLogger(__name__)

ROOT_TAG = "StructTreeRoot"


class StructureTreeReader:
    """Builds the in-memory structure tree of one document."""

    def __init__(
        self, document: PDFDocument, max_hops: int = MAX_REFERENCE_HOPS
    ) -> None:
        self.document = document
        self.max_hops = max_hops
        self.role_map: Dict[str, str] = {}
        self.page_map: Dict[int, int] = {}

    def _resolve(self, obj: Any) -> Any:
        return resolve(obj, self.max_hops)

    def root_dict(self) -> Optional[Dict[str, Any]]:
        """Return the resolved StructTreeRoot dictionary, or None."""
        token = self.document.catalog.get("StructTreeRoot")
        if token is None:
            return None
        root = self._resolve(token)
        return root if isinstance(root, dict) else None

    def read(self) -> Optional[StructureNode]:
        """Return the root StructureNode, or None if there is no StructTreeRoot."""
        tree = self.root_dict()
        if tree is None:
            return None

        self.page_map = build_page_map(self.document)
        self.role_map = self.parse_role_map(tree)

        root = StructureNode(tag=ROOT_TAG)
        if "K" in tree:
            self._walk(tree["K"], root, UNRESOLVED_PAGE, set())

        _logger.info(
            "Read structure tree with %d elements", sum(1 for _ in root.iter_nodes()) - 1
        )
        return root

    def parse_role_map(self, tree: Dict[str, Any]) -> Dict[str, str]:
        role_map: Dict[str, str] = {}
        table = self._resolve(tree.get("RoleMap"))
        if not isinstance(table, dict):
            return role_map
        for custom, target in table.items():
            canonical = name_of(self._resolve(target))
            if canonical is not None:
                role_map[str(custom)] = canonical
        return role_map

    def has_structure_elements(self) -> bool:
        """True if at least one dictionary with /S is reachable through /K."""
        tree = self.root_dict()
        if tree is None or "K" not in tree:
            return False
        return self._find_element(tree["K"], set())

    def _find_element(self, token: Any, visited: Set[int]) -> bool:
        objid = object_id(token)
        if objid is not None:
            if objid in visited:
                return False
            visited.add(objid)

        value = self._resolve(token)
        if isinstance(value, list):
            return any(self._find_element(item, visited) for item in value)
        if isinstance(value, dict):
            if "S" in value:
                return True
            if "K" in value:
                return self._find_element(value["K"], visited)
        return False

    def _page_number(self, element: Dict[str, Any], fallback: int) -> int:
        if "Pg" not in element:
            return fallback
        objid = object_id(element["Pg"])
        if objid is None:
            return fallback
        return self.page_map.get(objid, fallback)

    def _walk(
        self,
        token: Any,
        parent: StructureNode,
        page_number: int,
        ancestors: Set[int],
    ) -> None:
        objid = object_id(token)
        value = self._resolve(token)

        if isinstance(value, list):
            for item in value:
                self._walk(item, parent, page_number, ancestors)
            return

        # Bare integer kid: MCID on the inherited page
        if isinstance(value, int) and not isinstance(value, bool):
            parent.span_refs.append(SpanRef(page=page_number, mcid=value))
            return

        if not isinstance(value, dict):
            return

        node_page = self._page_number(value, page_number)

        if "S" in value:
            if objid is not None and objid in ancestors:
                raise MalformedDocumentError(
                    f"Structure element {objid} is its own ancestor"
                )
            tag = name_of(self._resolve(value["S"])) or "Unknown"
            tag = self.role_map.get(tag, tag)

            node = StructureNode(
                tag=tag,
                actual_text=text_of_string(self._resolve(value.get("ActualText"))),
                alt_text=text_of_string(self._resolve(value.get("Alt"))),
            )
            parent.children.append(node)

            if "K" in value:
                path = ancestors | {objid} if objid is not None else ancestors
                self._walk(value["K"], node, node_page, path)
            return

        # Marked-content reference: /MCID without /S
        if "MCID" in value:
            mcid = int_of(self._resolve(value["MCID"]))
            if mcid is not None:
                parent.span_refs.append(SpanRef(page=node_page, mcid=mcid))
            return

        _logger.debug("Ignoring structure kid without /S or /MCID: %r", value.get("Type"))


def read_structure_tree(
    document: PDFDocument, max_hops: int = MAX_REFERENCE_HOPS
) -> Optional[StructureNode]:
    return StructureTreeReader(document, max_hops).read()


def has_structure_tree(
    document: PDFDocument, max_hops: int = MAX_REFERENCE_HOPS
) -> bool:
    """True if the document has a StructTreeRoot with at least one element."""
    return StructureTreeReader(document, max_hops).has_structure_elements()
