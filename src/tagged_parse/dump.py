"""Read-only report of a document's raw structure tree.

Lists the role map, the element hierarchy with marked-content links and a
tag frequency histogram. It never influences conversion output.
"""

from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Set, Union

from pdfminer.pdfdocument import PDFDocument

from .constants import UNRESOLVED_PAGE
from .objects import build_page_map, int_of, name_of, object_id, open_document, resolve
from .roles import is_structural

RULE_WIDTH = 60
SUBRULE_WIDTH = 40


class StructureTreeDumper:
    def __init__(self, document: PDFDocument) -> None:
        self.document = document
        self.page_map: Dict[int, int] = {}
        self.tag_counts: Counter = Counter()
        self.lines: List[str] = []

    def dump(self) -> List[str]:
        tree = resolve(self.document.catalog.get("StructTreeRoot"))
        if tree is None:
            return ["No StructTreeRoot found - this PDF is not tagged."]
        if not isinstance(tree, dict):
            return ["StructTreeRoot is not a dictionary."]

        self.page_map = build_page_map(self.document)

        role_map = resolve(tree.get("RoleMap"))
        if isinstance(role_map, dict):
            self.lines.append("Role Mapping (custom tags -> standard tags):")
            self.lines.append("-" * SUBRULE_WIDTH)
            for custom, target in role_map.items():
                self.lines.append(f"  {custom} -> {name_of(target) or '?'}")
            self.lines.append("")

        self.lines.append("Structure Tree Hierarchy:")
        self.lines.append("-" * RULE_WIDTH)
        if "K" in tree:
            self._walk(tree["K"], 0, UNRESOLVED_PAGE, set())

        self.lines.append("")
        self.lines.append("Tag Frequency Summary:")
        self.lines.append("-" * SUBRULE_WIDTH)
        for tag, count in self.tag_counts.most_common():
            marker = "" if is_structural(tag) else " (custom)"
            self.lines.append(f"  {tag + marker:<25} {count:>6} occurrences")
        return self.lines

    def _mcid_line(self, depth: int, mcid: int, page: int, bare: bool) -> None:
        # Bare integer kids print in parentheses, MCR dictionaries in brackets
        label = f"MCID={mcid}" if page == UNRESOLVED_PAGE else f"MCID={mcid}, page {page}"
        opening, closing = ("(", ")") if bare else ("[", "]")
        indent = "  " * depth
        self.lines.append(f"{indent}{opening}{label}{closing}")

    def _walk(self, token: Any, depth: int, page: int, ancestors: Set[int]) -> None:
        objid = object_id(token)
        value = resolve(token)
        indent = "  " * depth

        if isinstance(value, list):
            for item in value:
                self._walk(item, depth, page, ancestors)
            return

        mcid = int_of(value)
        if mcid is not None:
            self._mcid_line(depth, mcid, page, bare=True)
            return

        if not isinstance(value, dict):
            return

        pg = object_id(value.get("Pg"))
        if pg is not None:
            page = self.page_map.get(pg, page)

        if "S" not in value:
            mcid = int_of(value.get("MCID"))
            if mcid is not None:
                self._mcid_line(depth, mcid, page, bare=False)
            elif name_of(value.get("Type")) == "OBJR":
                self.lines.append(f"{indent}(OBJR)")
            return

        if objid is not None and objid in ancestors:
            self.lines.append(f"{indent}(cycle to object {objid})")
            return

        tag = name_of(value["S"]) or "(unknown)"
        self.tag_counts[tag] += 1
        self.lines.append(f"{indent}{tag}")

        if "K" in value:
            path = ancestors | {objid} if objid is not None else ancestors
            self._walk(value["K"], depth + 1, page, path)


def dump_structure_tree(pdf_path: Union[str, Path]) -> str:
    """Human-readable dump of the structure tree of ``pdf_path``."""
    pdf_path = Path(pdf_path)
    lines = [
        "PDF Structure Tree (StructTreeRoot)",
        "=" * RULE_WIDTH,
        f"File: {pdf_path.name}",
        "",
    ]
    with open_document(pdf_path) as document:
        lines.extend(StructureTreeDumper(document).dump())
    return "\n".join(lines) + "\n"
