"""Turns a structure tree into conversion units, one pure function per role."""

import logging
from typing import List, Optional, Tuple

from .constants import ORDERED_LABEL_PATTERN
from .markdown import table_units
from .models import (
    BulletItem,
    ConversionUnit,
    FigurePlaceholder,
    Heading,
    ListStart,
    NumberedItem,
    Paragraph,
    StructureNode,
)
from .roles import RoleKind, classify_tag
from .text import TextReconstructor

_logger = logging.getLogger(__name__)


def convert_node(node: StructureNode, text: TextReconstructor) -> List[ConversionUnit]:
    """Return the units for ``node`` and its subtree in document order."""
    role = classify_tag(node.tag)

    if role.kind is RoleKind.ARTIFACT:
        return []

    if role.kind is RoleKind.HEADING:
        heading_text = text.text_of(node)
        if not heading_text.strip():
            return []
        return [Heading(level=role.level, text=heading_text)]

    if role.kind is RoleKind.PARAGRAPH:
        return _paragraph(text.text_of(node))

    if role.kind is RoleKind.LIST:
        return convert_list(node, text)

    if role.kind is RoleKind.TABLE:
        return convert_table(node, text)

    if role.kind is RoleKind.FIGURE:
        return [FigurePlaceholder(caption=node.alt_text or "Figure")]

    # Containers, unknown tags and stray list/table parts
    if not node.children:
        return _paragraph(text.text_of(node))

    units: List[ConversionUnit] = []
    if node.span_refs:
        units.extend(_paragraph(text.text_of_refs(node.span_refs)))
    for child in node.children:
        units.extend(convert_node(child, text))
    return units


def _paragraph(value: str) -> List[ConversionUnit]:
    if not value.strip():
        return []
    return [Paragraph(text=value)]


def is_ordered_label(label: Optional[str]) -> bool:
    return bool(label) and bool(ORDERED_LABEL_PATTERN.match(label.strip()))


def convert_list(node: StructureNode, text: TextReconstructor) -> List[ConversionUnit]:
    """List items, renumbered from 1 when the first label is numeric."""
    items = [
        child
        for child in node.children
        if classify_tag(child.tag).kind is RoleKind.LIST_ITEM
    ]
    if not items:
        return []

    units: List[ConversionUnit] = [ListStart()]
    ordered = False
    for number, item in enumerate(items, start=1):
        body, label = list_item_text(item, text)
        if number == 1:
            ordered = is_ordered_label(label)
        if ordered:
            units.append(NumberedItem(index=number, text=body))
        else:
            units.append(BulletItem(text=body))
    return units


def list_item_text(
    item: StructureNode, text: TextReconstructor
) -> Tuple[str, Optional[str]]:
    """Split a list item into (body text, label text)."""
    label: Optional[str] = None
    body_parts: List[str] = []

    for child in item.children:
        kind = classify_tag(child.tag).kind
        if kind is RoleKind.ARTIFACT:
            continue
        if kind is RoleKind.LABEL:
            label = text.text_of(child)
            continue
        part = text.text_of(child)
        if part.strip():
            body_parts.append(part)

    if not body_parts:
        direct = text.text_of_refs(item.span_refs) if item.children else text.text_of(item)
        if direct.strip():
            body_parts.append(direct)

    return " ".join(body_parts), label


def convert_table(node: StructureNode, text: TextReconstructor) -> List[ConversionUnit]:
    rows: List[List[str]] = []
    for child in node.children:
        kind = classify_tag(child.tag).kind
        if kind is RoleKind.TABLE_SECTION:
            for row in child.children:
                if classify_tag(row.tag).kind is RoleKind.TABLE_ROW:
                    rows.append(table_row_cells(row, text))
        elif kind is RoleKind.TABLE_ROW:
            rows.append(table_row_cells(child, text))

    if not rows:
        _logger.debug("Table element without rows skipped")
    return table_units(rows)


def table_row_cells(row: StructureNode, text: TextReconstructor) -> List[str]:
    cells = [text.text_of(cell) for cell in row.children]
    if not cells and (row.span_refs or row.actual_text):
        cells.append(text.text_of(row))
    return cells

