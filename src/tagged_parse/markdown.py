import re
from typing import Iterable, List, Optional, Sequence

from .models import (
    BulletItem,
    ConversionUnit,
    FigurePlaceholder,
    Heading,
    ListStart,
    NumberedItem,
    Paragraph,
    TableHeader,
    TableRow,
)


def _normalize_cell_text(text: Optional[str]) -> str:
    """Collapse whitespace and escape pipes inside a table cell."""
    if not text:
        return ""
    cleaned = re.sub(r"\s+", " ", text.strip())
    cleaned = re.sub(r"[\u200b-\u200d\ufeff]", "", cleaned)
    return cleaned.replace("|", "\\|")


def table_units(rows: Sequence[Sequence[str]]) -> List[ConversionUnit]:
    """Pad rows to the widest row; the first row becomes the header."""
    if not rows:
        return []
    width = max(len(row) for row in rows)
    if width == 0:
        return []
    padded = [list(row) + [""] * (width - len(row)) for row in rows]
    units: List[ConversionUnit] = [TableHeader(cells=padded[0])]
    units.extend(TableRow(cells=row) for row in padded[1:])
    return units


class MarkdownBuilder:
    """Append-only Markdown accumulator.

    Headings, paragraphs, tables and figures are separated from earlier
    content by a blank line; consecutive list items and table rows are not.
    """

    def __init__(self) -> None:
        self._lines: List[str] = []
        self._needs_blank_line = False

    def ensure_blank_line(self) -> None:
        if self._needs_blank_line:
            self._lines.append("")
            self._needs_blank_line = False

    def heading(self, level: int, text: str) -> None:
        self.ensure_blank_line()
        self._lines.append(f"{'#' * level} {text.strip()}")
        self._needs_blank_line = True

    def paragraph(self, text: str) -> None:
        if not text or not text.strip():
            return
        self.ensure_blank_line()
        self._lines.append(text.strip())
        self._needs_blank_line = True

    def bullet_item(self, text: str) -> None:
        self._lines.append(f"- {text.strip()}")
        self._needs_blank_line = True

    def numbered_item(self, number: int, text: str) -> None:
        self._lines.append(f"{number}. {text.strip()}")
        self._needs_blank_line = True

    def table_header(self, cells: Sequence[str]) -> None:
        self.ensure_blank_line()
        self._lines.append(self._table_line(cells))
        self._lines.append("|" + " --- |" * len(cells))
        self._needs_blank_line = True

    def table_row(self, cells: Sequence[str]) -> None:
        self._lines.append(self._table_line(cells))
        self._needs_blank_line = True

    def figure(self, caption: str = "Figure") -> None:
        self.ensure_blank_line()
        self._lines.append(f"![{caption}]()")
        self._needs_blank_line = True

    @staticmethod
    def _table_line(cells: Sequence[str]) -> str:
        return "|" + "".join(f" {_normalize_cell_text(cell)} |" for cell in cells)

    def emit(self, unit: ConversionUnit) -> None:
        if isinstance(unit, Heading):
            self.heading(unit.level, unit.text)
        elif isinstance(unit, Paragraph):
            self.paragraph(unit.text)
        elif isinstance(unit, ListStart):
            self.ensure_blank_line()
        elif isinstance(unit, BulletItem):
            self.bullet_item(unit.text)
        elif isinstance(unit, NumberedItem):
            self.numbered_item(unit.index, unit.text)
        elif isinstance(unit, TableHeader):
            self.table_header(unit.cells)
        elif isinstance(unit, TableRow):
            self.table_row(unit.cells)
        elif isinstance(unit, FigurePlaceholder):
            self.figure(unit.caption)
        else:
            raise TypeError(f"Unsupported conversion unit: {unit!r}")

    def extend(self, units: Iterable[ConversionUnit]) -> None:
        for unit in units:
            self.emit(unit)

    def to_markdown(self) -> str:
        return "\n".join(self._lines).rstrip() + "\n"

    def __str__(self) -> str:
        return self.to_markdown()


def render(units: Iterable[ConversionUnit]) -> str:
    """Render conversion units, in the given order, to Markdown text."""
    builder = MarkdownBuilder()
    builder.extend(units)
    return builder.to_markdown()
