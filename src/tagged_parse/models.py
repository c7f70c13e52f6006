from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field


class Glyph(BaseModel):
    """A single rendered character with its geometry and font metadata."""

    value: str
    x0: float
    x1: float
    top: float  # upper edge in PDF user space (y grows upward)
    bottom: float
    size: float = 0.0  # point size; 0 when unknown
    fontname: str = ""
    index: Optional[int] = None  # content-stream emission order on its page
    page: int = 0  # page the glyph was drawn on; 0 when unknown

    @classmethod
    def from_char(cls, char: Any, index: Optional[int] = None, page: int = 0) -> "Glyph":
        """Build a glyph from a pdfminer ``LTChar``."""
        return cls(
            value=char.get_text(),
            x0=float(char.x0),
            x1=float(char.x1),
            top=float(char.y1),
            bottom=float(char.y0),
            size=float(char.size or 0.0),
            fontname=str(char.fontname or ""),
            index=index,
            page=page,
        )

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.top - self.bottom


class SpanRef(BaseModel):
    """Page-scoped marked-content identifier. Page 0 means unresolved."""

    page: int
    mcid: int


class MarkedSpan(BaseModel):
    """A marked-content sequence (BDC/BMC ... EMC) on one page."""

    tag: str = ""
    mcid: Optional[int] = None
    artifact: bool = False
    actual_text: Optional[str] = None
    glyphs: List[Glyph] = Field(default_factory=list)
    children: List["MarkedSpan"] = Field(default_factory=list)


class StructureNode(BaseModel):
    """One element of the logical structure tree."""

    tag: str
    children: List["StructureNode"] = Field(default_factory=list)
    span_refs: List[SpanRef] = Field(default_factory=list)
    actual_text: Optional[str] = None
    alt_text: Optional[str] = None

    def iter_nodes(self):
        """Yield this node and all descendants in document order."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()


class TextBlock(BaseModel):
    """A segmented region of one page: lines of words of glyphs."""

    lines: List[List[List[Glyph]]] = Field(default_factory=list)
    rank: int = 0
    bbox: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)

    @property
    def glyphs(self) -> List[Glyph]:
        return [glyph for line in self.lines for word in line for glyph in word]

    def line_text(self, line_number: int) -> str:
        return " ".join(
            "".join(glyph.value for glyph in word) for word in self.lines[line_number]
        )

    @property
    def text(self) -> str:
        return "\n".join(self.line_text(i) for i in range(len(self.lines)))


# ---------- Conversion units accepted by the Markdown sink ----------


class Heading(BaseModel):
    kind: Literal["heading"] = "heading"
    level: int = Field(ge=1, le=6)
    text: str


class Paragraph(BaseModel):
    kind: Literal["paragraph"] = "paragraph"
    text: str


class ListStart(BaseModel):
    kind: Literal["list_start"] = "list_start"


class BulletItem(BaseModel):
    kind: Literal["bullet_item"] = "bullet_item"
    text: str


class NumberedItem(BaseModel):
    kind: Literal["numbered_item"] = "numbered_item"
    index: int
    text: str


class TableHeader(BaseModel):
    kind: Literal["table_header"] = "table_header"
    cells: List[str]


class TableRow(BaseModel):
    kind: Literal["table_row"] = "table_row"
    cells: List[str]


class FigurePlaceholder(BaseModel):
    kind: Literal["figure"] = "figure"
    caption: str = "Figure"


ConversionUnit = Annotated[
    Union[
        Heading,
        Paragraph,
        ListStart,
        BulletItem,
        NumberedItem,
        TableHeader,
        TableRow,
        FigurePlaceholder,
    ],
    Field(discriminator="kind"),
]
