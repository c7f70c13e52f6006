"""Rebuilds plain text from glyph sets, in stream order or geometric order."""

import logging
import math
import re
from typing import Iterable, List, Literal, Optional, Sequence, Tuple

from pdfminer.layout import LAParams, LTChar, LTComponent, LTLayoutContainer

from .constants import LINE_BREAK_HEIGHT_RATIO, WORD_BREAK_WIDTH_RATIO
from .models import Glyph, MarkedSpan, SpanRef, StructureNode
from .roles import RoleKind, classify_tag
from .spans import SpanIndex

_logger = logging.getLogger(__name__)

TextOrder = Literal["stream", "geometric"]


def _is_separator(glyph: Glyph) -> bool:
    return not glyph.value or glyph.value.isspace()


def _stream_key(glyph: Glyph) -> Tuple[int, float]:
    return (glyph.page, glyph.index if glyph.index is not None else math.inf)


class _GlyphChar(LTChar):
    """A glyph seen as a pdfminer character, so pdfminer can group it."""

    def __init__(self, glyph: Glyph) -> None:
        LTComponent.__init__(self, (glyph.x0, glyph.bottom, glyph.x1, glyph.top))
        self.glyph = glyph
        self._text = glyph.value
        self.fontname = glyph.fontname
        self.size = glyph.size
        self.adv = glyph.width
        self.upright = True
        self.matrix = (1, 0, 0, 1, glyph.x0, glyph.bottom)


def group_words(
    glyphs: Iterable[Glyph],
    word_margin: float = 0.1,
    line_overlap: float = 0.5,
    char_margin: float = 2.0,
) -> List[List[Glyph]]:
    """Split glyphs, taken in the order given, into words.

    pdfminer's text line grouping does the work: a line ends where the next
    glyph is no longer beside the previous one, and inside a line an
    ``LTAnno`` space marks a gap wider than ``word_margin``. Whitespace
    glyphs end a word as well.
    """
    chars = [_GlyphChar(glyph) for glyph in glyphs]
    if not chars:
        return []
    laparams = LAParams(
        line_overlap=line_overlap, char_margin=char_margin, word_margin=word_margin
    )
    container = LTLayoutContainer((0, 0, 0, 0))

    words: List[List[Glyph]] = []
    for line in container.group_objects(laparams, chars):
        current: List[Glyph] = []
        for item in line:
            if isinstance(item, _GlyphChar) and not _is_separator(item.glyph):
                current.append(item.glyph)
            elif current:
                words.append(current)
                current = []
        if current:
            words.append(current)
    return words


def stream_order_text(
    glyphs: Iterable[Glyph],
    overrides: Iterable[Glyph] = (),
    word_margin: float = 0.1,
    line_overlap: float = 0.5,
    char_margin: float = 2.0,
) -> str:
    """Join words ordered by the smallest emission index of their glyphs.

    Words are formed from the glyphs in emission order, so glyphs of two
    words drawn over the same stretch of a line never mix. Each override
    glyph is one whole word placed at its own index.
    """
    ordered = sorted(glyphs, key=_stream_key)
    words = group_words(ordered, word_margin, line_overlap, char_margin)
    words.extend([override] for override in overrides)
    keyed = [(min(_stream_key(g) for g in word), word) for word in words]
    keyed.sort(key=lambda item: item[0])
    text = " ".join("".join(g.value for g in word) for _, word in keyed)
    return re.sub(r" {2,}", " ", text).strip()


def geometric_text(glyphs: Iterable[Glyph]) -> str:
    """Join glyphs top-to-bottom, left-to-right, spacing on geometric gaps."""
    ordered = sorted(glyphs, key=lambda g: (-g.top, g.x0))
    parts: List[str] = []
    previous: Optional[Glyph] = None
    for glyph in ordered:
        if previous is not None:
            vertical_gap = abs(previous.top - glyph.top)
            if vertical_gap > previous.height * LINE_BREAK_HEIGHT_RATIO:
                parts.append(" ")
            elif glyph.x0 - previous.x1 > previous.width * WORD_BREAK_WIDTH_RATIO:
                parts.append(" ")
        parts.append(glyph.value)
        previous = glyph
    return "".join(parts).strip()


def _override_glyph(text: str, covered: List[Glyph], collected: Sequence[Glyph]) -> Glyph:
    """Stand-in glyph that carries replacement text at the covered glyphs' place.

    Replacement text that covers no glyphs goes right after the last glyph
    collected so far, or first when nothing has been collected yet.
    """
    if covered:
        first = min(covered, key=_stream_key)
        return Glyph(
            value=text,
            x0=min(g.x0 for g in covered),
            x1=max(g.x1 for g in covered),
            top=max(g.top for g in covered),
            bottom=min(g.bottom for g in covered),
            size=first.size,
            fontname=first.fontname,
            index=first.index,
            page=first.page,
        )
    if not collected:
        return Glyph(value=text, x0=0.0, x1=0.0, top=0.0, bottom=0.0, index=-1)
    last = max(collected, key=_stream_key)
    return Glyph(
        value=text,
        x0=last.x1 + last.width,
        x1=last.x1 + last.width,
        top=last.top,
        bottom=last.bottom,
        size=last.size,
        fontname=last.fontname,
        index=last.index,
        page=last.page,
    )


class TextReconstructor:
    """Renders the text of structure nodes through the content-span index."""

    def __init__(
        self,
        index: Optional[SpanIndex],
        order: TextOrder = "stream",
        word_margin: float = 0.1,
        line_overlap: float = 0.5,
        char_margin: float = 2.0,
    ) -> None:
        self.index = index
        self.order = order
        self.word_margin = word_margin
        self.line_overlap = line_overlap
        self.char_margin = char_margin

    def text_of(self, node: StructureNode) -> str:
        """Text of a node: its ActualText verbatim, else its reconstructed glyphs."""
        if node.actual_text:
            return node.actual_text
        glyphs: List[Glyph] = []
        overrides: List[Glyph] = []
        self.collect_node(node, glyphs, overrides)
        return self.render(glyphs, overrides)

    def text_of_refs(self, refs: Iterable[SpanRef]) -> str:
        glyphs: List[Glyph] = []
        overrides: List[Glyph] = []
        for ref in refs:
            self._collect_ref(ref, glyphs, overrides)
        return self.render(glyphs, overrides)

    def render(self, glyphs: List[Glyph], overrides: Sequence[Glyph] = ()) -> str:
        if not glyphs and not overrides:
            return ""
        everything = list(glyphs) + list(overrides)
        # Stream order needs emission indices on every glyph
        if self.order == "geometric" or any(g.index is None for g in everything):
            return geometric_text(everything)
        return stream_order_text(
            glyphs, overrides, self.word_margin, self.line_overlap, self.char_margin
        )

    def collect_node(
        self, node: StructureNode, glyphs: List[Glyph], overrides: List[Glyph]
    ) -> None:
        """Gather the content glyphs reachable from ``node``, artifacts excluded."""
        for ref in node.span_refs:
            self._collect_ref(ref, glyphs, overrides)
        for child in node.children:
            if classify_tag(child.tag).kind is RoleKind.ARTIFACT:
                continue
            if child.actual_text:
                covered: List[Glyph] = []
                self.collect_node(child, covered, covered)
                overrides.append(
                    _override_glyph(child.actual_text, covered, glyphs + overrides)
                )
                continue
            self.collect_node(child, glyphs, overrides)

    def _collect_ref(
        self, ref: SpanRef, glyphs: List[Glyph], overrides: List[Glyph]
    ) -> None:
        span = self.index.lookup(ref.page, ref.mcid) if self.index is not None else None
        if span is None:
            _logger.debug("No marked content for MCID %d on page %d", ref.mcid, ref.page)
            return
        self._collect_span(span, glyphs, overrides)

    def _collect_span(
        self, span: MarkedSpan, glyphs: List[Glyph], overrides: List[Glyph]
    ) -> None:
        if span.artifact:
            return
        if span.actual_text is not None:
            covered: List[Glyph] = []
            self._collect_span(span.model_copy(update={"actual_text": None}), covered, covered)
            overrides.append(_override_glyph(span.actual_text, covered, glyphs + overrides))
            return
        glyphs.extend(span.glyphs)
        for child in span.children:
            self._collect_span(child, glyphs, overrides)
