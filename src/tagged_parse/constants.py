import re
from typing import Dict, FrozenSet

# Layout heuristics
DEFAULT_MEDIAN_FONT_SIZE = 12.0
HEADING_MAX_CHARS = 200
HEADING_RATIO_H1 = 1.8
HEADING_RATIO_H2 = 1.4
HEADING_RATIO_H3 = 1.15
BOLD_HEADING_MAX_LINES = 2
BOLD_MARKERS = ("bold", "heavy", "black")

BULLET_PATTERN = re.compile(r"^[•‣◦⁃∙\-\*\xB7]\s*")
NUMBERED_PATTERN = re.compile(r"^\d+[.)]\s+")
ORDERED_LABEL_PATTERN = re.compile(r"^\d+[.)]*$")

# Geometric text reconstruction
LINE_BREAK_HEIGHT_RATIO = 0.5
WORD_BREAK_WIDTH_RATIO = 0.3

# Reference resolution
MAX_REFERENCE_HOPS = 32
UNRESOLVED_PAGE = 0

# Structure tree tags (compared case-insensitively)
HEADING_TAGS: Dict[str, int] = {
    "H": 1,
    "H1": 1,
    "H2": 2,
    "H3": 3,
    "H4": 4,
    "H5": 5,
    "H6": 6,
    "TITLE": 1,
}

PARAGRAPH_TAGS: FrozenSet[str] = frozenset(
    {"P", "SPAN", "CAPTION", "NOTE", "QUOTE", "CODE", "LINK", "REFERENCE", "BIBENTRY"}
)

CONTAINER_TAGS: FrozenSet[str] = frozenset(
    {
        "DOCUMENT",
        "DOCUMENTFRAGMENT",
        "PART",
        "ART",
        "SECT",
        "DIV",
        "BLOCKQUOTE",
        "TOC",
        "TOCI",
        "INDEX",
        "NONSTRUCT",
        "PRIVATE",
        "ASIDE",
        "FORM",
    }
)
