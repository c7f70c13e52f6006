from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

from .constants import CONTAINER_TAGS, HEADING_TAGS, PARAGRAPH_TAGS


class RoleKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    LIST_ITEM = "list_item"
    LABEL = "label"
    LIST_BODY = "list_body"
    TABLE = "table"
    TABLE_SECTION = "table_section"
    TABLE_ROW = "table_row"
    TABLE_CELL = "table_cell"
    FIGURE = "figure"
    ARTIFACT = "artifact"
    CONTAINER = "container"
    UNKNOWN = "unknown"


class Role(BaseModel):
    """Semantic role of a structure tag. ``level`` is set for headings only."""

    model_config = ConfigDict(frozen=True)

    kind: RoleKind
    level: int = 0


_SIMPLE_ROLES: Dict[str, RoleKind] = {
    "L": RoleKind.LIST,
    "LI": RoleKind.LIST_ITEM,
    "LBL": RoleKind.LABEL,
    "LBODY": RoleKind.LIST_BODY,
    "TABLE": RoleKind.TABLE,
    "THEAD": RoleKind.TABLE_SECTION,
    "TBODY": RoleKind.TABLE_SECTION,
    "TFOOT": RoleKind.TABLE_SECTION,
    "TR": RoleKind.TABLE_ROW,
    "TH": RoleKind.TABLE_CELL,
    "TD": RoleKind.TABLE_CELL,
    "FIGURE": RoleKind.FIGURE,
    "FORMULA": RoleKind.FIGURE,
    "ARTIFACT": RoleKind.ARTIFACT,
}


def classify_tag(tag: Optional[str], role_map: Optional[Dict[str, str]] = None) -> Role:
    """Map a raw structure tag (after an optional single role-map lookup) to a Role."""
    raw = tag or ""
    if role_map:
        raw = role_map.get(raw, raw)
    key = raw.upper()

    if key in HEADING_TAGS:
        return Role(kind=RoleKind.HEADING, level=HEADING_TAGS[key])
    if key in PARAGRAPH_TAGS:
        return Role(kind=RoleKind.PARAGRAPH)
    if key in _SIMPLE_ROLES:
        return Role(kind=_SIMPLE_ROLES[key])
    if key in CONTAINER_TAGS or key == "STRUCTTREEROOT":
        return Role(kind=RoleKind.CONTAINER)
    return Role(kind=RoleKind.UNKNOWN)


def is_structural(tag: Optional[str]) -> bool:
    """True for tags from the standard vocabulary (anything but UNKNOWN)."""
    return classify_tag(tag).kind is not RoleKind.UNKNOWN
