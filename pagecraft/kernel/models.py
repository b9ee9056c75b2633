"""Boundary models: selection pointers and button link targets."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

# ---------------------------------------------------------------------------
# Selection pointer
# ---------------------------------------------------------------------------


class PageTarget(BaseModel):
    """Nothing inside the page is selected."""

    model_config = {"extra": "forbid", "frozen": True}

    kind: Literal["page"] = "page"


class SectionTarget(BaseModel):
    """A whole section is selected."""

    model_config = {"extra": "forbid", "frozen": True}

    kind: Literal["section"] = "section"
    id: str


class BlockTarget(BaseModel):
    """One content item inside a section is selected."""

    model_config = {"extra": "forbid", "frozen": True}

    kind: Literal["block"] = "block"
    section_id: str
    id: str


SelectionTarget = Annotated[
    PageTarget | SectionTarget | BlockTarget,
    Field(discriminator="kind"),
]


class Selection(BaseModel):
    """
    Which entity the user is editing.

    `target` is the primary pointer; the auxiliary ids narrow it down to an
    item, a line within that item, and the images picked inside an image item.
    """

    model_config = {"extra": "forbid", "frozen": True}

    target: SelectionTarget = Field(default_factory=PageTarget)
    item_id: str | None = None
    line_id: str | None = None
    image_ids: tuple[str, ...] = ()

    @property
    def section_id(self) -> str | None:
        if isinstance(self.target, SectionTarget):
            return self.target.id
        if isinstance(self.target, BlockTarget):
            return self.target.section_id
        return None


# ---------------------------------------------------------------------------
# Button link targets
# ---------------------------------------------------------------------------


class UrlLink(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    kind: Literal["url"]
    url: str


class SectionLink(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    kind: Literal["section"]
    section_id: str = Field(alias="sectionId")


ButtonTarget = Annotated[UrlLink | SectionLink, Field(discriminator="kind")]

_BUTTON_TARGET = TypeAdapter(ButtonTarget)

EMPTY_URL_TARGET: dict[str, Any] = {"kind": "url", "url": ""}


def parse_button_target(raw: Any) -> dict[str, Any]:
    """
    Validate a button target and return its document shape.
    Anything that is not a well-formed url/section link becomes an empty url link.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("kind"), str):
        return dict(EMPTY_URL_TARGET)
    try:
        target = _BUTTON_TARGET.validate_python(raw)
    except ValidationError:
        return dict(EMPTY_URL_TARGET)
    return target.model_dump(by_alias=True)
