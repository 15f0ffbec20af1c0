"""Page context models supplied by the host (tabs, metadata)."""

from pydantic import BaseModel, ConfigDict, Field


class TabInfo(BaseModel):
    """A browser tab as seen by the trigger surface."""

    model_config = ConfigDict(extra="forbid")

    id: int
    url: str = ""
    title: str = ""


class PageMetadata(BaseModel):
    """Open Graph style metadata extracted from a page.

    Every field defaults to an empty string so a failed extraction
    renders as empty template values.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(default="", description="og:title")
    type: str = Field(default="", description="og:type")
    published_time: str = Field(default="", description="article:published_time or JSON-LD")
