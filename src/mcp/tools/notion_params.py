from typing import Annotated, Any, Literal

from pydantic import Field

from src.clients.notion import NotionClient

NOTION_ID_FORMAT = """
Notion IDs are UUIDs and can be given with or without hyphens.
- To convert a Notion URL to an ID, take the 32 character string at the end of the URL, e.g. https://www.notion.so/acmeco/Roadmap-19fbc7eac3d1802dbf0ecd39a2c245ee has the ID `19fbc7eac3d1802dbf0ecd39a2c245ee`.
"""

PageIdAnnotation = Annotated[str, Field(description=f"The page ID.{NOTION_ID_FORMAT}")]
DatabaseIdAnnotation = Annotated[str, Field(description=f"The database ID.{NOTION_ID_FORMAT}")]
BlockIdAnnotation = Annotated[
    str,
    Field(description=f"The block ID. Pages are blocks too, so a page ID works here.{NOTION_ID_FORMAT}"),
]
UserIdAnnotation = Annotated[str, Field(description="The user ID")]
CommentIdAnnotation = Annotated[str, Field(description="The comment ID")]

StartCursorAnnotation = Annotated[
    str | None,
    Field(description="Pagination cursor: the `nextCursor` returned by the previous call"),
]
PageSizeAnnotation = Annotated[
    int,
    Field(
        ge=1,
        le=NotionClient.MAX_PAGE_SIZE,
        description=f"Number of items to return (1-{NotionClient.MAX_PAGE_SIZE})",
    ),
]
ResponseFormatAnnotation = Annotated[
    Literal["json", "markdown"],
    Field(description="Response format: 'json' for the full objects, 'markdown' for a readable summary"),
]

RichTextAnnotation = Annotated[
    list[dict[str, Any]],
    Field(description='Rich text array, e.g. [{"text": {"content": "Hello"}}]'),
]
IconAnnotation = Annotated[
    dict[str, Any] | None,
    Field(
        description='Icon object, e.g. {"type": "emoji", "emoji": "🚀"} or {"type": "external", "external": {"url": "..."}}'
    ),
]
CoverAnnotation = Annotated[
    dict[str, Any] | None,
    Field(description='Cover object, e.g. {"type": "external", "external": {"url": "..."}}'),
]
