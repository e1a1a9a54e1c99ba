"""Pydantic models for Notion API objects.

Based on: https://developers.notion.com/reference/intro (API version 2022-06-28)

Every model allows extra fields so that objects round-trip even when Notion adds
fields we do not model yet. Timestamps are kept as the ISO-8601 strings Notion sends.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, model_validator

INTEGRATION_TOKEN_HEADER = "X-Notion-Integration-Token"


@dataclass(frozen=True, slots=True)
class TenantCredentials:
    """Credentials for a single tenant, parsed from the inbound request."""

    integration_token: str | None = field(default=None, repr=False)

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "TenantCredentials":
        token = headers.get(INTEGRATION_TOKEN_HEADER) or headers.get(
            INTEGRATION_TOKEN_HEADER.lower()
        )
        return cls(integration_token=token.strip() if token else None)

    @property
    def token_preview(self) -> str:
        token = self.integration_token
        if not token:
            return "<missing>"
        return f"{token[:4]}...{token[-4:]}" if len(token) > 12 else "***"


class NotionModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


# =============================================================================
# Users
# =============================================================================


class UserReference(NotionModel):
    object: Literal["user"] = "user"
    id: str


class PersonDetails(NotionModel):
    email: str | None = None


class User(NotionModel):
    object: Literal["user"] = "user"
    id: str
    type: Literal["person", "bot"] | None = None
    name: str | None = None
    avatar_url: str | None = None
    person: PersonDetails | None = None
    bot: dict[str, Any] | None = None


# =============================================================================
# Parents
# =============================================================================


class DatabaseParent(NotionModel):
    type: Literal["database_id"]
    database_id: str


class PageParent(NotionModel):
    type: Literal["page_id"]
    page_id: str


class BlockParent(NotionModel):
    type: Literal["block_id"]
    block_id: str


class WorkspaceParent(NotionModel):
    type: Literal["workspace"]
    workspace: Literal[True]


Parent = Annotated[
    Annotated[DatabaseParent, Tag("database_id")]
    | Annotated[PageParent, Tag("page_id")]
    | Annotated[BlockParent, Tag("block_id")]
    | Annotated[WorkspaceParent, Tag("workspace")],
    Discriminator("type"),
]


# =============================================================================
# Rich text
# =============================================================================


class Annotations(NotionModel):
    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    underline: bool = False
    code: bool = False
    color: str = "default"


class Link(NotionModel):
    url: str


class TextContent(NotionModel):
    content: str
    link: Link | None = None


class Mention(NotionModel):
    """Mention payload. The nested user, page, date (etc.) object is kept as an extra."""

    type: str


class Equation(NotionModel):
    expression: str


class _RichTextBase(NotionModel):
    annotations: Annotations | None = None
    plain_text: str | None = None
    href: str | None = None


class TextRichText(_RichTextBase):
    type: Literal["text"]
    text: TextContent

    @model_validator(mode="after")
    def _plain_text_matches_content(self) -> "TextRichText":
        if self.plain_text is not None and self.plain_text != self.text.content:
            raise ValueError("plain_text must equal text.content for text rich text items")
        return self


class MentionRichText(_RichTextBase):
    type: Literal["mention"]
    mention: Mention


class EquationRichText(_RichTextBase):
    type: Literal["equation"]
    equation: Equation


RichTextItem = Annotated[
    Annotated[TextRichText, Tag("text")]
    | Annotated[MentionRichText, Tag("mention")]
    | Annotated[EquationRichText, Tag("equation")],
    Discriminator("type"),
]


# =============================================================================
# Property values
# =============================================================================


class SelectOption(NotionModel):
    id: str | None = None
    name: str
    color: str | None = None


class DateValue(NotionModel):
    start: str
    end: str | None = None
    time_zone: str | None = None


class _PropertyValueBase(NotionModel):
    id: str | None = None


class TitlePropertyValue(_PropertyValueBase):
    type: Literal["title"]
    title: list[RichTextItem]


class RichTextPropertyValue(_PropertyValueBase):
    type: Literal["rich_text"]
    rich_text: list[RichTextItem]


class NumberPropertyValue(_PropertyValueBase):
    type: Literal["number"]
    number: int | float | None


class SelectPropertyValue(_PropertyValueBase):
    type: Literal["select"]
    select: SelectOption | None


class MultiSelectPropertyValue(_PropertyValueBase):
    type: Literal["multi_select"]
    multi_select: list[SelectOption]


class DatePropertyValue(_PropertyValueBase):
    type: Literal["date"]
    date: DateValue | None


class PeoplePropertyValue(_PropertyValueBase):
    type: Literal["people"]
    people: list[User]


class FilesPropertyValue(_PropertyValueBase):
    type: Literal["files"]
    files: list[dict[str, Any]]


class CheckboxPropertyValue(_PropertyValueBase):
    type: Literal["checkbox"]
    checkbox: bool


class UrlPropertyValue(_PropertyValueBase):
    type: Literal["url"]
    url: str | None


class EmailPropertyValue(_PropertyValueBase):
    type: Literal["email"]
    email: str | None


class PhoneNumberPropertyValue(_PropertyValueBase):
    type: Literal["phone_number"]
    phone_number: str | None


class FormulaPropertyValue(_PropertyValueBase):
    type: Literal["formula"]
    formula: dict[str, Any]


class RelationPropertyValue(_PropertyValueBase):
    type: Literal["relation"]
    relation: list[dict[str, Any]]
    has_more: bool | None = None


class RollupPropertyValue(_PropertyValueBase):
    type: Literal["rollup"]
    rollup: dict[str, Any]


class CreatedTimePropertyValue(_PropertyValueBase):
    type: Literal["created_time"]
    created_time: str


class CreatedByPropertyValue(_PropertyValueBase):
    type: Literal["created_by"]
    created_by: User


class LastEditedTimePropertyValue(_PropertyValueBase):
    type: Literal["last_edited_time"]
    last_edited_time: str


class LastEditedByPropertyValue(_PropertyValueBase):
    type: Literal["last_edited_by"]
    last_edited_by: User


class StatusPropertyValue(_PropertyValueBase):
    type: Literal["status"]
    status: SelectOption | None


class UniqueIdValue(NotionModel):
    number: int | None = None
    prefix: str | None = None


class UniqueIdPropertyValue(_PropertyValueBase):
    type: Literal["unique_id"]
    unique_id: UniqueIdValue


class UnknownPropertyValue(_PropertyValueBase):
    """A property type this module does not model. The payload is kept as an extra field."""

    type: str


_PROPERTY_VALUE_TYPES: dict[str, type[_PropertyValueBase]] = {
    "title": TitlePropertyValue,
    "rich_text": RichTextPropertyValue,
    "number": NumberPropertyValue,
    "select": SelectPropertyValue,
    "multi_select": MultiSelectPropertyValue,
    "date": DatePropertyValue,
    "people": PeoplePropertyValue,
    "files": FilesPropertyValue,
    "checkbox": CheckboxPropertyValue,
    "url": UrlPropertyValue,
    "email": EmailPropertyValue,
    "phone_number": PhoneNumberPropertyValue,
    "formula": FormulaPropertyValue,
    "relation": RelationPropertyValue,
    "rollup": RollupPropertyValue,
    "created_time": CreatedTimePropertyValue,
    "created_by": CreatedByPropertyValue,
    "last_edited_time": LastEditedTimePropertyValue,
    "last_edited_by": LastEditedByPropertyValue,
    "status": StatusPropertyValue,
    "unique_id": UniqueIdPropertyValue,
}

UNKNOWN_PROPERTY_TAG = "unknown"


def property_value_tag(value: Any) -> str:
    """Pick the PropertyValue variant; unrecognized types fall through to UnknownPropertyValue."""
    prop_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if prop_type in _PROPERTY_VALUE_TYPES:
        return prop_type
    return UNKNOWN_PROPERTY_TAG


PropertyValue = Annotated[
    Annotated[TitlePropertyValue, Tag("title")]
    | Annotated[RichTextPropertyValue, Tag("rich_text")]
    | Annotated[NumberPropertyValue, Tag("number")]
    | Annotated[SelectPropertyValue, Tag("select")]
    | Annotated[MultiSelectPropertyValue, Tag("multi_select")]
    | Annotated[DatePropertyValue, Tag("date")]
    | Annotated[PeoplePropertyValue, Tag("people")]
    | Annotated[FilesPropertyValue, Tag("files")]
    | Annotated[CheckboxPropertyValue, Tag("checkbox")]
    | Annotated[UrlPropertyValue, Tag("url")]
    | Annotated[EmailPropertyValue, Tag("email")]
    | Annotated[PhoneNumberPropertyValue, Tag("phone_number")]
    | Annotated[FormulaPropertyValue, Tag("formula")]
    | Annotated[RelationPropertyValue, Tag("relation")]
    | Annotated[RollupPropertyValue, Tag("rollup")]
    | Annotated[CreatedTimePropertyValue, Tag("created_time")]
    | Annotated[CreatedByPropertyValue, Tag("created_by")]
    | Annotated[LastEditedTimePropertyValue, Tag("last_edited_time")]
    | Annotated[LastEditedByPropertyValue, Tag("last_edited_by")]
    | Annotated[StatusPropertyValue, Tag("status")]
    | Annotated[UniqueIdPropertyValue, Tag("unique_id")]
    | Annotated[UnknownPropertyValue, Tag(UNKNOWN_PROPERTY_TAG)],
    Discriminator(property_value_tag),
]


# =============================================================================
# Pages, databases, blocks, comments
# =============================================================================


class Page(NotionModel):
    object: Literal["page"] = "page"
    id: str
    created_time: str
    last_edited_time: str
    created_by: UserReference | None = None
    last_edited_by: UserReference | None = None
    cover: dict[str, Any] | None = None
    icon: dict[str, Any] | None = None
    parent: Parent
    archived: bool = False
    in_trash: bool = False
    properties: dict[str, PropertyValue] = Field(default_factory=dict)
    url: str | None = None
    public_url: str | None = None


class DatabaseProperty(NotionModel):
    """One column of a database schema. Type-specific configuration is kept as an extra."""

    id: str
    name: str
    type: str


class Database(NotionModel):
    object: Literal["database"] = "database"
    id: str
    created_time: str
    last_edited_time: str
    created_by: UserReference | None = None
    last_edited_by: UserReference | None = None
    title: list[RichTextItem] = Field(default_factory=list)
    description: list[RichTextItem] = Field(default_factory=list)
    icon: dict[str, Any] | None = None
    cover: dict[str, Any] | None = None
    properties: dict[str, DatabaseProperty] = Field(default_factory=dict)
    parent: Parent
    url: str | None = None
    public_url: str | None = None
    archived: bool = False
    in_trash: bool = False
    is_inline: bool = False


class Block(NotionModel):
    """A content block. The payload named by `type` (e.g. `paragraph`) is kept as an extra."""

    object: Literal["block"] = "block"
    id: str
    parent: Parent
    type: str
    created_time: str
    last_edited_time: str
    created_by: UserReference | None = None
    last_edited_by: UserReference | None = None
    has_children: bool = False
    archived: bool = False
    in_trash: bool = False


class Comment(NotionModel):
    object: Literal["comment"] = "comment"
    id: str
    parent: Parent
    discussion_id: str
    created_time: str
    last_edited_time: str
    created_by: UserReference
    rich_text: list[RichTextItem]


SearchResult = Annotated[Page | Database, Field(discriminator="object")]


# =============================================================================
# Envelopes
# =============================================================================


class PagingEnvelope[T](BaseModel):
    """Normalized page of results from any Notion list endpoint.

    Serialized with camelCase keys (`hasMore`, `nextCursor`). The cursor is opaque and
    only present when another page may be requested.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    object: Literal["list"] = "list"
    results: list[T]
    has_more: bool = Field(alias="hasMore")
    next_cursor: str | None = Field(default=None, alias="nextCursor")
    type: str | None = None

    @classmethod
    def from_upstream(cls, body: dict[str, Any]) -> "PagingEnvelope[T]":
        has_more = bool(body.get("has_more", False))
        fields: dict[str, Any] = {
            "object": "list",
            "results": body.get("results", []),
            "has_more": has_more,
        }
        next_cursor = body.get("next_cursor")
        if has_more and next_cursor:
            fields["next_cursor"] = next_cursor
        if body.get("type") is not None:
            fields["type"] = body["type"]
        return cls.model_validate(fields)


class ConnectionStatus(BaseModel):
    connected: bool
    message: str
