"""Rendering of Notion results into tool output text.

Two formats are supported:
- "json": lossless, `json.loads(text)` gives back the data that was rendered
- "markdown": a lossy summary meant for reading; list results become tables chosen by entity label

Pydantic models are dumped by alias and without unset fields before rendering, so the
output mirrors the shape Notion sent.
"""

import json
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel

from src.clients.notion_errors import NotionApiError, format_error_for_logging

ResponseFormat = Literal["json", "markdown"]

COMMENT_PREVIEW_LENGTH = 50
GENERIC_TABLE_MAX_COLUMNS = 5
GENERIC_TABLE_CELL_LENGTH = 30


@dataclass(frozen=True)
class ToolResponse:
    text: str
    is_error: bool = False


def to_jsonable(data: Any) -> Any:
    """Convert models (and containers of models) into plain JSON-compatible data."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if isinstance(data, Mapping):
        return {key: to_jsonable(value) for key, value in data.items()}
    if isinstance(data, list | tuple):
        return [to_jsonable(item) for item in data]
    return data


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_response(
    data: Any, response_format: ResponseFormat, entity_type: str
) -> ToolResponse:
    """Render a successful result in the requested format."""
    plain = to_jsonable(data)
    if response_format == "markdown":
        return ToolResponse(text=format_as_markdown(plain, entity_type))
    return ToolResponse(text=_dumps(plain))


def format_mutation(message: str, entity_key: str, entity: Any) -> str:
    """Render the acknowledgement of a write (create/update/trash/append/delete)."""
    return _dumps({"success": True, "message": message, entity_key: to_jsonable(entity)})


def format_error(error: object) -> ToolResponse:
    """Render any failure as a JSON error payload. Always JSON, regardless of requested format."""
    if isinstance(error, NotionApiError):
        message = f"Error: {error.message}"
        if error.retryable:
            message += " (retryable)"
    else:
        message = f"Error: {error}"

    return ToolResponse(
        text=_dumps({"error": message, "details": format_error_for_logging(error)}),
        is_error=True,
    )


# =============================================================================
# Rich text helpers
# =============================================================================


def rich_text_to_plain(rich_text: Sequence[Any] | None) -> str:
    """Flatten rich text spans into plain text.

    Each span contributes its `plain_text`, else `text.content`, else nothing. Mentions
    and equations get no special handling: their upstream `plain_text` is used as-is.
    """
    parts: list[str] = []
    for item in to_jsonable(list(rich_text or [])):
        if not isinstance(item, Mapping):
            continue
        text = item.get("text")
        content = text.get("content") if isinstance(text, Mapping) else None
        parts.append(item.get("plain_text") or content or "")
    return "".join(parts)


def get_page_title(page: Any) -> str:
    """Return the flattened text of the page's title property, or "Untitled"."""
    properties = to_jsonable(page).get("properties") or {}
    for prop in properties.values():
        if isinstance(prop, Mapping) and prop.get("type") == "title" and "title" in prop:
            return rich_text_to_plain(prop["title"])
    return "Untitled"


# =============================================================================
# Markdown
# =============================================================================


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _format_key(key: str) -> str:
    """snake_case / camelCase key to a display label, e.g. `last_edited_time` -> `Last edited time`."""
    spaced = re.sub(r"([A-Z])", r" \1", key.replace("_", " "))
    return _capitalize(spaced).strip()


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping | list):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _cell(value: Any) -> str:
    """Table cell text: pipes escaped, line breaks flattened so the row stays intact."""
    return str(value).replace("|", "\\|").replace("\r\n", " ").replace("\n", " ")


def _date_part(timestamp: Any) -> str:
    return str(timestamp or "").split("T")[0]


def _is_paging_envelope(data: Any) -> bool:
    return (
        isinstance(data, Mapping)
        and isinstance(data.get("results"), list)
        and (data.get("object") == "list" or "hasMore" in data)
    )


def format_as_markdown(data: Any, entity_type: str) -> str:
    if _is_paging_envelope(data):
        return _format_paginated(data, entity_type)
    if isinstance(data, list):
        return format_generic_table(data)
    if isinstance(data, Mapping):
        return _format_object(data, entity_type)
    return str(data)


def _format_paginated(data: Mapping[str, Any], entity_type: str) -> str:
    results = data["results"]
    has_more = data.get("hasMore", data.get("has_more", False))
    next_cursor = data.get("nextCursor", data.get("next_cursor"))

    lines = [f"## {_capitalize(entity_type)}", "", f"**Count:** {len(results)}"]
    if has_more:
        lines.append(f"**More available:** Yes (cursor: `{next_cursor}`)")
    lines.append("")

    if not results:
        lines.append("_No items found._")
        return "\n".join(lines)

    build_table = TABLE_BUILDERS.get(entity_type, format_generic_table)
    lines.append(build_table(results))
    return "\n".join(lines)


def _format_object(data: Mapping[str, Any], entity_type: str) -> str:
    singular = entity_type[:-1] if entity_type.endswith("s") else entity_type
    lines = [f"## {_capitalize(singular)}", ""]

    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, Mapping | list):
            lines.append(f"**{_format_key(key)}:**")
            lines.append("```json")
            lines.append(_dumps(value))
            lines.append("```")
        else:
            lines.append(f"**{_format_key(key)}:** {_scalar_text(value)}")

    return "\n".join(lines)


def format_users_table(users: list[dict[str, Any]]) -> str:
    lines = ["| ID | Name | Type | Email |", "|---|---|---|---|"]
    for user in users:
        email = (user.get("person") or {}).get("email") or "-"
        lines.append(
            f"| {_cell(user.get('id'))} | {_cell(user.get('name') or '-')} "
            f"| {_cell(user.get('type') or '-')} | {_cell(email)} |"
        )
    return "\n".join(lines)


def format_pages_table(pages: list[dict[str, Any]]) -> str:
    lines = ["| ID | Title | Created | Last Edited |", "|---|---|---|---|"]
    for page in pages:
        lines.append(
            f"| {_cell(page.get('id'))} | {_cell(get_page_title(page))} "
            f"| {_date_part(page.get('created_time'))} "
            f"| {_date_part(page.get('last_edited_time'))} |"
        )
    return "\n".join(lines)


def format_databases_table(databases: list[dict[str, Any]]) -> str:
    lines = ["| ID | Title | Created | Properties |", "|---|---|---|---|"]
    for database in databases:
        title = rich_text_to_plain(database.get("title"))
        property_count = len(database.get("properties") or {})
        lines.append(
            f"| {_cell(database.get('id'))} | {_cell(title or '-')} "
            f"| {_date_part(database.get('created_time'))} | {property_count} |"
        )
    return "\n".join(lines)


def format_blocks_table(blocks: list[dict[str, Any]]) -> str:
    lines = ["| ID | Type | Has Children |", "|---|---|---|"]
    for block in blocks:
        has_children = "Yes" if block.get("has_children") else "No"
        lines.append(f"| {_cell(block.get('id'))} | {_cell(block.get('type'))} | {has_children} |")
    return "\n".join(lines)


def format_comments_table(comments: list[dict[str, Any]]) -> str:
    lines = ["| ID | Text | Created |", "|---|---|---|"]
    for comment in comments:
        # The ellipsis is appended even when nothing was cut off
        text = rich_text_to_plain(comment.get("rich_text"))[:COMMENT_PREVIEW_LENGTH]
        lines.append(
            f"| {_cell(comment.get('id'))} | {_cell(text)}... "
            f"| {_date_part(comment.get('created_time'))} |"
        )
    return "\n".join(lines)


def format_generic_table(items: list[Any]) -> str:
    """Table over the first item's keys (at most five columns)."""
    if not items:
        return "_No items_"

    first = items[0] if isinstance(items[0], Mapping) else {}
    keys = list(first.keys())[:GENERIC_TABLE_MAX_COLUMNS]

    header = " | ".join(_cell(key) for key in keys)
    lines = [f"| {header} |", f"|{'|'.join('---' for _ in keys)}|"]
    for item in items:
        record = item if isinstance(item, Mapping) else {}
        values = [
            "-"
            if record.get(key) is None
            else _cell(_scalar_text(record[key])[:GENERIC_TABLE_CELL_LENGTH])
            for key in keys
        ]
        lines.append(f"| {' | '.join(values)} |")
    return "\n".join(lines)


TableBuilder = Callable[[list[Any]], str]

# Entity label -> table used for list results in markdown
TABLE_BUILDERS: dict[str, TableBuilder] = {
    "users": format_users_table,
    "pages": format_pages_table,
    "databases": format_databases_table,
    "blocks": format_blocks_table,
    "comments": format_comments_table,
}
