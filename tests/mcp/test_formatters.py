"""Tests for tool response rendering."""

import json

import pytest

from src.clients.notion_errors import NotFoundError, NotionTransportError, RateLimitError
from src.clients.notion_models import Block, Comment, Database, Page, PagingEnvelope, User
from src.mcp.utils.formatters import (
    TABLE_BUILDERS,
    format_error,
    format_mutation,
    format_response,
    get_page_title,
    rich_text_to_plain,
)

USER = {
    "object": "user",
    "id": "user-1",
    "type": "person",
    "name": "Ada Lovelace",
    "avatar_url": None,
    "person": {"email": "ada@example.com"},
}

PAGE = {
    "object": "page",
    "id": "page-1",
    "created_time": "2024-01-02T03:04:00.000Z",
    "last_edited_time": "2024-01-05T10:00:00.000Z",
    "created_by": {"object": "user", "id": "user-1"},
    "parent": {"type": "database_id", "database_id": "db-1"},
    "archived": False,
    "properties": {
        "Done": {"id": "d", "type": "checkbox", "checkbox": True},
        "Name": {
            "id": "title",
            "type": "title",
            "title": [
                {
                    "type": "text",
                    "text": {"content": "Launch ", "link": None},
                    "annotations": {"bold": True, "color": "red"},
                    "plain_text": "Launch ",
                },
                {
                    "type": "mention",
                    "mention": {"type": "date", "date": {"start": "2024-02-01"}},
                    "plain_text": "February 1, 2024",
                },
            ],
        },
        "Rating": {"id": "r", "type": "verification", "verification": {"state": "verified"}},
    },
    "url": "https://www.notion.so/page-1",
}

DATABASE = {
    "object": "database",
    "id": "db-1",
    "created_time": "2023-12-31T23:00:00.000Z",
    "last_edited_time": "2024-01-01T00:00:00.000Z",
    "title": [{"type": "text", "text": {"content": "Roadmap"}, "plain_text": "Roadmap"}],
    "description": [],
    "properties": {
        "Name": {"id": "title", "name": "Name", "type": "title", "title": {}},
        "Done": {"id": "d", "name": "Done", "type": "checkbox", "checkbox": {}},
    },
    "parent": {"type": "page_id", "page_id": "page-0"},
    "is_inline": True,
}

BLOCK = {
    "object": "block",
    "id": "block-1",
    "parent": {"type": "page_id", "page_id": "page-1"},
    "type": "heading_2",
    "created_time": "2024-01-01T00:00:00.000Z",
    "last_edited_time": "2024-01-01T00:00:00.000Z",
    "has_children": True,
    "heading_2": {"rich_text": [], "is_toggleable": True},
}

COMMENT = {
    "object": "comment",
    "id": "comment-1",
    "parent": {"type": "block_id", "block_id": "block-1"},
    "discussion_id": "discussion-1",
    "created_time": "2024-03-04T05:06:07.000Z",
    "last_edited_time": "2024-03-04T05:06:07.000Z",
    "created_by": {"object": "user", "id": "user-1"},
    "rich_text": [{"type": "equation", "equation": {"expression": "x^2"}, "plain_text": "x^2"}],
}


def _envelope(model, results, has_more=False, next_cursor=None):
    return PagingEnvelope[model].from_upstream(
        {"object": "list", "results": results, "has_more": has_more, "next_cursor": next_cursor}
    )


class TestJsonFormat:
    @pytest.mark.parametrize(
        "model, body",
        [(User, USER), (Page, PAGE), (Database, DATABASE), (Block, BLOCK), (Comment, COMMENT)],
    )
    def test_entities_round_trip(self, model, body):
        entity = model.model_validate(body)

        response = format_response(entity, "json", "entity")

        assert response.is_error is False
        assert model.model_validate(json.loads(response.text)) == entity

    def test_envelope_round_trips(self):
        envelope = _envelope(Page, [PAGE, PAGE], has_more=True, next_cursor="cur-9")

        parsed = json.loads(format_response(envelope, "json", "pages").text)

        assert parsed["hasMore"] is True
        assert parsed["nextCursor"] == "cur-9"
        assert PagingEnvelope[Page].model_validate(parsed) == envelope

    def test_output_mirrors_upstream_fields(self):
        page = Page.model_validate(PAGE)

        parsed = json.loads(format_response(page, "json", "page").text)

        assert parsed == PAGE

    def test_plain_data_is_dumped_as_is(self):
        data = {"object": "property_item", "number": 3, "nested": [1, {"a": None}]}
        assert json.loads(format_response(data, "json", "property").text) == data


class TestMarkdownPaginated:
    def test_empty_users(self):
        text = format_response(_envelope(User, []), "markdown", "users").text

        assert text.startswith("## Users\n\n**Count:** 0\n")
        assert "no items found" in text.lower()
        assert "| ID |" not in text
        assert "More available" not in text

    def test_users_table(self):
        no_name = {"object": "user", "id": "bot-1", "type": "bot", "bot": {}}
        text = format_response(_envelope(User, [USER, no_name]), "markdown", "users").text

        assert text == "\n".join(
            [
                "## Users",
                "",
                "**Count:** 2",
                "",
                "| ID | Name | Type | Email |",
                "|---|---|---|---|",
                "| user-1 | Ada Lovelace | person | ada@example.com |",
                "| bot-1 | - | bot | - |",
            ]
        )

    def test_more_available_shows_cursor(self):
        text = format_response(
            _envelope(User, [USER], has_more=True, next_cursor="abc123"), "markdown", "users"
        ).text

        assert "**More available:** Yes (cursor: `abc123`)" in text

    def test_pages_table(self):
        text = format_response(_envelope(Page, [PAGE]), "markdown", "pages").text

        assert "| ID | Title | Created | Last Edited |" in text
        assert "| page-1 | Launch February 1, 2024 | 2024-01-02 | 2024-01-05 |" in text

    def test_databases_table(self):
        text = TABLE_BUILDERS["databases"]([DATABASE, {**DATABASE, "id": "db-2", "title": []}])

        assert "| db-1 | Roadmap | 2023-12-31 | 2 |" in text
        assert "| db-2 | - | 2023-12-31 | 2 |" in text

    def test_blocks_table(self):
        text = TABLE_BUILDERS["blocks"]([BLOCK, {**BLOCK, "id": "block-2", "has_children": False}])

        assert "| block-1 | heading_2 | Yes |" in text
        assert "| block-2 | heading_2 | No |" in text

    def test_comments_table_truncates_at_fifty(self):
        long_text = "x" * 80
        comment = {**COMMENT, "rich_text": [{"plain_text": long_text}]}

        text = TABLE_BUILDERS["comments"]([comment])

        assert f"| comment-1 | {'x' * 50}... | 2024-03-04 |" in text

    def test_comments_table_appends_ellipsis_even_when_not_truncated(self):
        # Pinned on purpose: the ellipsis is always appended, even for short comments.
        # Switch to "only when truncated" deliberately, not by accident.
        text = format_response(_envelope(Comment, [COMMENT]), "markdown", "comments").text

        assert "| comment-1 | x^2... | 2024-03-04 |" in text

    def test_cells_escape_pipes_and_flatten_newlines(self):
        user = {**USER, "name": "Ada | Countess\nof Lovelace"}
        comment = {**COMMENT, "rich_text": [{"plain_text": "a|b\nc"}]}

        users = TABLE_BUILDERS["users"]([user])
        comments = TABLE_BUILDERS["comments"]([comment])
        generic = format_response([{"note": "x|y"}], "markdown", "items").text

        assert "| user-1 | Ada \\| Countess of Lovelace | person | ada@example.com |" in users
        assert "| comment-1 | a\\|b c... | 2024-03-04 |" in comments
        assert generic.splitlines()[-1] == "| x\\|y |"
        assert len(users.splitlines()) == 3

    def test_unknown_label_uses_generic_table(self):
        text = format_response(_envelope(Page, [PAGE]), "markdown", "search results").text

        assert text.startswith("## Search results\n")
        assert "| object | id | created_time | last_edited_time | created_by |" in text
        assert "|---|---|---|---|---|" in text

    def test_every_label_has_a_builder(self):
        assert set(TABLE_BUILDERS) == {"users", "pages", "databases", "blocks", "comments"}


class TestMarkdownOther:
    def test_single_object(self):
        text = format_response(User.model_validate(USER), "markdown", "user").text

        assert text.startswith("## User\n\n")
        assert "**Id:** user-1" in text
        assert "**Name:** Ada Lovelace" in text
        assert "**Person:**\n```json\n" in text
        assert '"email": "ada@example.com"' in text
        # null fields are omitted
        assert "Avatar url" not in text

    def test_single_object_label_is_singularized(self):
        text = format_response({"id": "c1", "resolved": False}, "markdown", "comments").text

        assert text.startswith("## Comment\n")
        assert "**Resolved:** false" in text

    def test_camel_case_keys(self):
        text = format_response({"nextCursor": "c"}, "markdown", "thing").text

        assert "**Next Cursor:** c" in text

    def test_bare_sequence_uses_generic_table(self):
        items = [{"id": "a", "value": None, "text": "y" * 40}, {"id": "b"}]

        text = format_response(items, "markdown", "items").text

        assert text == "\n".join(
            [
                "| id | value | text |",
                "|---|---|---|",
                f"| a | - | {'y' * 30} |",
                "| b | - | - |",
            ]
        )

    def test_empty_bare_sequence(self):
        assert format_response([], "markdown", "items").text == "_No items_"

    def test_scalar(self):
        assert format_response(42, "markdown", "count").text == "42"


class TestRichText:
    def test_flattening_prefers_plain_text_then_content(self):
        assert rich_text_to_plain([{"plain_text": "a"}, {"text": {"content": "b"}}]) == "ab"

    def test_flattening_empty(self):
        assert rich_text_to_plain([]) == ""
        assert rich_text_to_plain(None) == ""

    def test_flattening_span_without_text(self):
        assert rich_text_to_plain([{"type": "mention"}, {"plain_text": "z"}]) == "z"

    def test_title_from_title_property(self):
        page = {"properties": {"Name": {"type": "title", "title": [{"plain_text": "Hello"}]}}}
        assert get_page_title(page) == "Hello"

    def test_title_without_title_property(self):
        page = {"properties": {"Done": {"type": "checkbox", "checkbox": False}}}
        assert get_page_title(page) == "Untitled"

    def test_title_from_model(self):
        assert get_page_title(Page.model_validate(PAGE)) == "Launch February 1, 2024"


class TestErrors:
    def test_retryable_error(self):
        response = format_error(RateLimitError("Rate limit exceeded", 30))

        assert response.is_error is True
        payload = json.loads(response.text)
        assert payload["error"] == "Error: Rate limit exceeded (retryable)"
        assert payload["details"]["retry_after_seconds"] == 30
        assert payload["details"]["code"] == "RATE_LIMITED"

    def test_non_retryable_error(self):
        payload = json.loads(format_error(NotFoundError("Page", "p1", "/pages/p1")).text)

        assert payload["error"] == "Error: Page not found: p1 (/pages/p1)"
        assert payload["details"]["endpoint"] == "/pages/p1"

    def test_transport_error(self):
        payload = json.loads(format_error(NotionTransportError("connection reset")).text)

        assert payload["error"] == "Error: connection reset"
        assert payload["details"]["retryable"] is False

    def test_arbitrary_failure_values(self):
        assert json.loads(format_error(ValueError("bad")).text) == {
            "error": "Error: bad",
            "details": {"name": "ValueError", "message": "bad"},
        }
        assert json.loads(format_error("weird").text)["error"] == "Error: weird"


def test_format_mutation():
    payload = json.loads(format_mutation("Block deleted", "block", Block.model_validate(BLOCK)))

    assert payload["success"] is True
    assert payload["message"] == "Block deleted"
    assert payload["block"] == BLOCK
