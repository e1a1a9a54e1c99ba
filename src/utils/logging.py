"""Structured logging for the Notion MCP gateway.

Importing this module configures structlog once for the whole process. Output is a
colored console rendering when NOTION_MCP_ENVIRONMENT is 'local' and one JSON object per
line everywhere else; set LOG_RENDERER=console|json to force either one.

```
from src.utils.logging import get_logger

logger = get_logger(__name__)
logger.info("Page fetched", page_id="abc")
```

## Request context

Values bound with add_log_context() (or the LogContext context manager) ride along on
every record emitted in the same async context, including records from stdlib loggers
such as httpx and uvicorn:

```
add_log_context(tool_name="notion_search", token_preview="secr...1234")
logger.info("Calling Notion")  # carries tool_name and token_preview
```

RequestLoggingMiddleware calls clear_log_context() at the start of every MCP message so
one tenant's context never leaks into the next request.

## Secrets

Integration tokens must never be logged. redact_secrets_processor masks any value logged
under a credential key, including inside a `headers` mapping; log `token_preview` instead.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, MutableMapping
from typing import Any

import structlog
import structlog.contextvars

from src.utils.config import get_notion_mcp_environment

SENSITIVE_LOG_KEYS = frozenset(
    {"authorization", "integration_token", "token", "x-notion-integration-token"}
)

UVICORN_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


def redact_secrets_processor(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor that masks credential values, including inside a logged `headers` mapping."""
    for key in list(event_dict.keys()):
        if key.lower() in SENSITIVE_LOG_KEYS and event_dict[key]:
            event_dict[key] = "[REDACTED]"
    headers = event_dict.get("headers")
    if isinstance(headers, Mapping):
        event_dict["headers"] = {
            name: "[REDACTED]" if name.lower() in SENSITIVE_LOG_KEYS else value
            for name, value in headers.items()
        }
    return event_dict


def _is_local_environment() -> bool:
    return get_notion_mcp_environment() == "local"


def _get_log_renderer() -> structlog.types.Processor:
    """Pick the final renderer: LOG_RENDERER wins, otherwise console locally and JSON elsewhere."""
    override = os.getenv("LOG_RENDERER", "").lower()
    if override in ("console", "json"):
        use_console = override == "console"
    else:
        use_console = _is_local_environment()

    if not use_console:
        return structlog.processors.JSONRenderer()

    return structlog.dev.ConsoleRenderer(
        colors=True,
        pad_event=0,
        force_colors=False,
        repr_native_str=False,
        exception_formatter=structlog.dev.plain_traceback,
        sort_keys=True,
        event_key="message",
    )


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.contextvars.merge_contextvars,
        structlog.processors.EventRenamer("message"),
        redact_secrets_processor,
    ]


def configure_logging() -> None:
    """Route structlog and stdlib logging through a single root handler.

    Safe to call more than once; each call replaces the root handler.
    """
    shared = _shared_processors()

    structlog.configure(
        processors=[
            *shared,
            # filter_by_level needs a stdlib logger, so it only runs on structlog records
            structlog.stdlib.filter_by_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_get_log_renderer(),
            foreign_pre_chain=shared,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root_logger.setLevel(level)
    if level <= logging.DEBUG:
        for name in UVICORN_LOGGERS:
            uvicorn_logger = logging.getLogger(name)
            if uvicorn_logger.level > level:
                uvicorn_logger.setLevel(level)

    # Library loggers that installed their own handlers (fastmcp, httpx) get ours instead
    for existing in logging.Logger.manager.loggerDict.values():
        if isinstance(existing, logging.Logger) and existing.handlers:
            existing.handlers.clear()
            existing.addHandler(handler)
            existing.propagate = False


configure_logging()


def add_log_context(**kwargs: Any) -> None:
    """Bind values to every subsequent log record in the current async context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def remove_log_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


# Context manager: binds values on entry and restores the previous ones on exit
LogContext = structlog.contextvars.bound_contextvars


def get_logger(name: str, **kwargs: Any) -> structlog.BoundLogger:
    return structlog.get_logger(name, **kwargs)


def get_uvicorn_log_config() -> dict[str, Any]:
    """Uvicorn `log_config` that renders server and access logs like our own records."""
    handler_config = {"handlers": ["default"], "level": "INFO", "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": _get_log_renderer(),
                "foreign_pre_chain": [
                    structlog.stdlib.add_log_level,
                    structlog.stdlib.add_logger_name,
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.contextvars.merge_contextvars,
                    structlog.processors.EventRenamer("message"),
                    redact_secrets_processor,
                ],
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "": dict(handler_config),
            **{name: dict(handler_config) for name in UVICORN_LOGGERS},
        },
    }
