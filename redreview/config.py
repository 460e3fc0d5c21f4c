import logging
import os
import sys

import structlog
from pydantic import BaseModel, Field

DOCUMENT_PART = "word/document.xml"
COMMENTS_PART = "word/comments.xml"
COMMENTS_EXTENDED_PART = "word/commentsExtended.xml"

DEFAULT_REVIEWER = "Anonymous Reviewer"
UNKNOWN_AUTHOR = "Unknown"
UNKNOWN_SECTION = "Unknown Section"


def _env_flag(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """
    Runtime settings shared by the CLI and the MCP server.
    Part names are fixed by the OOXML layout and live as module constants.
    """

    default_reviewer: str = Field(DEFAULT_REVIEWER, description="Author used for proposals without a reviewer.")
    log_level: str = Field("INFO", description="Standard logging level name.")
    log_json: bool = Field(False, description="Render structlog events as JSON lines.")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            default_reviewer=os.environ.get("REDREVIEW_DEFAULT_REVIEWER") or DEFAULT_REVIEWER,
            log_level=os.environ.get("REDREVIEW_LOG_LEVEL", "INFO").upper(),
            log_json=_env_flag("REDREVIEW_LOG_JSON"),
        )


def configure_logging(level: str = "INFO", json_output: bool = False):
    """
    Route stdlib logging and structlog to stderr.
    stdout stays clean for CLI output and the MCP JSON-RPC stream.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(stream=sys.stderr, level=log_level, force=True)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
