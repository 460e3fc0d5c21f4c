import json
from pathlib import Path
from typing import Optional

import structlog
from mcp.server.fastmcp import FastMCP

from redreview.config import Settings, configure_logging
from redreview.errors import RedlineError
from redreview.pipeline import build_request, extract_changes, extract_comments, review
from redreview.pipeline import group_changes as _group_changes
from redreview.sections import parse_sections

# --- LOGGING CONFIGURATION ---
# MCP communicates over stdio.
# CRITICAL: All logs must go to stderr. Any print to stdout will break the JSON-RPC protocol.
_settings = Settings.from_env()
configure_logging(_settings.log_level, json_output=True)

logger = structlog.get_logger(__name__)

mcp = FastMCP("Redreview Tracked Change Service")


def _read_file_bytes(path: str) -> bytes:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(p, "rb") as f:
        return f.read()


def _error(prefix: str, e: Exception) -> str:
    logger.warning(prefix, error=str(e), error_type=type(e).__name__)
    if isinstance(e, RedlineError):
        return f"{prefix}: {json.dumps(e.to_dict())}"
    return f"{prefix}: {str(e)}"


@mcp.tool()
def list_tracked_changes(file_path: str) -> str:
    """
    Lists tracked insertions and deletions in a DOCX file as JSON.

    Each entry has: id, kind ('insertion' | 'deletion'), author, date, text,
    section_id, paragraph_id. Use `id` + `kind` with review_change.
    Note: an insertion and a deletion may share the same id.
    """
    try:
        changes = extract_changes(_read_file_bytes(file_path))
        return json.dumps([c.model_dump(mode="json") for c in changes], indent=2)
    except Exception as e:
        return _error("Error reading changes", e)


@mcp.tool()
def list_comments(file_path: str) -> str:
    """Lists comments (with thread parent ids and resolved flags) in a DOCX file as JSON."""
    try:
        comments = extract_comments(_read_file_bytes(file_path))
        return json.dumps([c.model_dump(mode="json") for c in comments], indent=2)
    except Exception as e:
        return _error("Error reading comments", e)


@mcp.tool()
def list_sections(file_path: str) -> str:
    """Lists detected headings (level, number, title, id) in a DOCX file as JSON."""
    try:
        headings = parse_sections(_read_file_bytes(file_path))
        return json.dumps([h.model_dump(mode="json") for h in headings], indent=2)
    except Exception as e:
        return _error("Error parsing sections", e)


@mcp.tool()
def group_changes(file_path: str) -> str:
    """Returns tracked changes grouped under their most plausible heading (approximate)."""
    try:
        groups = _group_changes(_read_file_bytes(file_path))
        return json.dumps({k: g.model_dump(mode="json") for k, g in groups.items()}, indent=2)
    except Exception as e:
        return _error("Error grouping changes", e)


@mcp.tool()
def review_change(
    file_path: str,
    change_id: str,
    change_type: str,
    action: str,
    proposed_text: Optional[str] = None,
    reviewer_name: Optional[str] = None,
    output_path: Optional[str] = None,
) -> str:
    """
    Accepts or rejects one tracked change and saves the updated DOCX.

    Args:
        file_path: Absolute path to the source file.
        change_id: Id from list_tracked_changes.
        change_type: 'insertion' or 'deletion'.
        action: 'accept' or 'reject'.
        proposed_text: Optional. With 'accept', replaces the change with this text as a new
                       tracked insertion authored by reviewer_name.
        reviewer_name: Name recorded on a counter-proposal.
        output_path: Optional. Defaults to <name>_reviewed.docx next to the source
                     (or in place if the source already ends in _reviewed).
    """
    try:
        request = build_request(change_id, change_type, action, proposed_text, reviewer_name)
        result = review(_read_file_bytes(file_path), request, settings=_settings)

        if not output_path:
            p = Path(file_path)
            if p.stem.endswith("_reviewed"):
                output_path = str(p)
            else:
                output_path = str(p.parent / f"{p.stem}_reviewed{p.suffix}")

        with open(output_path, "wb") as f:
            f.write(result.doc_bytes)

        outcome = result.outcome
        message = f"Change {outcome.change_type.value}:{outcome.change_id} {outcome.resolution.value}."
        if outcome.new_change_id:
            message += f" Proposal tracked as insertion:{outcome.new_change_id} ({outcome.preview})."
        return f"{message} Saved to: {output_path}"

    except Exception as e:
        return _error("Error reviewing change", e)


def main():
    mcp.run()


if __name__ == "__main__":
    main()
