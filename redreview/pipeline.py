"""
Request-scoped entry points.

Every call decodes the bytes it is given, builds its own trees, and returns
fresh results. Nothing is cached between calls: the bytes returned by one
review become the input of the next.
"""

from typing import Dict, List, NamedTuple, Optional, Union

import structlog
from pydantic import ValidationError

from redreview.classifier import group_changes_by_section
from redreview.config import COMMENTS_EXTENDED_PART, COMMENTS_PART, DOCUMENT_PART, Settings
from redreview.errors import InvalidRequest
from redreview.ingest import extract as _extract
from redreview.ingest import extract_changes as _extract_changes
from redreview.models import (
    Change,
    ChangeKind,
    Comment,
    ReviewActionType,
    ReviewOutcome,
    ReviewRequest,
    SectionGroup,
)
from redreview.package import DocxPackage
from redreview.redline.comments import CommentsReader
from redreview.redline.engine import RedlineEngine
from redreview.sections import parse_sections

logger = structlog.get_logger(__name__)


class RedlineResult(NamedTuple):
    doc_bytes: bytes
    outcome: ReviewOutcome


def extract_changes(file_bytes: bytes) -> List[Change]:
    package = DocxPackage.from_bytes(file_bytes)
    return _extract_changes(package.load_tree(DOCUMENT_PART))


def extract_comments(file_bytes: bytes) -> List[Comment]:
    package = DocxPackage.from_bytes(file_bytes)
    reader = CommentsReader(
        package.load_optional_tree(COMMENTS_PART),
        package.load_optional_tree(COMMENTS_EXTENDED_PART),
    )
    return reader.extract()


def extract_all(file_bytes: bytes):
    """(changes, comments) from a single archive decode."""
    package = DocxPackage.from_bytes(file_bytes)
    return _extract(
        package.load_tree(DOCUMENT_PART),
        package.load_optional_tree(COMMENTS_PART),
        package.load_optional_tree(COMMENTS_EXTENDED_PART),
    )


def review(file_bytes: bytes, request: ReviewRequest, settings: Optional[Settings] = None) -> RedlineResult:
    """
    Applies one reviewer decision and returns the new package bytes.
    Any failure raises before bytes are produced. Without explicit settings the
    environment decides the default reviewer name.
    """
    package = DocxPackage.from_bytes(file_bytes)
    tree = package.load_tree(DOCUMENT_PART)

    settings = settings or Settings.from_env()
    outcome = RedlineEngine(tree, default_reviewer=settings.default_reviewer).apply_request(request)

    doc_bytes = package.write(DOCUMENT_PART, tree.serialize())
    logger.info(
        "Document updated",
        change_id=request.change_id,
        resolution=outcome.resolution.value,
        size=len(doc_bytes),
    )
    return RedlineResult(doc_bytes, outcome)


def build_request(
    change_id: str,
    change_type: Union[ChangeKind, str],
    action: Union[ReviewActionType, str],
    proposed_text: Optional[str] = None,
    reviewer_name: Optional[str] = None,
) -> ReviewRequest:
    """Validates loose form-style fields into a ReviewRequest."""
    if not change_id or not change_type or not action:
        raise InvalidRequest("Missing required fields")
    try:
        return ReviewRequest(
            change_id=change_id,
            change_type=change_type,
            action=action,
            proposed_text=proposed_text,
            reviewer_name=reviewer_name,
        )
    except ValidationError as e:
        raise InvalidRequest("Missing or invalid review fields", cause=e) from e


def redline(
    file_bytes: bytes,
    change_id: str,
    change_type: Union[ChangeKind, str],
    action: Union[ReviewActionType, str],
    proposed_text: Optional[str] = None,
    reviewer_name: Optional[str] = None,
) -> bytes:
    """Form-field flavoured entry point: tags arrive as plain strings."""
    if not file_bytes:
        raise InvalidRequest("Missing required fields")
    request = build_request(change_id, change_type, action, proposed_text, reviewer_name)
    return review(file_bytes, request).doc_bytes


def group_changes(file_bytes: bytes) -> Dict[str, SectionGroup]:
    return group_changes_by_section(extract_changes(file_bytes), parse_sections(file_bytes))
