"""
Approximate mapping of tracked changes onto document headings.

Only UI grouping depends on this; accept/reject never does, so being wrong
here is acceptable.
"""

import datetime
import math
import re
from typing import Dict, List, Optional

from redreview.config import UNKNOWN_SECTION
from redreview.models import Change, Heading, SectionGroup

MIN_TEXT_LENGTH = 10
MIN_WORD_LENGTH = 4
OVERLAP_THRESHOLD = 0.3
# Locator numbers are treated as a percentage through the document.
POSITION_SCALE = 100


def classify(change: Change, headings: List[Heading]) -> Optional[Heading]:
    if not headings:
        return None

    heading = _match_by_words(change, headings)
    if heading is not None:
        return heading

    # Fallback: use document order as a rough approximation
    position = _extract_position(change.section_id or change.paragraph_id or "0")
    index = min(math.floor(position / POSITION_SCALE * len(headings)), len(headings) - 1)
    return headings[index]


def section_label(change: Change, headings: List[Heading]) -> str:
    heading = classify(change, headings)
    return heading.title if heading is not None else UNKNOWN_SECTION


def group_changes_by_section(changes: List[Change], headings: List[Heading]) -> Dict[str, SectionGroup]:
    """
    Buckets changes under their best heading.
    Changes are ordered newest first inside each bucket; undated ones sink to the end.
    """
    grouped: Dict[str, SectionGroup] = {}

    for change in changes:
        heading = classify(change, headings)
        if heading is not None:
            key, name = heading.id, heading.title
        else:
            key, name = change.section_id or change.paragraph_id or "unknown", UNKNOWN_SECTION

        group = grouped.get(key)
        if group is None:
            group = grouped[key] = SectionGroup(section_id=key, section_name=name)
        group.changes.append(change)

        changed_at = parse_date(change.date)
        if changed_at and (group.latest_date is None or changed_at > group.latest_date):
            group.latest_date = changed_at

    for group in grouped.values():
        group.changes.sort(key=_sort_key, reverse=True)

    return grouped


def parse_date(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parses w:date values ("2024-03-01T10:00:00Z"); anything unreadable is None."""
    if not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _match_by_words(change: Change, headings: List[Heading]) -> Optional[Heading]:
    if not change.text or len(change.text) <= MIN_TEXT_LENGTH:
        return None

    change_text = change.text.lower()
    for heading in headings:
        words = [w for w in heading.title.lower().split() if len(w) >= MIN_WORD_LENGTH]
        if not words:
            continue
        matched = sum(1 for w in words if w in change_text)
        if matched > 0 and matched / len(words) > OVERLAP_THRESHOLD:
            return heading
    return None


def _extract_position(locator: str) -> int:
    m = re.search(r"(\d+)", locator)
    return int(m.group(1)) if m else 0


def _sort_key(change: Change) -> float:
    changed_at = parse_date(change.date)
    return changed_at.timestamp() if changed_at else 0.0
