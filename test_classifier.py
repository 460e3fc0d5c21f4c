"""
Tests for classifier.py: approximate heading assignment and grouping.

Run: pytest test_classifier.py
"""

import datetime
import sys

import pytest

from redreview.classifier import classify, group_changes_by_section, parse_date, section_label
from redreview.models import Change, ChangeKind, Heading

HEADINGS = [
    Heading(level=1, number="1", title="Confidentiality Obligations", id="section-confidentiality-obligations"),
    Heading(level=1, number="2", title="Payment Terms", id="section-payment-terms"),
    Heading(level=1, number="3", title="Governing Law", id="section-governing-law"),
]


def _change(text, section_id=None, date=None, change_id="1"):
    return Change(id=change_id, kind=ChangeKind.INSERTION, author="Alice", date=date, text=text, section_id=section_id)


def test_word_overlap_wins():
    change = _change("the confidentiality period lasts five years", section_id="section-99")
    assert classify(change, HEADINGS).id == "section-confidentiality-obligations"


def test_short_text_falls_back_to_position():
    """Ten characters or fewer never match by words."""
    change = _change("Payment", section_id="section-0")
    assert classify(change, HEADINGS).id == "section-confidentiality-obligations"


def test_position_scale():
    assert classify(_change("xyz", section_id="section-50"), HEADINGS).title == "Payment Terms"
    assert classify(_change("xyz", section_id="section-250"), HEADINGS).title == "Governing Law"
    assert classify(_change("xyz"), HEADINGS).title == "Confidentiality Obligations"


def test_headings_with_only_short_words_never_match_by_words():
    headings = [Heading(level=1, title="Law", id="a"), Heading(level=1, title="Tax", id="b")]
    change = _change("applicable law and tax rules", section_id="section-60")
    # Positional: floor(60 / 100 * 2) = 1
    assert classify(change, headings).id == "b"


def test_no_headings_is_unknown_section():
    change = _change("anything at all here")
    assert classify(change, []) is None
    assert section_label(change, []) == "Unknown Section"
    assert section_label(_change("late payment interest applies"), HEADINGS) == "Payment Terms"


def test_groups_sorted_newest_first():
    changes = [
        _change("confidentiality applies to affiliates", date="2024-01-01T00:00:00Z", change_id="1"),
        _change("confidentiality ends on termination", change_id="2"),
        _change("confidentiality covers oral disclosures", date="2024-06-01T12:00:00Z", change_id="3"),
        _change("Payment", section_id="section-40", date="2023-01-01T00:00:00Z", change_id="4"),
    ]
    groups = group_changes_by_section(changes, HEADINGS)

    conf = groups["section-confidentiality-obligations"]
    assert conf.section_name == "Confidentiality Obligations"
    assert [c.id for c in conf.changes] == ["3", "1", "2"]
    assert conf.latest_date == datetime.datetime(2024, 6, 1, 12, tzinfo=datetime.timezone.utc)

    payment = groups["section-payment-terms"]
    assert [c.id for c in payment.changes] == ["4"]
    print("PASS: groups sorted newest first")


def test_groups_without_headings_use_locator():
    groups = group_changes_by_section([_change("a", section_id="section-2"), _change("b")], [])

    assert set(groups) == {"section-2", "unknown"}
    assert all(g.section_name == "Unknown Section" for g in groups.values())
    assert groups["unknown"].latest_date is None


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-03-01T10:00:00Z", datetime.datetime(2024, 3, 1, 10, tzinfo=datetime.timezone.utc)),
        ("2024-03-01T10:00:00", datetime.datetime(2024, 3, 1, 10, tzinfo=datetime.timezone.utc)),
        ("not a date", None),
        (None, None),
    ],
)
def test_parse_date(value, expected):
    assert parse_date(value) == expected


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
