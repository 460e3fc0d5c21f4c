"""
End-to-end tests for pipeline.py: bytes in, bytes out.

Run: pytest test_pipeline.py
"""

import sys
import zipfile
from io import BytesIO

import pytest

from _docx_fixtures import del_run, dele, ins, make_docx, para, run
from redreview import (
    ChangeNotFound,
    InvalidPackage,
    InvalidRequest,
    extract_all,
    extract_changes,
    extract_comments,
    redline,
)
from redreview.config import DOCUMENT_PART
from redreview.models import ChangeKind, ChangeResolution
from redreview.pipeline import build_request, group_changes, review


def _sample_docx():
    return make_docx(
        para(run("The Supplier shall deliver "), ins("3", "Bob", run("promptly")), run(".")),
        para(run("Payment is due "), dele("5", "Bob", del_run("within 30 days")), ins("7", "Bob", run("on receipt"))),
        comments=(
            '<w:comment w:id="0" w:author="Alice" w:initials="A">'
            "<w:p><w:r><w:t>Is this agreed?</w:t></w:r></w:p></w:comment>"
        ),
    )


def _other_parts(docx_bytes):
    with zipfile.ZipFile(BytesIO(docx_bytes)) as zf:
        return {info.filename: zf.read(info) for info in zf.infolist() if info.filename != DOCUMENT_PART}


def test_alice_insertion_reject_round_trip():
    docx_bytes = make_docx(para(ins("5", "Alice", run("hello"))))

    changes = extract_changes(docx_bytes)
    assert [(c.id, c.kind, c.author, c.text) for c in changes] == [("5", ChangeKind.INSERTION, "Alice", "hello")]

    updated = redline(docx_bytes, "5", "insertion", "reject")
    assert extract_changes(updated) == []
    print("PASS: Alice insertion reject round trip")


def test_accept_removes_change_from_listing():
    updated = redline(_sample_docx(), "3", "insertion", "accept")

    ids = [(c.kind, c.id) for c in extract_changes(updated)]
    assert (ChangeKind.INSERTION, "3") not in ids
    assert ids == [(ChangeKind.INSERTION, "7"), (ChangeKind.DELETION, "5")]


def test_review_leaves_other_parts_untouched():
    original = _sample_docx()
    updated = redline(original, "5", "deletion", "reject")

    assert _other_parts(updated) == _other_parts(original)


def test_proposal_id_exceeds_every_existing_id():
    request = build_request("7", "Insertion", " ACCEPT ", proposed_text="upon invoice", reviewer_name="Alice")
    result = review(_sample_docx(), request)

    assert result.outcome.resolution == ChangeResolution.SUPERSEDED
    assert result.outcome.new_change_id == "8"

    changes = extract_changes(result.doc_bytes)
    proposal = [c for c in changes if c.id == "8"][0]
    assert proposal.kind == ChangeKind.INSERTION
    assert proposal.author == "Alice"
    assert proposal.text == "upon invoice"
    assert proposal.date is not None
    assert all(int(c.id) < 8 for c in changes if c.id != "8")


def test_sequential_reviews_chain_through_bytes():
    docx_bytes = _sample_docx()
    for change_id, kind in (("3", "insertion"), ("7", "insertion"), ("5", "deletion")):
        docx_bytes = redline(docx_bytes, change_id, kind, "accept")

    assert extract_changes(docx_bytes) == []


def test_not_found_produces_no_bytes():
    with pytest.raises(ChangeNotFound):
        redline(_sample_docx(), "99", "deletion", "accept")


def test_invalid_fields_raise_invalid_request():
    with pytest.raises(InvalidRequest):
        redline(_sample_docx(), "3", "formatting", "accept")
    with pytest.raises(InvalidRequest):
        redline(_sample_docx(), "", "insertion", "accept")
    with pytest.raises(InvalidRequest):
        build_request("3", "insertion", "")


def test_default_reviewer_comes_from_environment(monkeypatch):
    monkeypatch.setenv("REDREVIEW_DEFAULT_REVIEWER", "Bob")
    result = review(_sample_docx(), build_request("3", "insertion", "accept", "swiftly", None))

    assert result.outcome.reviewer_name == "Bob"
    proposal = [c for c in extract_changes(result.doc_bytes) if c.id == "8"][0]
    assert proposal.author == "Bob"


def test_unedited_review_keeps_document_declaration():
    original = _sample_docx()
    updated = redline(original, "3", "insertion", "accept")

    with zipfile.ZipFile(BytesIO(original)) as zf:
        source_head = zf.read(DOCUMENT_PART)[:60]
    with zipfile.ZipFile(BytesIO(updated)) as zf:
        assert zf.read(DOCUMENT_PART)[:60] == source_head


def test_control_characters_are_invalid_request():
    with pytest.raises(InvalidRequest) as exc:
        redline(_sample_docx(), "3", "insertion", "accept", "bad\x01text")
    assert exc.value.cause is not None


def test_garbage_input_is_invalid_package():
    with pytest.raises(InvalidPackage):
        extract_changes(b"PK\x03\x04 broken")


def test_error_payload_shape():
    with pytest.raises(ChangeNotFound) as exc:
        redline(_sample_docx(), "99", "insertion", "accept")
    payload = exc.value.to_dict()
    assert set(payload) == {"error", "details"}
    assert "99" in payload["error"]


def test_extract_all_and_comments():
    changes, comments = extract_all(_sample_docx())

    assert len(changes) == 3
    assert [(c.id, c.author, c.text) for c in comments] == [("0", "Alice", "Is this agreed?")]
    assert extract_comments(_sample_docx()) == comments


def test_group_changes_without_headings():
    groups = group_changes(_sample_docx())

    assert all(g.section_name == "Unknown Section" for g in groups.values())
    assert sum(len(g.changes) for g in groups.values()) == 3


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
