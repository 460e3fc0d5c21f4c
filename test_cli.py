"""
Tests for cli.py: subcommands against files on disk.

Run: pytest test_cli.py
"""

import json
import sys

import pytest

from _docx_fixtures import del_run, dele, ins, make_docx, para, run
from redreview.cli import main
from redreview.pipeline import extract_changes


@pytest.fixture
def contract(tmp_path):
    path = tmp_path / "contract.docx"
    path.write_bytes(
        make_docx(
            para(run("Fees are "), dele("2", "Bob", del_run("fixed")), ins("4", "Bob", run("variable"))),
        )
    )
    return path


def test_changes_json(contract, capsys):
    main(["changes", str(contract), "--json"])

    data = json.loads(capsys.readouterr().out)
    assert [(c["kind"], c["id"], c["text"]) for c in data] == [
        ("insertion", "4", "variable"),
        ("deletion", "2", "fixed"),
    ]


def test_changes_text_listing(contract, capsys):
    main(["changes", str(contract)])

    out = capsys.readouterr().out
    assert "[+] insertion:4 Bob: variable" in out
    assert "[-] deletion:2 Bob: fixed" in out


def test_reject_writes_reviewed_copy(contract):
    main(["reject", str(contract), "4", "-t", "insertion"])

    reviewed = contract.with_name("contract_reviewed.docx")
    assert reviewed.exists()
    assert [c.id for c in extract_changes(reviewed.read_bytes())] == ["2"]
    # Source file is left alone
    assert len(extract_changes(contract.read_bytes())) == 2


def test_accept_with_proposal(contract, tmp_path, capsys):
    out_path = tmp_path / "out.docx"
    main(["accept", str(contract), "2", "--type", "deletion", "--propose", "negotiated", "--reviewer", "Alice", "-o", str(out_path)])

    changes = extract_changes(out_path.read_bytes())
    proposal = [c for c in changes if c.text == "negotiated"][0]
    assert proposal.id == "5"
    assert proposal.author == "Alice"
    assert "{--fixed--}{++negotiated++}" in capsys.readouterr().err


def test_unknown_change_exits_nonzero(contract, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["accept", str(contract), "99", "-t", "insertion"])

    assert exc.value.code == 1
    assert "99" in capsys.readouterr().err
    assert not contract.with_name("contract_reviewed.docx").exists()


def test_control_characters_in_proposal_exit_nonzero(contract, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["accept", str(contract), "2", "-t", "deletion", "--propose", "bad\x01text"])

    assert exc.value.code == 1
    assert "Missing or invalid review fields" in capsys.readouterr().err


def test_reviewer_default_follows_environment(contract, monkeypatch):
    monkeypatch.setenv("REDREVIEW_DEFAULT_REVIEWER", "Contracts Desk")
    main(["accept", str(contract), "4", "-t", "insertion", "--propose", "floating"])

    changes = extract_changes(contract.with_name("contract_reviewed.docx").read_bytes())
    assert [c.author for c in changes if c.text == "floating"] == ["Contracts Desk"]


def test_missing_file_exits_nonzero(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main(["changes", str(tmp_path / "missing.docx")])
    assert exc.value.code == 1


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
