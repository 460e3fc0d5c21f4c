import argparse
import getpass
import json
import os
import sys
from pathlib import Path

from redreview import __version__
from redreview.config import Settings, configure_logging
from redreview.errors import RedlineError
from redreview.models import ChangeKind, ReviewActionType
from redreview.pipeline import build_request, extract_changes, extract_comments, group_changes, review
from redreview.sections import parse_sections


def _read_docx_bytes(path: Path) -> bytes:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    with open(path, "rb") as f:
        return f.read()


def _dump(items) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items], indent=2)


def handle_changes(args):
    changes = extract_changes(_read_docx_bytes(args.input))
    if args.json:
        print(_dump(changes))
        return

    print(f"Found {len(changes)} tracked changes:", file=sys.stderr)
    for c in changes:
        marker = "+" if c.kind == ChangeKind.INSERTION else "-"
        date = f" @ {c.date.split('T')[0]}" if c.date else ""
        print(f"[{marker}] {c.kind.value}:{c.id} {c.author}{date}: {c.text}")


def handle_comments(args):
    comments = extract_comments(_read_docx_bytes(args.input))
    if args.json:
        print(_dump(comments))
        return

    print(f"Found {len(comments)} comments:", file=sys.stderr)
    for c in comments:
        thread = f" (reply to {c.parent_id})" if c.parent_id else ""
        done = " [resolved]" if c.resolved else ""
        print(f"[Com:{c.id}] {c.author}{thread}{done}: {c.text}")


def handle_sections(args):
    headings = parse_sections(_read_docx_bytes(args.input))
    if args.json:
        print(_dump(headings))
        return

    for h in headings:
        indent = "  " * max(h.level - 1, 0)
        number = f"{h.number} " if h.number else ""
        print(f"{indent}{number}{h.title}")


def handle_groups(args):
    groups = group_changes(_read_docx_bytes(args.input))
    if args.json:
        print(json.dumps({k: g.model_dump(mode="json") for k, g in groups.items()}, indent=2))
        return

    for group in groups.values():
        print(f"{group.section_name} ({len(group.changes)} changes)")
        for c in group.changes:
            print(f"    {c.kind.value}:{c.id} {c.author}: {c.text}")


def handle_review(args):
    data = _read_docx_bytes(args.input)
    request = build_request(
        args.change_id,
        args.type,
        args.action,
        proposed_text=getattr(args, "propose", None),
        reviewer_name=args.reviewer,
    )

    result = review(data, request, settings=args.settings)

    output_path = args.output
    if not output_path:
        if args.input.stem.endswith("_reviewed"):
            output_path = args.input
        else:
            output_path = args.input.with_name(f"{args.input.stem}_reviewed.docx")

    with open(output_path, "wb") as f:
        f.write(result.doc_bytes)

    outcome = result.outcome
    print(f"✅ Saved to {output_path}", file=sys.stderr)
    print(f"{outcome.change_type.value}:{outcome.change_id} {outcome.resolution.value}", file=sys.stderr)
    if outcome.new_change_id:
        print(f"Proposal tracked as insertion:{outcome.new_change_id}", file=sys.stderr)
        print(outcome.preview, file=sys.stderr)


def main(argv=None):
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(prog="redreview", description="Review tracked changes in DOCX files")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    for name, handler, help_text in (
        ("changes", handle_changes, "List tracked insertions and deletions"),
        ("comments", handle_comments, "List comments and their threads"),
        ("sections", handle_sections, "List headings detected in the document"),
        ("groups", handle_groups, "List changes grouped by section"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("input", type=Path, help="Input DOCX file")
        p.add_argument("--json", action="store_true", help="Output raw JSON")
        p.set_defaults(func=handler)

    # REDREVIEW_DEFAULT_REVIEWER wins over the login name
    if os.environ.get("REDREVIEW_DEFAULT_REVIEWER"):
        default_reviewer = settings.default_reviewer
    else:
        try:
            default_reviewer = getpass.getuser()
        except Exception:
            default_reviewer = settings.default_reviewer

    for action in ReviewActionType:
        p = subparsers.add_parser(action.value, help=f"{action.value.capitalize()} one tracked change")
        p.add_argument("input", type=Path, help="Input DOCX file")
        p.add_argument("change_id", help="Change id as listed by 'redreview changes'")
        p.add_argument(
            "-t",
            "--type",
            choices=[k.value for k in ChangeKind],
            required=True,
            help="Kind of the tracked change",
        )
        p.add_argument("-o", "--output", type=Path, help="Output DOCX path (default: <input>_reviewed.docx)")
        p.add_argument(
            "--reviewer",
            type=str,
            default=default_reviewer,
            help=f"Author name for counter-proposals (default: '{default_reviewer}')",
        )
        if action == ReviewActionType.ACCEPT:
            p.add_argument("--propose", type=str, help="Accept with this replacement text as a new tracked insertion")
        p.set_defaults(func=handle_review, action=action.value)

    args = parser.parse_args(argv)
    args.settings = settings
    configure_logging(args.log_level, json_output=settings.log_json)

    try:
        args.func(args)
    except RedlineError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        if e.cause is not None:
            print(f"   {e.cause}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
