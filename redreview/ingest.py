from typing import List, Optional, Tuple

import structlog
from docx.oxml.ns import qn

from redreview.config import UNKNOWN_AUTHOR
from redreview.models import Change, ChangeKind, Comment
from redreview.redline.comments import CommentsReader
from redreview.tree import MarkupTree
from redreview.utils.docx import collect_text, contains_heading_marker, ordinal_in_parent

logger = structlog.get_logger(__name__)

# kind -> (wrapper tag, text leaf tag, synthesized id prefix)
TRACKED_KINDS = {
    ChangeKind.INSERTION: ("w:ins", "w:t", "ins"),
    ChangeKind.DELETION: ("w:del", "w:delText", "del"),
}


def extract(
    tree: MarkupTree,
    comments_tree: Optional[MarkupTree] = None,
    extended_tree: Optional[MarkupTree] = None,
) -> Tuple[List[Change], List[Comment]]:
    """
    Builds the reviewer's view of a document: tracked changes and comments.
    Pure with respect to every tree it is given.
    """
    changes = extract_changes(tree)
    comments = CommentsReader(comments_tree, extended_tree).extract()
    return changes, comments


def extract_changes(tree: MarkupTree) -> List[Change]:
    """
    Insertions first, then deletions, each in document order.
    Nodes without visible text (formatting-only revisions, paragraph marks) are skipped.
    """
    changes: List[Change] = []
    for kind in (ChangeKind.INSERTION, ChangeKind.DELETION):
        wrapper_tag, leaf_tag, prefix = TRACKED_KINDS[kind]
        skipped = 0
        for index, node in enumerate(tree.iter_nodes(wrapper_tag)):
            text = collect_text(node, leaf_tag)
            if not text:
                skipped += 1
                continue

            section_id, paragraph_id = find_section_info(node)
            changes.append(
                Change(
                    id=node.get(qn("w:id")) or f"{prefix}-{index}",
                    kind=kind,
                    author=node.get(qn("w:author")) or UNKNOWN_AUTHOR,
                    date=node.get(qn("w:date")),
                    text=text,
                    section_id=section_id,
                    paragraph_id=paragraph_id,
                )
            )
        if skipped:
            logger.debug("Skipped tracked changes without text", kind=kind.value, count=skipped)

    logger.info("Changes extracted", count=len(changes))
    return changes


def find_section_info(node) -> Tuple[Optional[str], Optional[str]]:
    """
    Best-effort positional locators used only for grouping in the UI.

    paragraph_id: "p-<n>", n being the ordinal of the nearest enclosing w:p among its siblings.
    section_id: "section-<n>" for the nearest ancestor carrying a heading style; when the walk
    reaches w:sectPr or w:body first, the section falls back to the paragraph ordinal.
    """
    paragraph_index = None
    section_index = None

    for ancestor in node.iterancestors():
        if paragraph_index is None and ancestor.tag == qn("w:p"):
            paragraph_index = ordinal_in_parent(ancestor)

        if ancestor.tag in (qn("w:sectPr"), qn("w:body")):
            break
        if contains_heading_marker(ancestor):
            section_index = ordinal_in_parent(ancestor)
            break

    paragraph_id = f"p-{paragraph_index}" if paragraph_index is not None else None
    if section_index is not None:
        return f"section-{section_index}", paragraph_id
    if paragraph_index is not None:
        return f"section-{paragraph_index}", paragraph_id
    return None, paragraph_id
