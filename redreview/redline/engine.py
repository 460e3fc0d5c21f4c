import datetime
import re
from copy import deepcopy
from typing import Callable, Optional

import structlog
from docx.oxml.ns import qn
from pydantic import ValidationError

from redreview.config import DEFAULT_REVIEWER
from redreview.diff import render_proposal
from redreview.errors import ChangeNotFound, InvalidRequest
from redreview.ingest import TRACKED_KINDS
from redreview.models import (
    ChangeKind,
    ChangeResolution,
    ReviewActionType,
    ReviewOutcome,
    ReviewRequest,
)
from redreview.tree import MarkupTree
from redreview.utils.docx import collect_text, create_attribute, create_element, first_run_properties

logger = structlog.get_logger(__name__)

# Leaves that only render inside w:del; restoring a deletion turns them back into their visible forms.
_RESTORED_LEAVES = {
    qn("w:delText"): qn("w:t"),
    qn("w:delInstrText"): qn("w:instrText"),
}


def _utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def next_id(tree: MarkupTree) -> int:
    """
    1 + the largest numeric w:id over every w:ins and w:del in the tree.
    Ids are only unique per kind, so both kinds are scanned together.
    Missing or non-numeric ids count as 0.
    """
    max_id = 0
    for tag in ["w:ins", "w:del"]:
        for el in tree.iter_nodes(tag):
            try:
                val = int(el.get(qn("w:id")))
            except (ValueError, TypeError):
                continue
            if val > max_id:
                max_id = val
    return max_id + 1


class RedlineEngine:
    """
    Resolves one tracked change per call on a private MarkupTree.

    Pending -> Accepted | Rejected | Superseded. Only the target node is edited;
    siblings and ancestors are left exactly as parsed.
    """

    def __init__(
        self,
        tree: MarkupTree,
        clock: Callable[[], str] = _utc_timestamp,
        default_reviewer: str = DEFAULT_REVIEWER,
    ):
        self.tree = tree
        self.clock = clock
        self.default_reviewer = default_reviewer

    def apply(
        self,
        change_id: str,
        kind: ChangeKind,
        action: ReviewActionType,
        proposed_text: Optional[str] = None,
        reviewer_name: Optional[str] = None,
    ) -> ReviewOutcome:
        try:
            request = ReviewRequest(
                change_id=change_id,
                change_type=kind,
                action=action,
                proposed_text=proposed_text,
                reviewer_name=reviewer_name,
            )
        except ValidationError as e:
            raise InvalidRequest("Missing or invalid review fields", cause=e) from e
        return self.apply_request(request)

    def apply_request(self, request: ReviewRequest) -> ReviewOutcome:
        kind = request.change_type
        node = self.find_change(request.change_id, kind)
        if node is None:
            logger.warning("Change not found", change_id=request.change_id, kind=kind.value)
            raise ChangeNotFound(request.change_id, kind.value)

        reviewer = (request.reviewer_name or "").strip() or self.default_reviewer
        new_change_id = None
        preview = None

        if request.has_proposal:
            if node.getparent().tag == qn("w:rPr"):
                # Paragraph-mark revision: a run cannot live inside run properties
                raise InvalidRequest(
                    f"Change with ID {request.change_id} marks a paragraph break and cannot take proposed text."
                )
            _, leaf_tag, _ = TRACKED_KINDS[kind]
            original_text = collect_text(node, leaf_tag)
            new_change_id = self._supersede(node, request.proposed_text, reviewer)
            preview = render_proposal(original_text, request.proposed_text)
            resolution = ChangeResolution.SUPERSEDED
        elif request.action == ReviewActionType.ACCEPT:
            if request.proposed_text:
                logger.info("Blank proposal ignored", change_id=request.change_id)
            self._accept(node, kind)
            resolution = ChangeResolution.ACCEPTED
        else:
            if request.proposed_text and request.proposed_text.strip():
                logger.info("Proposal ignored on reject", change_id=request.change_id)
            self._reject(node, kind)
            resolution = ChangeResolution.REJECTED

        logger.info(
            "Change resolved",
            change_id=request.change_id,
            kind=kind.value,
            resolution=resolution.value,
            new_change_id=new_change_id,
        )
        return ReviewOutcome(
            change_id=request.change_id,
            change_type=kind,
            resolution=resolution,
            reviewer_name=reviewer,
            processed_at=datetime.datetime.now(datetime.timezone.utc),
            proposed_text=request.proposed_text if resolution == ChangeResolution.SUPERSEDED else None,
            new_change_id=new_change_id,
            preview=preview,
        )

    def find_change(self, change_id: str, kind: ChangeKind):
        """
        First node of the kind whose w:id matches.
        Ids synthesized by the extractor ("ins-3") resolve positionally, but only
        onto a node that has no w:id of its own.
        """
        tag, _, prefix = TRACKED_KINDS[kind]
        node = self.tree.find_by_id(tag, change_id)
        if node is not None:
            return node

        m = re.fullmatch(rf"{prefix}-(\d+)", change_id)
        if m:
            index = int(m.group(1))
            nodes = self.tree.nodes(tag)
            if index < len(nodes) and nodes[index].get(qn("w:id")) is None:
                return nodes[index]
        return None

    # --- Transitions ---

    def _accept(self, node, kind: ChangeKind):
        if kind == ChangeKind.INSERTION:
            # Unwrap
            self.tree.unwrap(node)
        else:
            # Deletion wins, content is gone
            self.tree.remove(node)

    def _reject(self, node, kind: ChangeKind):
        if kind == ChangeKind.INSERTION:
            self.tree.remove(node)
        else:
            # Restore text
            for leaf in list(node.iter(*_RESTORED_LEAVES)):
                leaf.tag = _RESTORED_LEAVES[leaf.tag]
            self.tree.unwrap(node)

    def _supersede(self, node, text: str, author: str) -> str:
        new_id = str(next_id(self.tree))
        ins = self._create_track_change_tag("w:ins", new_id, author)

        run = create_element("w:r")
        rpr = first_run_properties(node)
        if rpr is not None:
            run.append(self._clean_run_properties(rpr))

        t = create_element("w:t")
        t.text = text
        create_attribute(t, "xml:space", "preserve")
        run.append(t)
        ins.append(run)

        self.tree.insert_before(node, ins)
        self.tree.remove(node)
        return new_id

    def _create_track_change_tag(self, tag_name: str, change_id: str, author: str):
        tag = create_element(tag_name)
        create_attribute(tag, "w:id", change_id)
        create_attribute(tag, "w:author", author)
        create_attribute(tag, "w:date", self.clock())
        return tag

    @staticmethod
    def _clean_run_properties(rpr):
        """Copy of a run's w:rPr without revision history that belongs to the discarded run."""
        clone = deepcopy(rpr)
        for stale in clone.findall(qn("w:rPrChange")):
            clone.remove(stale)
        return clone

