from typing import Dict, List, Optional

import structlog
from docx.oxml.ns import qn

from redreview.config import UNKNOWN_AUTHOR
from redreview.models import Comment
from redreview.tree import MarkupTree
from redreview.utils.docx import collect_text

logger = structlog.get_logger(__name__)


class CommentsReader:
    """
    Reads the 'word/comments.xml' part (and 'word/commentsExtended.xml' for threading).
    Comments are read-only here; nothing in this class mutates either tree.
    """

    def __init__(self, comments_tree: Optional[MarkupTree], extended_tree: Optional[MarkupTree] = None):
        self.comments_tree = comments_tree
        self.extended_tree = extended_tree

    def extract(self) -> List[Comment]:
        if self.comments_tree is None:
            return []

        comments: List[Comment] = []
        # Map paraId -> comment_id to resolve parents from commentsExtended
        para_id_to_cid: Dict[str, str] = {}

        for index, c in enumerate(self.comments_tree.iter_nodes("w:comment")):
            c_id = c.get(qn("w:id")) or f"comment-{index}"

            # Legacy threading attribute
            parent_id = c.get(qn("w15:p"))

            # Capture paraId for extended threading lookup
            for p_elem in c.iter(qn("w:p")):
                pid = p_elem.get(qn("w14:paraId"))
                if pid:
                    para_id_to_cid[pid] = c_id

            comments.append(
                Comment(
                    id=c_id,
                    author=c.get(qn("w:author")) or UNKNOWN_AUTHOR,
                    date=c.get(qn("w:date")),
                    text=collect_text(c, "w:t"),
                    initials=c.get(qn("w:initials")),
                    parent_id=parent_id,
                )
            )

        if self.extended_tree is not None:
            self._apply_extended_threading(comments, para_id_to_cid)

        logger.debug("Comments extracted", count=len(comments))
        return comments

    def _apply_extended_threading(self, comments: List[Comment], para_id_to_cid: Dict[str, str]):
        """
        Modern Word keeps threads in <w15:commentEx w15:paraId="..." w15:paraIdParent="..." w15:done="1"/>.
        The paraId is the one carried by a paragraph inside the comment.
        """
        by_id = {c.id: c for c in comments}
        for child in self.extended_tree.iter_nodes("w15:commentEx"):
            c_id = para_id_to_cid.get(child.get(qn("w15:paraId")) or "")
            if not c_id or c_id not in by_id:
                continue

            comment = by_id[c_id]
            parent_para_id = child.get(qn("w15:paraIdParent"))
            if parent_para_id:
                p_id = para_id_to_cid.get(parent_para_id)
                if p_id:
                    comment.parent_id = p_id
                else:
                    logger.warning("Comment parent not found", comment_id=c_id, para_id_parent=parent_para_id)

            if child.get(qn("w15:done")) in ("1", "true", "on"):
                comment.resolved = True
