"""
In-memory markup tree for one package part.

All structural edits are splice/remove primitives on a parent's ordered child
list. Nodes outside the edited site are never re-created, so they serialize
exactly as they were parsed.
"""

from typing import Iterator, List, Optional

import structlog
from docx.oxml.ns import nsmap, qn
from lxml import etree

from redreview.errors import MalformedMarkup

logger = structlog.get_logger(__name__)

# Blank text between elements must survive a round trip untouched.
_PARSER = etree.XMLParser(remove_blank_text=False, resolve_entities=False, huge_tree=True)

_UTF8_BOM = b"\xef\xbb\xbf"


def _read_prolog(data: bytes) -> Optional[bytes]:
    """
    The XML declaration and the whitespace after it, exactly as written, or None
    when the part has no ASCII-compatible declaration to keep.
    """
    start = len(_UTF8_BOM) if data.startswith(_UTF8_BOM) else 0
    if not data.startswith(b"<?xml", start):
        return None
    end = data.find(b"?>", start)
    if end == -1:
        return None
    end += 2
    while end < len(data) and data[end] in b" \t\r\n":
        end += 1
    return data[:end]


class MarkupTree:
    def __init__(
        self,
        root,
        encoding: Optional[str] = "UTF-8",
        standalone: Optional[bool] = None,
        prolog: Optional[bytes] = None,
    ):
        self.root = root
        self.encoding = encoding or "UTF-8"
        self.standalone = standalone
        self.prolog = prolog

    @classmethod
    def parse(cls, data: bytes, part_name: str = "") -> "MarkupTree":
        try:
            doc = etree.fromstring(data, parser=_PARSER).getroottree()
        except etree.XMLSyntaxError as e:
            raise MalformedMarkup(f"Could not parse {part_name or 'XML part'}", cause=e) from e
        info = doc.docinfo
        return cls(doc.getroot(), encoding=info.encoding, standalone=info.standalone, prolog=_read_prolog(data))

    def serialize(self) -> bytes:
        """
        Re-emits the part. A declaration read at parse time is written back byte for byte.
        """
        if self.prolog is not None:
            body = etree.tostring(self.root.getroottree(), xml_declaration=False, encoding=self.encoding)
            return self.prolog + body

        kwargs = {"xml_declaration": True, "encoding": self.encoding}
        if self.standalone is not None:
            kwargs["standalone"] = self.standalone
        return etree.tostring(self.root.getroottree(), **kwargs)

    # --- Lookups ---

    def iter_nodes(self, tag: str) -> Iterator:
        """Elements with the given prefixed tag (e.g. "w:ins"), in document order."""
        return self.root.iter(qn(tag))

    def nodes(self, tag: str) -> List:
        return list(self.iter_nodes(tag))

    def xpath(self, expr: str, **variables):
        return self.root.xpath(expr, namespaces=nsmap, **variables)

    def find_by_id(self, tag: str, node_id: str):
        """First element of a tag whose w:id equals node_id, or None."""
        matches = self.xpath(f"//{tag}[@w:id=$node_id]", node_id=node_id)
        return matches[0] if matches else None

    @property
    def body(self):
        return self.root.find(qn("w:body"))

    # --- Splice primitives ---

    @staticmethod
    def unwrap(node) -> int:
        """
        Replaces node with its children, in their original order, at node's position.
        Returns the number of children moved.
        """
        children = list(node)
        if not children:
            MarkupTree.remove(node)
            return 0

        parent = node.getparent()
        index = parent.index(node)
        # lxml drops tail text with its element; the wrapper's tail follows the last child instead.
        tail = node.tail
        for offset, child in enumerate(children):
            parent.insert(index + offset, child)
        if tail:
            last = children[-1]
            last.tail = (last.tail or "") + tail
            node.tail = None
        parent.remove(node)
        return len(children)

    @staticmethod
    def remove(node):
        """Removes node and its whole subtree, keeping any tail text in place."""
        parent = node.getparent()
        tail = node.tail
        if tail:
            previous = node.getprevious()
            if previous is not None:
                previous.tail = (previous.tail or "") + tail
            else:
                parent.text = (parent.text or "") + tail
        parent.remove(node)

    @staticmethod
    def insert_before(anchor, node):
        parent = anchor.getparent()
        parent.insert(parent.index(anchor), node)
