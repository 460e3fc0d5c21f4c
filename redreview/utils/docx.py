"""
Low-level helpers for WordprocessingML elements.
Namespace handling goes through python-docx's qn/nsmap so every module spells tags the same way.
"""

from typing import Optional

from docx.oxml import OxmlElement
from docx.oxml.ns import nsmap, qn

# Register w14 namespace for paraId
w14_ns = "http://schemas.microsoft.com/office/word/2010/wordml"
if "w14" not in nsmap:
    nsmap["w14"] = w14_ns

# Register w15 namespace for comment threading (w15:p, w15:paraIdParent, w15:done)
w15_ns = "http://schemas.microsoft.com/office/word/2012/wordml"
if "w15" not in nsmap:
    nsmap["w15"] = w15_ns

XML_SPACE = qn("xml:space")

HEADING_STYLE_PREFIXES = ("heading", "title")


def create_element(name: str):
    return OxmlElement(name)


def create_attribute(element, name: str, value: str):
    element.set(qn(name), value)


def leaf_text(leaf) -> str:
    """
    Text of one w:t / w:delText leaf.
    Without xml:space="preserve" Word ignores leading/trailing whitespace, so we strip it.
    """
    text = leaf.text or ""
    if leaf.get(XML_SPACE) == "preserve":
        return text
    return text.strip()


def collect_text(element, leaf_tag: str = "w:t") -> str:
    """Concatenates every nested leaf of the given tag in document order."""
    return "".join(leaf_text(leaf) for leaf in element.iter(qn(leaf_tag)))


def is_heading_marker(element) -> bool:
    """True for a w:pStyle naming a heading/title style, or any w:outlineLvl."""
    if element.tag == qn("w:outlineLvl"):
        return True
    if element.tag != qn("w:pStyle"):
        return False
    val = (element.get(qn("w:val")) or "").lower()
    return val.startswith(HEADING_STYLE_PREFIXES)


def contains_heading_marker(element) -> bool:
    for child in element.iter(qn("w:pStyle"), qn("w:outlineLvl")):
        if is_heading_marker(child):
            return True
    return False


def ordinal_in_parent(element) -> Optional[int]:
    parent = element.getparent()
    if parent is None:
        return None
    return parent.index(element)


def first_run_properties(element):
    """Returns the w:rPr of the first run beneath element, if it has one."""
    run = next(element.iter(qn("w:r")), None)
    if run is None:
        return None
    return run.find(qn("w:rPr"))
