"""
Helpers for building minimal .docx bytes in tests.

A blank python-docx document supplies the package skeleton (content types,
rels, styles); word/document.xml is then replaced with hand-written markup so
tests control every w:ins / w:del exactly.
"""

import zipfile
from io import BytesIO
from typing import Dict, Optional
from xml.sax.saxutils import escape

from docx import Document

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
W14_NS = "http://schemas.microsoft.com/office/word/2010/wordml"
W15_NS = "http://schemas.microsoft.com/office/word/2012/wordml"

NS_DECLS = f'xmlns:w="{W_NS}" xmlns:w14="{W14_NS}" xmlns:w15="{W15_NS}"'

XML_HEADER = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'


def _blank_docx() -> bytes:
    buf = BytesIO()
    Document().save(buf)
    return buf.getvalue()


def replace_parts(docx_bytes: bytes, parts: Dict[str, bytes]) -> bytes:
    """Rewrites the archive with some members replaced or added."""
    out = BytesIO()
    with zipfile.ZipFile(BytesIO(docx_bytes)) as zin, zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as zout:
        for info in zin.infolist():
            if info.filename in parts:
                continue
            zout.writestr(info, zin.read(info))
        for name, data in parts.items():
            zout.writestr(name, data)
    return out.getvalue()


def document_xml(body: str) -> bytes:
    return (XML_HEADER + f"<w:document {NS_DECLS}><w:body>{body}<w:sectPr/></w:body></w:document>").encode("utf-8")


def make_docx(*body: str, comments: Optional[str] = None, comments_extended: Optional[str] = None) -> bytes:
    parts = {"word/document.xml": document_xml("".join(body))}
    if comments is not None:
        parts["word/comments.xml"] = (XML_HEADER + f"<w:comments {NS_DECLS}>{comments}</w:comments>").encode("utf-8")
    if comments_extended is not None:
        parts["word/commentsExtended.xml"] = (
            XML_HEADER + f'<w15:commentsEx xmlns:w15="{W15_NS}">{comments_extended}</w15:commentsEx>'
        ).encode("utf-8")
    return replace_parts(_blank_docx(), parts)


def run(text: str, preserve: bool = False, leaf: str = "w:t", props: str = "") -> str:
    space = ' xml:space="preserve"' if preserve else ""
    return f"<w:r>{props}<{leaf}{space}>{escape(text)}</{leaf}></w:r>"


def del_run(text: str, preserve: bool = False) -> str:
    return run(text, preserve=preserve, leaf="w:delText")


def _attrs(change_id, author, date) -> str:
    attrs = []
    if change_id is not None:
        attrs.append(f'w:id="{change_id}"')
    if author is not None:
        attrs.append(f'w:author="{author}"')
    if date is not None:
        attrs.append(f'w:date="{date}"')
    return " ".join(attrs)


def ins(change_id, author, *children: str, date: Optional[str] = None) -> str:
    return f"<w:ins {_attrs(change_id, author, date)}>{''.join(children)}</w:ins>"


def dele(change_id, author, *children: str, date: Optional[str] = None) -> str:
    return f"<w:del {_attrs(change_id, author, date)}>{''.join(children)}</w:del>"


def para(*children: str, style: Optional[str] = None) -> str:
    ppr = f'<w:pPr><w:pStyle w:val="{style}"/></w:pPr>' if style else ""
    return f"<w:p>{ppr}{''.join(children)}</w:p>"
