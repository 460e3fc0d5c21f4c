"""
Zip-level access to a DOCX package.

Only the part being replaced is rewritten; every other member is copied with
its original ZipInfo and identical content.
"""

import zipfile
import zlib
from io import BytesIO
from typing import Dict, List, Optional

import structlog

from redreview.config import DOCUMENT_PART
from redreview.errors import InvalidPackage
from redreview.tree import MarkupTree

logger = structlog.get_logger(__name__)


class DocxPackage:
    def __init__(self, infos: List[zipfile.ZipInfo], parts: Dict[str, bytes]):
        self._infos = infos
        self._parts = parts

    @classmethod
    def from_bytes(cls, data: bytes, required_part: str = DOCUMENT_PART) -> "DocxPackage":
        try:
            with zipfile.ZipFile(BytesIO(data)) as zf:
                infos = zf.infolist()
                parts = {info.filename: zf.read(info) for info in infos}
        except (
            zipfile.BadZipFile,
            zipfile.LargeZipFile,
            zlib.error,
            EOFError,
            ValueError,
            NotImplementedError,  # unsupported compression method
            RuntimeError,  # encrypted member
        ) as e:
            raise InvalidPackage("Invalid DOCX file: not a readable zip archive", cause=e) from e

        if required_part not in parts:
            raise InvalidPackage(f"{required_part} not found in the docx file.")

        logger.debug("Package opened", parts=len(parts))
        return cls(infos, parts)

    @property
    def part_names(self) -> List[str]:
        return [info.filename for info in self._infos]

    def has_part(self, name: str) -> bool:
        return name in self._parts

    def read_part(self, name: str) -> bytes:
        try:
            return self._parts[name]
        except KeyError:
            raise InvalidPackage(f"{name} not found in the docx file.") from None

    def load_tree(self, name: str = DOCUMENT_PART) -> MarkupTree:
        return MarkupTree.parse(self.read_part(name), part_name=name)

    def load_optional_tree(self, name: str) -> Optional[MarkupTree]:
        if not self.has_part(name):
            return None
        return self.load_tree(name)

    def write(self, part_name: str, new_xml: bytes) -> bytes:
        """Returns the archive bytes with part_name replaced by new_xml."""
        if isinstance(new_xml, str):
            new_xml = new_xml.encode("utf-8")
        if part_name not in self._parts:
            raise InvalidPackage(f"{part_name} not found in the docx file.")

        output = BytesIO()
        with zipfile.ZipFile(output, "w") as zout:
            for info in self._infos:
                content = new_xml if info.filename == part_name else self._parts[info.filename]
                zout.writestr(info, content)

        logger.debug("Package written", part=part_name, size=len(new_xml))
        return output.getvalue()
