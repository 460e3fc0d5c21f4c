import datetime
import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# Characters XML 1.0 cannot carry in text or attribute values
_XML_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class ChangeKind(str, Enum):
    INSERTION = "insertion"
    DELETION = "deletion"


class ReviewActionType(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class ChangeResolution(str, Enum):
    """Terminal states a pending change can reach through the engine."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


class Change(BaseModel):
    """
    A single tracked insertion or deletion as seen by the reviewer.
    Ids are unique per kind only: an insertion and a deletion may share one.
    """

    id: str
    kind: ChangeKind
    author: str
    date: Optional[str] = None
    text: str
    section_id: Optional[str] = None
    paragraph_id: Optional[str] = None


class Comment(BaseModel):
    id: str
    author: str
    date: Optional[str] = None
    text: str
    initials: Optional[str] = None
    parent_id: Optional[str] = None
    resolved: bool = False


class Heading(BaseModel):
    level: int
    number: str = ""
    title: str
    id: str


class ReviewRequest(BaseModel):
    """
    One reviewer decision on one tracked change.
    A non-blank proposed_text on an ACCEPT replaces the change with a new tracked insertion.
    """

    change_id: str = Field(..., min_length=1, description="The w:id (or synthesized id) of the change.")
    change_type: ChangeKind = Field(..., description="insertion or deletion.")
    action: ReviewActionType = Field(..., description="accept or reject.")
    proposed_text: Optional[str] = Field(None, description="Counter-proposal text, used with accept.")
    reviewer_name: Optional[str] = Field(None, description="Author recorded on a counter-proposal.")

    @field_validator("change_type", "action", mode="before")
    @classmethod
    def _normalize_tag(cls, value):
        # Form fields arrive as "Insertion", " accept" and the like
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("proposed_text", "reviewer_name")
    @classmethod
    def _xml_safe(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and _XML_ILLEGAL_CHARS.search(value):
            raise ValueError("text contains characters that cannot be stored in a DOCX file")
        return value

    @property
    def has_proposal(self) -> bool:
        return self.action == ReviewActionType.ACCEPT and bool(self.proposed_text and self.proposed_text.strip())


class ReviewOutcome(BaseModel):
    change_id: str
    change_type: ChangeKind
    resolution: ChangeResolution
    reviewer_name: Optional[str] = None
    processed_at: datetime.datetime
    proposed_text: Optional[str] = None
    new_change_id: Optional[str] = None
    preview: Optional[str] = None


class SectionGroup(BaseModel):
    section_id: str
    section_name: str
    changes: List[Change] = Field(default_factory=list)
    latest_date: Optional[datetime.datetime] = None
