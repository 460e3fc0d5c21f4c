from importlib.metadata import PackageNotFoundError, version

from redreview.errors import ChangeNotFound, InvalidPackage, InvalidRequest, MalformedMarkup, RedlineError
from redreview.models import Change, ChangeKind, Comment, Heading, ReviewActionType, ReviewRequest
from redreview.pipeline import extract_all, extract_changes, extract_comments, group_changes, redline, review
from redreview.redline.engine import RedlineEngine
from redreview.sections import parse_sections

try:
    __version__ = version("redreview")
except PackageNotFoundError:
    # Running from a source checkout without installation
    __version__ = "0.0.0-dev"

__all__ = [
    "RedlineEngine",
    "Change",
    "ChangeKind",
    "Comment",
    "Heading",
    "ReviewActionType",
    "ReviewRequest",
    "extract_changes",
    "extract_comments",
    "extract_all",
    "group_changes",
    "redline",
    "review",
    "parse_sections",
    "RedlineError",
    "InvalidPackage",
    "MalformedMarkup",
    "ChangeNotFound",
    "InvalidRequest",
    "__version__",
]
