import re
from typing import Dict, List, Tuple

from diff_match_patch import diff_match_patch

# Words, whitespace runs and single punctuation marks
_TOKEN_PATTERN = re.compile(r"\s+|\w+|[^\w\s]")


def diff_words(original_text: str, proposed_text: str) -> List[Tuple[int, str]]:
    """
    Word-level diff between a change's text and a reviewer's counter-proposal.
    Returns diff-match-patch tuples: (0, equal), (-1, removed), (1, added).
    """
    if not original_text and not proposed_text:
        return []

    dmp = diff_match_patch()

    encoded_original, encoded_proposed, vocabulary = _words_to_chars(original_text, proposed_text)
    diffs = dmp.diff_main(encoded_original, encoded_proposed, False)
    dmp.diff_cleanupSemantic(diffs)

    # Back from one character per token to the tokens themselves
    dmp.diff_charsToLines(diffs, vocabulary)
    return [(op, text) for op, text in diffs if text]


def render_proposal(original_text: str, proposed_text: str) -> str:
    """
    CriticMarkup preview of what a proposal does to the original change text:
    {--removed--}{++added++}, unchanged words left bare.
    """
    parts = []
    for op, text in diff_words(original_text, proposed_text):
        if op == -1:
            parts.append(f"{{--{text}--}}")
        elif op == 1:
            parts.append(f"{{++{text}++}}")
        else:
            parts.append(text)
    return "".join(parts)


def _words_to_chars(text1: str, text2: str) -> Tuple[str, str, List[str]]:
    """
    Maps each distinct token to one character
    so diff-match-patch compares whole words. Index 0 of the table is unused.
    """
    vocabulary: List[str] = [""]
    codes: Dict[str, int] = {}

    def encode(text: str) -> str:
        out = []
        for token in _TOKEN_PATTERN.findall(text):
            if token not in codes:
                codes[token] = len(vocabulary)
                vocabulary.append(token)
            out.append(chr(codes[token]))
        return "".join(out)

    return encode(text1), encode(text2), vocabulary
