"""Turn free-form generator output into a structured Card.

The generator is asked to emit one ``LABEL: value`` block per field, but
nothing guarantees it does. Parsing is therefore total: unknown text is
ignored, missing labels become empty fields and nothing ever raises.

The parser holds no state between calls. During streaming the caller
re-parses the whole accumulated buffer on every chunk, so the last partial
parse of a stream is identical to parsing the final text directly. Partial
parses drop a trailing line that may be a half-received label; the final
parse passes ``complete=True`` to keep it.
"""

import re
from typing import Dict, List, Tuple

from .models import Card, CardSource

# Label (normalized to single spaces, upper case) -> Card field
LABELS: Dict[str, str] = {
    "PART OF SPEECH": "part_of_speech",
    "POS": "part_of_speech",
    "PRONUNCIATION": "pronunciation",
    "IPA": "pronunciation",
    "DEFINITION": "definition",
    "TRANSLATION": "translation",
    "WORD FAMILY": "word_family",
    "FAMILY": "word_family",
    "CONTEXT": "example_context",
    "EXAMPLE": "example_context",
    "SYNONYMS": "synonyms",
    "ANTONYMS": "antonyms",
    "DIFFICULTY": "difficulty",
    "ETYMOLOGY": "etymology",
    "USAGE NOTES": "usage_notes",
    "USAGE": "usage_notes",
}

LIST_FIELDS = {"synonyms", "antonyms", "word_family"}

NOT_AVAILABLE = "N/A"

_MARKER = r"[ \t]*(?:#{1,6}[ \t]*|[-*•][ \t]+)?(?:\*\*|__)?"

_LABEL_ALTERNATION = "|".join(
    label.replace(" ", r"[ \t_]+")
    for label in sorted(LABELS, key=len, reverse=True)
)

_LABEL_RE = re.compile(
    r"^" + _MARKER
    + r"(?P<label>" + _LABEL_ALTERNATION + r")"
    + r"(?:\*\*|__)?[ \t]*(?::(?:\*\*|__)?|(?=\r?\n|\Z))",
    re.IGNORECASE | re.MULTILINE,
)

_MARKER_RE = re.compile(r"^" + _MARKER)
_TRAILING_ANNOTATION_RE = re.compile(r"\s*\([^()]*\)\s*$")


def _normalize_label(label: str) -> str:
    return " ".join(label.replace("_", " ").split()).upper()


def _drop_partial_tail(text: str) -> str:
    """Remove an unterminated last line that is only the start of a label.

    A stream cut in the middle of ``WORD FAM`` must not leak that fragment
    into the previous field's value.
    """
    if not text or text.endswith("\n"):
        return text
    head, _, tail = text.rpartition("\n")
    if not tail.strip() or _LABEL_RE.match(tail):
        return text

    marker = _MARKER_RE.match(tail)
    had_marker = bool(marker and marker.group(0).strip())
    fragment = " ".join(tail[marker.end():].split()) if marker else tail.strip()
    if not fragment:
        # nothing but a section marker so far
        return head if had_marker else text
    if not had_marker and fragment != fragment.upper():
        return text

    candidate = fragment.upper()
    for label in LABELS:
        if label.startswith(candidate) or (label + ":").startswith(candidate):
            return head
    return text


def parse_card(raw_text: str, word: str = "", complete: bool = False) -> Card:
    """Parse generator output into a Card.

    Args:
        raw_text: Complete or partial (streamed) generator output.
        word: The word the card describes.
        complete: The text is the finished output, so its last line is a
            value even when it looks like the start of a label.

    Returns:
        A Card with every unseen field set to "".
    """
    text = raw_text or ""
    if not complete:
        text = _drop_partial_tail(text)
    matches = list(_LABEL_RE.finditer(text))

    values: Dict[str, str] = {}
    for i, match in enumerate(matches):
        field = LABELS[_normalize_label(match.group("label"))]
        if field in values:
            continue
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        value = text[match.end():end].strip()

        if field in LIST_FIELDS and value.upper() == NOT_AVAILABLE:
            value = ""
        elif field == "example_context" and len(value) > 1 and value[0] == value[-1] == '"':
            value = value[1:-1].strip()
        values[field] = value

    return Card(word=word, source=CardSource.GENERATED, **values)


def split_list_field(value: str) -> List[str]:
    """Decompose a comma-joined list field into clean entries."""
    entries = []
    for entry in (value or "").split(","):
        entry = entry.strip()
        if entry and entry.upper() != NOT_AVAILABLE:
            entries.append(entry)
    return entries


def word_family_tokens(value: str) -> List[Tuple[str, str]]:
    """Return ``(navigable token, display form)`` pairs for a word family.

    ``"serendipitous (adj)"`` -> ``("serendipitous", "serendipitous (adj)")``
    """
    pairs = []
    for display in split_list_field(value):
        token = _TRAILING_ANNOTATION_RE.sub("", display).strip()
        if token:
            pairs.append((token, display))
    return pairs
