"""Segmenter: normalized prompt text -> sentence and section segments with offsets."""

import re
from dataclasses import dataclass


class SegmentKind:
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"  # reserved; paragraphs are always split into sentences
    SECTION = "section"


PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
HEADING = re.compile(r"^#{1,6}\s+")
SHOUTED = re.compile(r"^[A-Z][A-Z\s]+$")
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")

# Paragraphs shorter than this, written in capitals, are treated as section headers.
SECTION_MAX_LEN = 100


@dataclass
class Segment:
    text: str
    kind: str
    start: int = 0
    end: int = 0
    separator: str = ""  # whitespace between this segment and the next one

    def __repr__(self) -> str:
        return f"Segment({self.kind}, {self.text!r}, {self.start}:{self.end})"


def _is_section(paragraph: str) -> bool:
    if HEADING.match(paragraph):
        return True
    return len(paragraph) < SECTION_MAX_LEN and SHOUTED.match(paragraph) is not None


def segment(text: str) -> list[Segment]:
    """Split text into segments. Never empty: degenerate input yields one sentence."""
    pieces: list[tuple[str, str]] = []
    for paragraph in PARAGRAPH_BREAK.split(text):
        if not paragraph.strip():
            continue
        if _is_section(paragraph.strip()):
            pieces.append((paragraph.strip(), SegmentKind.SECTION))
            continue
        for sentence in SENTENCE_BOUNDARY.split(paragraph):
            trimmed = sentence.strip()
            if trimmed:
                pieces.append((trimmed, SegmentKind.SENTENCE))

    if not pieces:
        return [Segment(text=text, kind=SegmentKind.SENTENCE, start=0, end=len(text))]

    segments: list[Segment] = []
    cursor = 0
    for piece, kind in pieces:
        start = text.find(piece, cursor)
        if start < 0:
            start = cursor
        end = start + len(piece)
        cursor = end
        segments.append(Segment(text=piece, kind=kind, start=start, end=end))

    for prev, nxt in zip(segments, segments[1:]):
        prev.separator = text[prev.end:nxt.start] or " "
    return segments
