"""
Key Segmenter
외부 키 문자열 -> 정규화된 세그먼트 (label, id, relation segments).

    "users/a"  -> ("USERS", "a")
    "bla"      -> ("DS_SCHEMA:BLA",)
    "a/b/c"    -> ("A", "b", "C")
    "/a/b/c"   -> None (invalid)
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from dsgraph.core.config import DEFAULT_LABEL

Segments = Tuple[str, ...]


def segment_key(
    key: str,
    split_char: Optional[str],
    default_label: str = DEFAULT_LABEL,
) -> Optional[Segments]:
    """
    Split ``key`` into normalized segments.

    Even-indexed segments (labels) are uppercased, odd-indexed segments (ids)
    keep their case. A single segment addresses the schema node of that label
    and is rewritten to ``"{default_label}:{SEGMENT}"``.

    Returns:
        A new tuple of segments, or None when the key is invalid
    """
    if not split_char or not isinstance(key, str):
        return None

    parts = key.split(split_char)
    if parts[0] == "" or parts[0] == default_label:
        return None

    segments = tuple(
        part.upper() if i % 2 == 0 else part
        for i, part in enumerate(parts)
    )

    if len(segments) == 1:
        return (f"{default_label}:{segments[0]}",)
    return segments


@dataclass(frozen=True)
class KeySegmenter:
    """segment_key에 설정값(split_char, default_label)을 묶어 둔 것"""
    split_char: Optional[str]
    default_label: str = DEFAULT_LABEL

    def segment(self, key: str) -> Optional[Segments]:
        return segment_key(key, self.split_char, self.default_label)
