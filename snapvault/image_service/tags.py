"""
    Tag normalization shared by the upload form and the metadata service.

    A normalized tag is trimmed, lowercased and 1..MAX_TAG_LENGTH characters
    long. A normalized tag list is deduplicated (first occurrence wins) and
    holds at most MAX_TAGS entries.
"""
from typing import Iterable, List

MAX_TAG_LENGTH = 20
MAX_TAGS = 10

def normalize_tag_list(tags: Iterable[str]) -> List[str]:
    """Normalizes an already split sequence of raw tags."""
    result: List[str] = []
    seen = set()
    for raw in tags:
        if raw is None:
            continue
        tag = str(raw).strip().lower()
        if not 1 <= len(tag) <= MAX_TAG_LENGTH:
            continue
        if tag in seen:
            continue
        seen.add(tag)
        result.append(tag)
        if len(result) == MAX_TAGS:
            break
    return result

def normalize_tags(text: str) -> List[str]:
    """Normalizes comma separated tag input, e.g. ' Beach, Beach ,x' -> ['beach', 'x']."""
    if not text:
        return []
    return normalize_tag_list(text.split(","))
