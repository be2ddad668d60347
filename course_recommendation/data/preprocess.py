from typing import List, Optional


def normalize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return text.strip().lower()


def query_terms(text: Optional[str]) -> List[str]:
    """Tag terms of a free-text query: lower-cased and split on spaces."""
    if not text:
        return []
    return [t for t in text.lower().split(" ") if t]


def contains_ci(haystack: Optional[str], needle: str) -> bool:
    if not haystack:
        return False
    return needle.lower() in haystack.lower()
