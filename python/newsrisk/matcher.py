"""
Keyword matching for news text.

Matching is case-insensitive substring containment. Results keep the
order of the keyword list, not the order of occurrence in the text.
"""

from typing import Iterable, List, Optional


def matched_keywords(text: Optional[str], keywords: Optional[Iterable[str]]) -> List[str]:
    """
    Get the keywords contained in text.

    Args:
        text: Composed search text
        keywords: Candidate keywords; blank entries are skipped

    Returns:
        Matched keywords in keyword-list order, each at most once
    """
    if not text or not keywords:
        return []

    lower_text = text.lower()
    matched = []
    seen = set()
    for keyword in keywords:
        if not keyword or not keyword.strip():
            continue
        lowered = keyword.lower()
        if lowered in seen:
            continue
        if lowered in lower_text:
            matched.append(keyword)
            seen.add(lowered)
    return matched


def any_match(text: Optional[str], keywords: Optional[Iterable[str]]) -> bool:
    """Check whether text contains at least one keyword."""
    if not text or not keywords:
        return False

    lower_text = text.lower()
    return any(
        keyword and keyword.strip() and keyword.lower() in lower_text
        for keyword in keywords
    )
