"""
Shared text utilities for the Cert News Risk Analysis System

Cleans crawled text before keyword matching and composes the search text
for a news record. All functions are pure and never raise on empty input.
"""

import re
from typing import Any, Optional

TAG_PATTERN = re.compile(r'<[^>]+>')
ENTITY_PATTERN = re.compile(r'&[a-zA-Z0-9#]+;')
LINE_BREAK_PATTERN = re.compile(r'[\r\n\t]+')
WHITESPACE_PATTERN = re.compile(r'\s+')

DEFAULT_CONTENT_MAX_LENGTH = 1500


def clean_text(text: Optional[str]) -> str:
    """Remove HTML tags and entities and collapse whitespace

    Args:
        text: Raw crawled text (can be None)

    Returns:
        Cleaned text, or empty string if text is None/blank
    """
    if text is None or not text.strip():
        return ''

    cleaned = TAG_PATTERN.sub(' ', text)
    cleaned = ENTITY_PATTERN.sub(' ', cleaned)
    cleaned = LINE_BREAK_PATTERN.sub(' ', cleaned)
    cleaned = WHITESPACE_PATTERN.sub(' ', cleaned)
    return cleaned.strip()


def sanitize_for_logging(text: Optional[str], max_length: int = 500) -> str:
    """Sanitize record text for safe logging, preventing log injection

    Args:
        text: Text to log
        max_length: Truncation length

    Returns:
        Single-line text safe for logging
    """
    if not text:
        return ''
    sanitized = re.sub(r'[\r\n\x00-\x1f\x7f-\x9f]', ' ', str(text))
    sanitized = WHITESPACE_PATTERN.sub(' ', sanitized).strip()
    return sanitized[:max_length]


def build_enhanced_search_text(record: Any, max_content_length: int = DEFAULT_CONTENT_MAX_LENGTH) -> str:
    """Compose the search text used when escalating medium-risk records

    Fields in priority order: title, summary, product, type, then the
    content truncated to max_content_length characters after cleaning.

    Args:
        record: Object with title/summary/product/news_type/content attributes
        max_content_length: Maximum number of content characters to keep

    Returns:
        Cleaned fields joined by single spaces
    """
    parts = [
        clean_text(record.title),
        clean_text(record.summary),
        clean_text(record.product),
        clean_text(record.news_type),
    ]

    content = clean_text(record.content)
    if len(content) > max_content_length:
        content = content[:max_content_length]
    parts.append(content)

    return ' '.join(part for part in parts if part)


def build_basic_search_text(record: Any) -> str:
    """Compose the search text used for per-source relatedness

    Title, content, summary and product, cleaned, without truncation.
    """
    parts = [
        clean_text(record.title),
        clean_text(record.content),
        clean_text(record.summary),
        clean_text(record.product),
    ]
    return ' '.join(part for part in parts if part)
