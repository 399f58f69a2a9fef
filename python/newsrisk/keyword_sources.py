"""
Keyword Sources for the Cert News Risk Analysis System

The active keyword list can come from three interchangeable sources,
evaluated in order, first non-empty wins:

1. An explicit list supplied by the caller
2. The keyword file (one keyword per line, '#' comments)
3. The enabled keywords of the keyword catalog

Reading the keyword file never fails the caller: problems are logged and
treated as an empty list. A catalog failure is raised as
KeywordResolutionError and ends the current operation.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)

HEADER_TITLE = "{marker} Cert news keyword list"
HEADER_FORMAT = "{marker} One keyword per line; lines starting with {marker} are comments"
HEADER_GENERATED = "{marker} Generated at: {timestamp}"


class KeywordResolutionError(Exception):
    """Raised when the keyword catalog cannot be read."""
    pass


class KeywordProvenance(str, Enum):
    """Which source served a resolved keyword list"""
    EXPLICIT = "explicit"
    FILE = "file"
    CATALOG = "catalog"


class KeywordCatalog(Protocol):
    """Capabilities the analysis core needs from the keyword catalog."""

    def get_all_enabled_keywords(self) -> List[str]:
        ...

    def get_contained_keywords(self, text: str) -> List[str]:
        ...


@dataclass
class ResolvedKeywords:
    """Keyword list together with the source that served it"""
    keywords: List[str] = field(default_factory=list)
    provenance: KeywordProvenance = KeywordProvenance.CATALOG

    @property
    def count(self) -> int:
        return len(self.keywords)

    def __bool__(self) -> bool:
        return bool(self.keywords)


def clean_keywords(keywords: Optional[Iterable[str]]) -> List[str]:
    """Trim keywords and drop blank entries, keeping order."""
    if not keywords:
        return []
    return [keyword.strip() for keyword in keywords if keyword and keyword.strip()]


# ============================================
# SOURCES
# ============================================

class ExplicitKeywordSource:
    """Caller-supplied keyword list."""

    provenance = KeywordProvenance.EXPLICIT

    def __init__(self, keywords: Optional[Iterable[str]]):
        self._keywords = clean_keywords(keywords)

    def load(self) -> List[str]:
        return list(self._keywords)


class FileKeywordSource:
    """
    Keyword list stored in a UTF-8 text file.

    Lines are trimmed; blank lines and lines starting with the comment
    marker are skipped.
    """

    provenance = KeywordProvenance.FILE

    def __init__(self, path: Union[str, Path], comment_marker: str = "#"):
        self.path = Path(path)
        self.comment_marker = comment_marker

    def load(self) -> List[str]:
        """
        Load keywords from the file.

        Returns:
            Keywords in file order; empty if the file is missing or unreadable
        """
        if not self.path.exists():
            logger.warning(f"Keyword file not found: {self.path}")
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                lines = f.readlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read keyword file {self.path}: {e}")
            return []

        keywords = []
        for line in lines:
            stripped = line.strip()
            if stripped and not stripped.startswith(self.comment_marker):
                keywords.append(stripped)

        logger.info(f"Loaded {len(keywords)} keywords from {self.path}")
        return keywords

    def save(self, keywords: Optional[Iterable[str]]) -> bool:
        """
        Overwrite the keyword file.

        Writes a header comment block with a generation timestamp, then one
        trimmed keyword per line. Parent directories are created as needed.

        Returns:
            True on success, False on any I/O failure
        """
        cleaned = clean_keywords(keywords)
        lines = [
            HEADER_TITLE.format(marker=self.comment_marker),
            HEADER_FORMAT.format(marker=self.comment_marker),
            HEADER_GENERATED.format(marker=self.comment_marker, timestamp=datetime.now().isoformat()),
            "",
        ]
        lines.extend(cleaned)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                f.write("\n".join(lines) + "\n")
        except OSError as e:
            logger.error(f"Failed to save keywords to {self.path}: {e}")
            return False

        logger.info(f"Saved {len(cleaned)} keywords to {self.path}")
        return True

    def info(self) -> Dict[str, Any]:
        """Keywords currently in the file with their count and location."""
        keywords = self.load()
        return {
            'keywords': keywords,
            'count': len(keywords),
            'source_path': str(self.path),
        }


class CatalogKeywordSource:
    """Enabled keywords of the keyword catalog."""

    provenance = KeywordProvenance.CATALOG

    def __init__(self, catalog: KeywordCatalog):
        self._catalog = catalog

    def load(self) -> List[str]:
        """
        Raises:
            KeywordResolutionError: If the catalog cannot be read
        """
        try:
            keywords = self._catalog.get_all_enabled_keywords()
        except Exception as e:
            raise KeywordResolutionError(f"Keyword catalog unavailable: {e}") from e
        return clean_keywords(keywords)


# ============================================
# RESOLVER
# ============================================

class KeywordResolver:
    """Picks the active keyword list by source precedence."""

    def __init__(self, file_source: FileKeywordSource, catalog_source: CatalogKeywordSource):
        self.file_source = file_source
        self.catalog_source = catalog_source

    def resolve(self, explicit: Optional[Iterable[str]] = None) -> ResolvedKeywords:
        """
        Resolve the active keyword list.

        Args:
            explicit: Caller override; used when it has at least one keyword

        Returns:
            ResolvedKeywords; the catalog result is returned even when empty

        Raises:
            KeywordResolutionError: If the catalog is consulted and fails
        """
        sources = []
        if explicit is not None:
            sources.append(ExplicitKeywordSource(explicit))
        sources.append(self.file_source)

        for source in sources:
            keywords = source.load()
            if keywords:
                logger.debug(f"Using {len(keywords)} keywords from {source.provenance.value} source")
                return ResolvedKeywords(keywords=keywords, provenance=source.provenance)

        keywords = self.catalog_source.load()
        logger.debug(f"Using {len(keywords)} keywords from catalog")
        return ResolvedKeywords(keywords=keywords, provenance=KeywordProvenance.CATALOG)
