"""
Structural address extraction from raw page text.

Recovers the addressing a reader would use to cite a page:
- Korean statute references (제N조, 제N조제N항, ... down to 목 and
  numbered sub-items), prefixed with the legal instrument when the
  document is an enforcement decree (시행령) or rule (시행규칙)
- printed page numbers found in the page footer

Extraction is pure: identical input always produces identical, identically
ordered output, which keeps cache keys and chunk tags stable.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from docvault.core.models import StructuralTag, TagKind

logger = logging.getLogger(__name__)


class DocumentKind(str, Enum):
    LEGAL = "legal"
    PLAIN = "plain"


@dataclass(frozen=True)
class ExtractionResult:
    """Tag for a page plus every article label found on it, in order."""

    tag: StructuralTag
    ordered_matches: tuple[str, ...] = field(default_factory=tuple)


# Keywords in a file name that mark it as statute text
LEGAL_KEYWORDS = ("법률", "법", "시행령", "시행규칙", "규제법", "해설집")

ENFORCEMENT_DECREE = "시행령"
ENFORCEMENT_RULE = "시행규칙"

# Lettered sub-items (목) follow the Korean syllabary order
SUB_ITEM_LETTERS = "가나다라마바사아자차카타파하"

_LABEL_PARTS = re.compile(r"제(\d+)조(?:제(\d+)항)?(?:제(\d+)호)?(?:([가-힣])목)?(\d+)?")


def classify_document(document_name: str) -> DocumentKind:
    """Decide from the file name whether a document is statute text."""
    lowered = document_name.lower()
    if any(keyword in lowered for keyword in LEGAL_KEYWORDS):
        return DocumentKind.LEGAL
    return DocumentKind.PLAIN


def instrument_prefix(document_name: str) -> Optional[str]:
    """Label prefix distinguishing decrees and rules from the parent act."""
    if ENFORCEMENT_DECREE in document_name:
        return ENFORCEMENT_DECREE
    if ENFORCEMENT_RULE in document_name:
        return ENFORCEMENT_RULE
    return None


def _sub_item_ordinal(letter: str) -> int:
    index = SUB_ITEM_LETTERS.find(letter)
    return index + 1 if index >= 0 else ord(letter)


def article_sort_key(label: str) -> tuple:
    """
    Numeric ordering key for an article label.

    "제2조" sorts before "제10조", and "제1조" before "제1조제1항".
    """
    match = _LABEL_PARTS.search(label)
    if not match:
        return ((), 0, label)
    article, clause, item, sub_item, number = match.groups()
    numbers = [int(article)]
    for part in (clause, item):
        if part is None:
            break
        numbers.append(int(part))
    else:
        if sub_item is not None:
            numbers.append(_sub_item_ordinal(sub_item))
            if number is not None:
                numbers.append(int(number))
    encoded = tuple(numbers)
    return (encoded, len(encoded), label)


class StructuralExtractor:
    """
    Pattern-based structural tagging of extracted page text.

    Usage:
        extractor = StructuralExtractor()
        result = extractor.extract(page_text, DocumentKind.LEGAL, 3, "국민건강증진법 시행령.pdf")
        print(result.tag.marker, result.ordered_matches)
    """

    # Article references, least to most specific
    ARTICLE_PATTERNS = [
        r"제(\d+)조",
        r"제(\d+)조제(\d+)항",
        r"제(\d+)조제(\d+)항제(\d+)호",
        r"제(\d+)조제(\d+)항제(\d+)호([가-힣])목",
        r"제(\d+)조제(\d+)항제(\d+)호([가-힣])목(\d+)",
    ]

    # Footer page number formats, tried in order
    PAGE_NUMBER_PATTERNS = [
        r"^(\d+)$",
        r"^페이지\s*(\d+)$",
        r"^page\s*(\d+)$",
        r"^(\d+)\s*/\s*\d+$",
        r"^(\d+)\s*of\s*\d+$",
        r"^p\.\s*(\d+)$",
        r"^-\s*(\d+)\s*-$",
    ]

    FOOTER_LINES = 5
    MIN_PAGE_NUMBER = 1
    MAX_PAGE_NUMBER = 999

    def __init__(self):
        self._article_patterns = [re.compile(p) for p in self.ARTICLE_PATTERNS]
        self._page_patterns = [re.compile(p, re.IGNORECASE) for p in self.PAGE_NUMBER_PATTERNS]

    def extract(
        self,
        page_text: str,
        document_kind: DocumentKind,
        page_index: int,
        document_name: str = "",
    ) -> ExtractionResult:
        """
        Tag a page with its article labels or its printed page number.

        Args:
            page_text: Raw text of one page
            document_kind: LEGAL enables article scanning
            page_index: The page's position in the document, used when
                no printed page number can be recovered
            document_name: File name, used for the instrument prefix

        Returns:
            ExtractionResult whose tag is never None
        """
        if document_kind == DocumentKind.LEGAL:
            articles = self.find_articles(page_text, document_name)
            if articles:
                return ExtractionResult(
                    tag=StructuralTag(TagKind.ARTICLE, articles[0]),
                    ordered_matches=tuple(articles),
                )

        page_number = self.find_page_number(page_text, page_index)
        return ExtractionResult(tag=StructuralTag(TagKind.PAGE, page_number))

    def find_articles(self, page_text: str, document_name: str = "") -> list[str]:
        """All article labels on the page, deduplicated and numerically sorted."""
        found: set[str] = set()
        for pattern in self._article_patterns:
            for match in pattern.finditer(page_text):
                found.add(match.group(0))

        prefix = instrument_prefix(document_name)
        if prefix:
            found = {f"{prefix} {label}" for label in found}

        return sorted(found, key=article_sort_key)

    def find_page_number(self, page_text: str, page_index: int) -> int:
        """Printed page number from the footer, else page_index."""
        lines = [line.strip() for line in page_text.split("\n")]
        footer = [line for line in lines if line][-self.FOOTER_LINES:]

        for line in reversed(footer):
            for pattern in self._page_patterns:
                match = pattern.match(line)
                if not match:
                    continue
                number = int(match.group(1))
                if self.MIN_PAGE_NUMBER <= number <= self.MAX_PAGE_NUMBER:
                    return number

        return page_index


def mark_page(page_text: str, result: ExtractionResult) -> str:
    """Prefix page text with its structural markers."""
    if result.ordered_matches:
        markers = " ".join(f"[ARTICLE_{label}]" for label in result.ordered_matches)
    else:
        markers = result.tag.marker
    return f"{markers} {page_text}"


_default_extractor = StructuralExtractor()


def extract(
    page_text: str,
    document_kind: DocumentKind,
    page_index: int,
    document_name: str = "",
) -> ExtractionResult:
    """Module-level shortcut over a shared, stateless StructuralExtractor."""
    return _default_extractor.extract(page_text, document_kind, page_index, document_name)
