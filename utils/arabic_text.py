# utils/arabic_text.py

"""Arabic/English text normalization for embedding and keyword search."""
import re
import unicodedata
from typing import Dict, List, Set

from core.enums import Language

# Function words dropped before keyword search
STOP_WORDS: Dict[Language, Set[str]] = {
    Language.ARABIC: {
        "في", "من", "إلى", "عن", "مع", "هذا", "هذه",
        "التي", "الذي", "كيف", "ماذا", "أين",
    },
    Language.ENGLISH: {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to",
        "for", "of", "with", "by", "how", "what", "where",
    },
}

_DIACRITICS = re.compile(r'[\u064B-\u065F\u0670]')
_TATWEEL = '\u0640'
_INVISIBLES = re.compile(r'[\u200B-\u200F\u202A-\u202E]')
# Punctuation trimmed from both ends of a token (Latin and Arabic marks)
_EDGE_PUNCT = re.compile(r'^[^\w]+|[^\w]+$')


def normalize_arabic(text: str) -> str:
    """
    Normalize Arabic text before embedding.

    NFKC folds presentation forms to base letters; diacritics, tatweel and
    zero-width / bidi controls are removed; whitespace is collapsed.
    """
    if not text:
        return ""

    text = unicodedata.normalize('NFKC', text)
    text = _DIACRITICS.sub('', text)
    text = text.replace(_TATWEEL, '')
    text = _INVISIBLES.sub('', text)
    text = re.sub(r'\s+', ' ', text).strip()

    return text


def clean_for_embedding(text: str, language: Language, max_chars: int = 8000) -> str:
    """Prepare a passage for the embedding model."""
    if language == Language.ARABIC:
        text = normalize_arabic(text)
    else:
        text = re.sub(r'\s+', ' ', text or '').strip()
    return text[:max_chars]


def extract_search_terms(query: str, language: Language, max_terms: int = 5) -> List[str]:
    """
    Reduce a query to its leading content words for keyword fallback.

    Tokens are lower-cased, stripped of edge punctuation, longer than 2
    characters and not stop words. Duplicates are kept once, in query order.
    """
    stop_words = STOP_WORDS.get(language, set())
    terms: List[str] = []

    for raw in (query or "").lower().split():
        token = _EDGE_PUNCT.sub('', raw)
        if len(token) <= 2 or token in stop_words or token in terms:
            continue
        terms.append(token)
        if len(terms) >= max_terms:
            break

    return terms
