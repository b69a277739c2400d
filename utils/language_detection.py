# utils/language_detection.py
"""
Arabic / English language detection.

Three independent signals are combined with fixed weights:
- character distribution (0.4)
- common HR vocabulary (0.4)
- morphological patterns (0.2)
Each signal votes for one language with a confidence; the weighted votes
are summed per language and the larger side wins. Ties go to English.
"""
import re
from typing import List, Tuple

from core.domain import LanguageDetection
from core.enums import Language

ARABIC_RANGES: List[Tuple[int, int]] = [
    (0x0600, 0x06FF),  # Arabic
    (0x0750, 0x077F),  # Arabic Supplement
    (0x08A0, 0x08FF),  # Arabic Extended-A
    (0xFB50, 0xFDFF),  # Presentation Forms-A
    (0xFE70, 0xFEFF),  # Presentation Forms-B
]

COMMON_ARABIC_WORDS = frozenset([
    'في', 'من', 'إلى', 'على', 'هذا', 'هذه', 'ذلك', 'تلك', 'التي', 'الذي',
    'وهو', 'وهي', 'كان', 'كانت', 'يكون', 'تكون', 'عند', 'عندما', 'حيث', 'كيف',
    'ماذا', 'متى', 'أين', 'لماذا', 'كذلك', 'أيضا', 'أيضاً', 'لكن', 'ولكن', 'إذا',
    'الموظف', 'العامل', 'الشركة', 'العمل', 'الراتب', 'الأجر', 'الإجازة', 'القانون',
    'النظام', 'اللائحة', 'العقد', 'الاتفاقية', 'الموارد', 'البشرية', 'الإدارة', 'المدير',
    'التدريب', 'التطوير', 'الترقية', 'الحوافز', 'المكافآت', 'التأمينات', 'المعاش',
])

COMMON_ENGLISH_WORDS = frozenset([
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of',
    'with', 'by', 'from', 'up', 'about', 'into', 'over', 'after', 'this', 'that',
    'will', 'would', 'could', 'should', 'may', 'might', 'can', 'do', 'does', 'did',
    'employee', 'worker', 'company', 'work', 'salary', 'wage', 'leave', 'vacation',
    'law', 'legal', 'contract', 'agreement', 'human', 'resources', 'management', 'manager',
    'training', 'development', 'promotion', 'incentive', 'bonus', 'insurance', 'pension',
])

_ARABIC_PATTERNS = [re.compile(p) for p in (
    r'ال[ا-ي]',      # definite article
    r'[ا-ي]ة\s',     # feminine ending
    r'[ا-ي]ين\s',    # masculine plural
    r'[ا-ي]ات\s',    # feminine plural
    r'في\s+ال',
    r'من\s+ال',
    r'على\s+ال',
    r'وال[ا-ي]',
)]

_ENGLISH_PATTERNS = [re.compile(p, re.ASCII) for p in (
    r'\bthe\s+\w+',
    r'\b\w+ing\b',
    r'\b\w+ed\b',
    r'\b\w+ly\b',
    r'\b\w+tion\b',
    r'\b\w+ness\b',
    r'\bof\s+the\b',
    r'\bin\s+the\b',
)]

CHARACTER_WEIGHT = 0.4
WORD_WEIGHT = 0.4
PATTERN_WEIGHT = 0.2
CHARACTER_MARGIN = 0.1

# Anything outside Arabic blocks and printable ASCII becomes a space
_KEEP_RANGES = ARABIC_RANGES + [(0x0020, 0x007F)]
_NOISE = re.compile(
    '[^' + ''.join(f'{re.escape(chr(lo))}-{re.escape(chr(hi))}' for lo, hi in _KEEP_RANGES) + r'\s]'
)


def is_arabic_char(char: str) -> bool:
    code = ord(char)
    return any(lo <= code <= hi for lo, hi in ARABIC_RANGES)


def is_latin_char(char: str) -> bool:
    return ('A' <= char <= 'Z') or ('a' <= char <= 'z')


def _clean(text: str) -> str:
    text = _NOISE.sub(' ', text)
    return re.sub(r'\s+', ' ', text).strip().lower()


def _by_characters(text: str) -> Tuple[Language, float]:
    total = len(text)
    arabic = sum(1 for c in text if is_arabic_char(c))
    latin = sum(1 for c in text if is_latin_char(c))
    arabic_score = arabic / total if total else 0.0
    latin_score = latin / total if total else 0.0

    if arabic_score > latin_score + CHARACTER_MARGIN:
        return Language.ARABIC, min(arabic_score * 2, 1.0)
    if latin_score > arabic_score + CHARACTER_MARGIN:
        return Language.ENGLISH, min(latin_score * 2, 1.0)
    # Mixed: lean towards whichever script has the edge
    return (Language.ARABIC if arabic_score >= latin_score else Language.ENGLISH), 0.5


def _by_words(text: str) -> Tuple[Language, float]:
    words = text.split()
    arabic_hits = english_hits = 0
    for word in words:
        if len(word) <= 1:
            continue
        if word in COMMON_ARABIC_WORDS:
            arabic_hits += 1
        elif word in COMMON_ENGLISH_WORDS:
            english_hits += 1

    relevant = arabic_hits + english_hits
    if relevant == 0:
        arabic_words = sum(1 for w in words if any(is_arabic_char(c) for c in w))
        english_words = sum(
            1 for w in words
            if not any(is_arabic_char(c) for c in w) and any(is_latin_char(c) for c in w)
        )
        spread = abs(arabic_words - english_words) / len(words) if words else 0.0
        language = Language.ARABIC if arabic_words > english_words else Language.ENGLISH
        return language, max(0.3, spread)

    if arabic_hits > english_hits:
        return Language.ARABIC, arabic_hits / relevant
    return Language.ENGLISH, english_hits / relevant


def _by_patterns(text: str) -> Tuple[Language, float]:
    arabic = sum(len(p.findall(text)) for p in _ARABIC_PATTERNS)
    english = sum(len(p.findall(text)) for p in _ENGLISH_PATTERNS)
    total = arabic + english
    if total == 0:
        return Language.ENGLISH, 0.1
    if arabic > english:
        return Language.ARABIC, arabic / total
    return Language.ENGLISH, english / total


def detect_language(text: str) -> LanguageDetection:
    """Detect whether text is Arabic or English."""
    if not text or not text.strip():
        return LanguageDetection(Language.ENGLISH, 0.0, "empty")

    cleaned = _clean(text)
    votes = [
        (_by_characters(cleaned), CHARACTER_WEIGHT),
        (_by_words(cleaned), WORD_WEIGHT),
        (_by_patterns(cleaned), PATTERN_WEIGHT),
    ]

    arabic_score = english_score = 0.0
    total_weight = 0.0
    for (language, confidence), weight in votes:
        if language == Language.ARABIC:
            arabic_score += confidence * weight
        else:
            english_score += confidence * weight
        total_weight += weight

    arabic_score /= total_weight
    english_score /= total_weight

    if arabic_score > english_score:
        return LanguageDetection(Language.ARABIC, arabic_score)
    return LanguageDetection(Language.ENGLISH, english_score)


def detect_conversation_language(messages: List[str]) -> LanguageDetection:
    """Dominant language across a conversation; longer threads get a small confidence boost."""
    if not messages:
        return LanguageDetection(Language.ENGLISH, 0.0, "empty")

    result = detect_language(' '.join(messages))
    boost = min(len(messages) / 10, 0.2)
    result.confidence = min(result.confidence + boost, 1.0)
    return result
