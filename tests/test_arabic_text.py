from core.enums import Language
from utils.arabic_text import clean_for_embedding, extract_search_terms, normalize_arabic


def test_normalize_strips_diacritics_and_tatweel():
    assert normalize_arabic("الإِجَازَة") == "الإجازة"
    assert normalize_arabic("العـــمل") == "العمل"


def test_normalize_collapses_whitespace():
    assert normalize_arabic("  نظام   العمل \n السعودي ") == "نظام العمل السعودي"


def test_clean_for_embedding_truncates():
    text = "leave " * 100
    cleaned = clean_for_embedding(text, Language.ENGLISH, max_chars=50)

    assert len(cleaned) == 50
    assert "  " not in cleaned


def test_search_terms_drop_stop_words_and_short_tokens():
    terms = extract_search_terms("What is the policy for annual leave?", Language.ENGLISH)

    assert terms == ["policy", "annual", "leave"]


def test_search_terms_are_capped_and_deduplicated():
    terms = extract_search_terms(
        "overtime overtime salary bonus allowance pension insurance", Language.ENGLISH, max_terms=3
    )

    assert terms == ["overtime", "salary", "bonus"]


def test_arabic_search_terms_trim_question_mark():
    terms = extract_search_terms("كيف يتم احتساب العمل الإضافي؟", Language.ARABIC)

    assert terms == ["يتم", "احتساب", "العمل", "الإضافي"]
