# services/suggestions.py
"""Query suggestions: curated HR questions plus questions about the tenant's own documents"""
import logging
from typing import Dict, List, Optional

from config import settings
from core.enums import DocumentStatus, Language
from core.interfaces import IDocumentRepository
from infrastructure.suggestion_cache import SuggestionCache

logger = logging.getLogger(settings.LOGGER_NAME)

SUGGESTION_TEMPLATES: Dict[Language, List[str]] = {
    Language.ARABIC: [
        'ما هي سياسة الإجازات في الشركة؟',
        'كيف يتم احتساب مكافأة نهاية الخدمة؟',
        'ما هي إجراءات إنهاء عقد العمل؟',
        'ما هي ساعات العمل المسموحة قانونياً؟',
        'كيف يتم التعامل مع الإجازات المرضية؟',
        'ما هي حقوق الموظف في فترة التجربة؟',
        'كيف يتم احتساب الراتب الأساسي والبدلات؟',
        'ما هي إجراءات تقديم الشكاوى؟',
    ],
    Language.ENGLISH: [
        "What is the company's leave policy?",
        'How is end-of-service gratuity calculated?',
        'What are the procedures for employment termination?',
        'What are the legally allowed working hours?',
        'How are sick leaves handled?',
        'What are employee rights during probation period?',
        'How are basic salary and allowances calculated?',
        'What are the procedures for filing complaints?',
    ],
}

DOCUMENT_QUESTION: Dict[Language, str] = {
    Language.ARABIC: 'ما الذي يتضمنه مستند "{title}"؟',
    Language.ENGLISH: 'What does "{title}" cover?',
}


class QuerySuggestionService:
    def __init__(self, document_repo: IDocumentRepository, cache: SuggestionCache):
        self.document_repo = document_repo
        self.cache = cache

    async def suggest(
        self,
        organization_id: str,
        language: Language,
        prefix: Optional[str] = None,
        limit: int = 5
    ) -> List[str]:
        prefix = (prefix or "").strip().lower()
        key = (organization_id, language.value, prefix, limit)

        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        candidates = list(SUGGESTION_TEMPLATES[language])
        documents = await self.document_repo.list_by_organization(organization_id)
        candidates += [
            DOCUMENT_QUESTION[language].format(title=doc.title)
            for doc in documents
            if doc.status == DocumentStatus.COMPLETED and doc.language in (None, language)
        ]

        if prefix:
            candidates = [c for c in candidates if prefix in c.lower()]

        suggestions = candidates[:limit]
        self.cache.set(key, suggestions)
        logger.debug(f"Built {len(suggestions)} suggestions for org={organization_id} lang={language.value}")
        return suggestions
