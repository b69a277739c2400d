# services/prompt_builder.py
"""Builds the single grounded prompt sent to the language model"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.domain import SearchResult
from core.enums import Language


@dataclass(frozen=True)
class PromptTemplate:
    role: str
    instructions: str
    context_label: str
    documents_label: str
    regulations_label: str
    article_label: str
    no_documents: str
    no_regulations: str
    question_label: str
    language_tag: str
    answer_label: str


TEMPLATES: Dict[Language, PromptTemplate] = {
    Language.ENGLISH: PromptTemplate(
        role=(
            "You are an expert HR consultant specializing in Saudi Labor Law. "
            "Your task is to provide accurate and helpful answers in English."
        ),
        instructions=(
            "Important instructions:\n"
            "1. Use only the provided information to answer\n"
            '2. If no adequate information is found, say "Insufficient information available"\n'
            "3. Reference sources in your response\n"
            "4. Provide practical and actionable answers\n"
            "5. Ensure all recommendations comply with Saudi Labor Law"
        ),
        context_label="Organizational Context",
        documents_label="Company Documents",
        regulations_label="Saudi Labor Law",
        article_label="Article",
        no_documents="No relevant company documents found.",
        no_regulations="No relevant labor law articles found.",
        question_label="Question",
        language_tag="Respond in English.",
        answer_label="Answer",
    ),
    Language.ARABIC: PromptTemplate(
        role=(
            "أنت مستشار موارد بشرية متخصص في قانون العمل السعودي. "
            "مهمتك هي تقديم إجابات دقيقة ومفيدة باللغة العربية."
        ),
        instructions=(
            "تعليمات مهمة:\n"
            "1. استخدم المعلومات المرفقة فقط للإجابة\n"
            '2. إذا لم تجد إجابة في المصادر، قل "لا تتوفر معلومات كافية"\n'
            "3. اذكر المصادر المرجعية في إجابتك\n"
            "4. قدم إجابات عملية وقابلة للتطبيق\n"
            "5. التزم بقانون العمل السعودي في جميع التوصيات"
        ),
        context_label="السياق التنظيمي",
        documents_label="مستندات الشركة",
        regulations_label="قانون العمل السعودي",
        article_label="المادة",
        no_documents="لم يتم العثور على مستندات ذات صلة.",
        no_regulations="لم يتم العثور على مواد نظامية ذات صلة.",
        question_label="السؤال",
        language_tag="أجب باللغة العربية.",
        answer_label="الإجابة",
    ),
}


class PromptBuilder:
    """
    Layout (fixed order): role, instructions, organisation context,
    company document excerpts, labor law excerpts, question, language tag.
    Empty evidence sections stay in place with a "none found" line.
    """

    def __init__(self, templates: Optional[Dict[Language, PromptTemplate]] = None):
        self.templates = templates or TEMPLATES

    def build(
        self,
        query: str,
        language: Language,
        document_results: List[SearchResult],
        regulation_results: List[SearchResult],
        organization_name: str
    ) -> str:
        t = self.templates[language]

        sections = [
            t.role,
            t.instructions,
            f"{t.context_label}: {organization_name}",
            self._documents_section(t, document_results),
            self._regulations_section(t, regulation_results),
            f"{t.question_label}: {query}",
            t.language_tag,
        ]
        return "\n\n".join(sections) + f"\n\n{t.answer_label}:"

    @staticmethod
    def _documents_section(t: PromptTemplate, results: List[SearchResult]) -> str:
        if not results:
            return f"{t.documents_label}:\n{t.no_documents}"
        lines = [f"{t.documents_label}:"]
        for index, result in enumerate(results, start=1):
            lines.append(f"{index}. {result.title}\n{result.text}")
        return "\n".join(lines)

    @staticmethod
    def _regulations_section(t: PromptTemplate, results: List[SearchResult]) -> str:
        if not results:
            return f"{t.regulations_label}:\n{t.no_regulations}"
        lines = [f"{t.regulations_label}:"]
        for index, result in enumerate(results, start=1):
            article = result.article
            number = article.article_number if article else ""
            lines.append(f"{index}. {t.article_label} {number}: {result.title}\n{result.text}")
        return "\n".join(lines)
