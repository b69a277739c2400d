# services/answer_synthesizer.py
import logging
from typing import Dict

from config import settings
from core.domain import SynthesizedAnswer
from core.enums import Language
from core.errors import GenerationError
from core.interfaces import ILanguageModel

logger = logging.getLogger(settings.LOGGER_NAME)

FALLBACK_ANSWERS: Dict[Language, str] = {
    Language.ARABIC: "عذراً، حدث خطأ في معالجة استفسارك. يرجى المحاولة مرة أخرى أو إعادة صياغة السؤال.",
    Language.ENGLISH: "Sorry, there was an error processing your query. Please try again or rephrase your question.",
}


class AnswerSynthesizer:
    """Sends the prompt to the model; any failure becomes the fixed apology with zero tokens."""

    def __init__(
        self,
        language_model: ILanguageModel,
        temperature: float = settings.LLM_TEMPERATURE,
        max_tokens: int = settings.LLM_MAX_TOKENS,
        min_answer_chars: int = settings.LLM_MIN_ANSWER_CHARS
    ):
        self.language_model = language_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.min_answer_chars = min_answer_chars

    async def synthesize(self, prompt: str, language: Language) -> SynthesizedAnswer:
        try:
            completion = await self.language_model.complete(
                [{"role": "system", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            text = (completion.text or "").strip()
            if len(text) < self.min_answer_chars:
                raise GenerationError(f"Generated response too short ({len(text)} chars)")
            return SynthesizedAnswer(text=text, tokens_used=completion.tokens_used)
        except GenerationError as e:
            logger.warning(f"[LLM] Falling back to apology answer: {e}")
        except Exception as e:
            logger.exception(f"[LLM] Unexpected failure during generation: {e}")

        return SynthesizedAnswer(text=FALLBACK_ANSWERS[language], tokens_used=0, is_fallback=True)
