# services/llm_service.py
import asyncio
import logging
from typing import Any, Dict, List

import requests

from config import settings
from core.domain import LLMCompletion
from core.errors import GenerationError
from core.interfaces import ILanguageModel

logger = logging.getLogger(settings.LOGGER_NAME)


class OllamaLanguageModel(ILanguageModel):
    """Chat completions from a local Ollama-compatible API."""

    def __init__(
        self,
        base_url: str = settings.LLM_BASE_URL,
        model: str = settings.LLM_MODEL_NAME,
        timeout: int = settings.REQUEST_TIMEOUT
    ):
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.timeout = timeout

    def _post_chat(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = requests.post(
                f'{self.base_url}/api/chat',
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()  # Raises an HTTPError for bad responses (4xx or 5xx)
            return response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"[LLM] Request timed out after {self.timeout} seconds.")
            raise GenerationError("LLM request timed out") from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"[LLM] Cannot connect to LLM at {self.base_url}. Is the service running?")
            raise GenerationError("Cannot connect to LLM service") from e
        except requests.exceptions.HTTPError as e:
            logger.error(f"[LLM] Service returned an error: {e.response.status_code} {e.response.text}")
            raise GenerationError(f"LLM error: {e.response.status_code}") from e
        except ValueError as e:
            logger.error(f"[LLM] Response was not valid JSON: {e}")
            raise GenerationError("Malformed LLM response") from e

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = settings.LLM_TEMPERATURE,
        max_tokens: int = settings.LLM_MAX_TOKENS
    ) -> LLMCompletion:
        if not messages:
            raise GenerationError("No messages provided")

        logger.info(f"[LLM] Sending {len(messages)} message(s) to model '{self.model}'...")
        result = await asyncio.to_thread(self._post_chat, {
            'model': self.model,
            'messages': messages,
            'stream': False,
            'options': {
                'temperature': temperature,
                'num_predict': max_tokens,
            },
        })

        content = (result.get('message') or {}).get('content')
        if not content or not str(content).strip():
            logger.error("[LLM] Response was empty or malformed.")
            raise GenerationError("Empty response from LLM")

        tokens = int(result.get('prompt_eval_count') or 0) + int(result.get('eval_count') or 0)
        logger.info(f"[LLM] Received response ({tokens} tokens).")
        return LLMCompletion(text=str(content).strip(), tokens_used=tokens)
