# infrastructure/embedding_services.py
"""Multilingual embedding generation with L2 normalization"""
import asyncio
import logging
from typing import Dict, List

import numpy as np
from sentence_transformers import SentenceTransformer

from config import settings
from core.enums import Language
from core.errors import EmbeddingError
from core.interfaces import IEmbeddingService
from utils.arabic_text import clean_for_embedding
from utils.language_detection import detect_language

logger = logging.getLogger(settings.LOGGER_NAME)


class SentenceTransformerEmbedding(IEmbeddingService):
    """
    Sentence transformer with L2 normalization (unit vectors).

    With unit vectors cosine similarity equals the dot product, so the
    similarity store can score with `1 - cosine_distance` and one threshold
    behaves the same for both corpora.
    """

    _models: Dict[str, SentenceTransformer] = {}  # Loaded once per model name

    def __init__(
        self,
        model_name: str = settings.EMBEDDING_MODEL_NAME,
        max_chars: int = settings.EMBEDDING_MAX_CHARS,
        query_prefixes: Dict[Language, str] = None
    ):
        self.model_name = model_name
        self.max_chars = max_chars
        self.query_prefixes = query_prefixes or {
            Language.ENGLISH: settings.QUERY_CONTEXT_PREFIX_EN,
            Language.ARABIC: settings.QUERY_CONTEXT_PREFIX_AR,
        }

        if model_name not in SentenceTransformerEmbedding._models:
            try:
                logger.info(f"Attempting to load model {model_name} from local cache...")
                SentenceTransformerEmbedding._models[model_name] = SentenceTransformer(
                    model_name,
                    local_files_only=True
                )
                logger.info(f"Successfully loaded {model_name} from local cache.")
            except Exception as e:
                logger.warning(
                    f"Model {model_name} not found in cache. Attempting online download. "
                    f"This may take a few minutes. Error: {e}"
                )
                SentenceTransformerEmbedding._models[model_name] = SentenceTransformer(model_name)
                logger.info(f"Successfully downloaded and loaded {model_name}.")

        self.model = SentenceTransformerEmbedding._models[model_name]

    @staticmethod
    def _l2_normalize(arr: np.ndarray) -> np.ndarray:
        """Scale each row of an (N, D) array to unit length."""
        norms = np.linalg.norm(arr, axis=1, keepdims=True)
        norms[norms == 0] = 1e-12  # Avoid division by zero
        return arr / norms

    def _prepare(self, text: str) -> str:
        language = detect_language(text).language
        return clean_for_embedding(text, language, self.max_chars)

    async def _encode(self, texts: List[str]) -> List[List[float]]:
        try:
            raw = await asyncio.to_thread(
                self.model.encode,
                texts,
                convert_to_tensor=False
            )
        except Exception as e:
            logger.error(f"[EMBED] Encoding {len(texts)} text(s) failed: {e}")
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

        normalized = self._l2_normalize(np.array(raw, dtype="float32").reshape(len(texts), -1))
        return normalized.tolist()

    async def embed(self, text: str) -> List[float]:
        vectors = await self._encode([self._prepare(text)])
        return vectors[0]

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        return await self._encode([self._prepare(t) for t in texts])

    async def embed_query(self, query: str, language: Language) -> List[float]:
        """Embed a query prefixed with its domain context."""
        prefix = self.query_prefixes.get(language, "")
        text = clean_for_embedding(f"{prefix}{query.strip()}", language, self.max_chars)
        vectors = await self._encode([text])
        return vectors[0]
