# services/context_enhancer.py
import logging
from typing import List, Optional

from config import settings
from core.domain import ConversationTurn
from core.enums import ConversationRole
from core.interfaces import IConversationRepository

logger = logging.getLogger(settings.LOGGER_NAME)


class ConversationContextEnhancer:
    """
    Prepends recent user questions to a follow-up query.

    Purely lexical: it gives the embedding some of the earlier topic, it does
    not resolve pronouns or references.
    """

    def __init__(
        self,
        conversation_repo: IConversationRepository,
        turn_limit: int = settings.CHAT_CONTEXT_LIMIT,
        turn_chars: int = settings.CHAT_CONTEXT_TURN_CHARS
    ):
        self.conversation_repo = conversation_repo
        self.turn_limit = turn_limit
        self.turn_chars = turn_chars

    def _shorten(self, text: str) -> str:
        text = text.strip()
        if len(text) <= self.turn_chars:
            return text
        return text[:self.turn_chars] + "..."

    def summarize(self, turns: List[ConversationTurn]) -> str:
        questions = [
            f'User asked: "{self._shorten(t.content)}"'
            for t in turns[-self.turn_limit:]
            if t.role == ConversationRole.USER and t.content.strip()
        ]
        if not questions:
            return ""
        return "Previous conversation: " + " ".join(questions)

    async def enhance(self, query: str, conversation_id: Optional[str]) -> str:
        if not conversation_id:
            return query

        try:
            turns = await self.conversation_repo.get_recent_turns(conversation_id, self.turn_limit)
        except Exception as e:
            logger.warning(f"Could not load conversation {conversation_id}, using query as-is: {e}")
            return query

        summary = self.summarize(turns)
        if not summary:
            return query
        return f"{summary}\n\nCurrent question: {query}"
