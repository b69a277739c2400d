from core.domain import ConversationTurn
from core.enums import ConversationRole
from services.context_enhancer import ConversationContextEnhancer
from tests.conftest import InMemoryConversationRepository

USER = ConversationRole.USER
ASSISTANT = ConversationRole.ASSISTANT


def _enhancer(turns=None, fail=False, **kwargs) -> ConversationContextEnhancer:
    repo = InMemoryConversationRepository({"conv-1": turns or []}, fail=fail)
    return ConversationContextEnhancer(repo, **kwargs)


async def test_query_without_conversation_is_unchanged():
    assert await _enhancer().enhance("annual leave?", None) == "annual leave?"


async def test_previous_user_questions_are_prepended():
    turns = [
        ConversationTurn(USER, "How many leave days do I get?"),
        ConversationTurn(ASSISTANT, "You get 21 days."),
    ]

    enhanced = await _enhancer(turns).enhance("And for sick leave?", "conv-1")

    assert enhanced == (
        'Previous conversation: User asked: "How many leave days do I get?"'
        "\n\nCurrent question: And for sick leave?"
    )


async def test_long_turns_are_shortened():
    turns = [ConversationTurn(USER, "q" * 150)]

    enhanced = await _enhancer(turns, turn_chars=100).enhance("next", "conv-1")

    assert f'"{"q" * 100}..."' in enhanced


async def test_only_recent_turns_are_used():
    turns = [ConversationTurn(USER, f"question {i}") for i in range(6)]

    enhanced = await _enhancer(turns, turn_limit=2).enhance("next", "conv-1")

    assert "question 4" in enhanced and "question 5" in enhanced
    assert "question 3" not in enhanced


async def test_history_without_user_turns_leaves_query_alone():
    turns = [ConversationTurn(ASSISTANT, "Hello, how can I help?")]

    assert await _enhancer(turns).enhance("annual leave?", "conv-1") == "annual leave?"


async def test_repository_failure_degrades_to_plain_query():
    assert await _enhancer(fail=True).enhance("annual leave?", "conv-1") == "annual leave?"
