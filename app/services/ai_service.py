from typing import Callable, List, Optional, Sequence

from app.logging_config import get_logger
from app.models import DEFAULT_PROMPT, Bot, ChatTurn
from app.services.alert_service import alert_error
from app.services.knowledge_service import KnowledgeMatch, format_knowledge_context
from app.services.llm import LLMProvider
from app.services.result import Result

logger = get_logger("ai_service")

APOLOGY_MESSAGE = "Sorry, I encountered an error. Please try again."


def build_system_prompt(bot: Bot, knowledge: Sequence[KnowledgeMatch] = ()) -> str:
    prompt = (bot.prompt or DEFAULT_PROMPT).strip()
    context = format_knowledge_context(list(knowledge))
    if context:
        prompt = f"{prompt}\n\n{context}"
    return prompt


def build_messages(
    bot: Bot,
    user_message: str,
    history: Sequence[ChatTurn] = (),
    knowledge: Sequence[KnowledgeMatch] = (),
) -> List[dict]:
    """System prompt, then prior turns as user/assistant pairs, then the new message."""
    messages = [{"role": "system", "content": build_system_prompt(bot, knowledge)}]
    for turn in history:
        if turn.message:
            messages.append({"role": "user", "content": turn.message})
        if turn.response:
            messages.append({"role": "assistant", "content": turn.response})
    messages.append({"role": "user", "content": user_message})
    return messages


def generate_ai_response(
    llm: Optional[LLMProvider],
    bot: Bot,
    user_message: str,
    history: Sequence[ChatTurn] = (),
    knowledge: Sequence[KnowledgeMatch] = (),
    max_tokens: int = 2000,
) -> Result[str]:
    """Ask the model backend for a reply. Failures come back as Result.failure."""
    if llm is None:
        return Result.failure("No model backend configured for team", "not_configured")

    messages = build_messages(bot, user_message, history, knowledge)
    try:
        response = llm.generate(messages, max_tokens=max_tokens)
    except Exception as e:
        logger.error(
            f"LLM call failed: {e}",
            extra={"context": {"bot_id": str(bot.id), "messages_count": len(messages)}},
        )
        return Result.from_exception(e, "llm_error")

    if response.truncated:
        logger.warning(
            "LLM reply hit the token budget",
            extra={"context": {"bot_id": str(bot.id), "max_tokens": max_tokens}},
        )
    logger.info(
        "LLM reply generated",
        extra={"context": {"bot_id": str(bot.id), "model": response.model, "usage": response.usage}},
    )
    return Result.success(response.content.strip())


def generate_response(
    llm: Optional[LLMProvider],
    bot: Bot,
    user_message: str,
    history: Sequence[ChatTurn] = (),
    knowledge: Sequence[KnowledgeMatch] = (),
    formatter: Optional[Callable[[str], str]] = None,
    max_tokens: int = 2000,
) -> str:
    """Reply text ready for the target platform. Never raises on backend failure."""
    result = generate_ai_response(llm, bot, user_message, history, knowledge, max_tokens=max_tokens)
    if not result.ok:
        alert_error("Response generation failed", {"bot_id": str(bot.id), **result.log_fields()})

    text = result.unwrap_or(APOLOGY_MESSAGE)
    return formatter(text) if formatter else text
