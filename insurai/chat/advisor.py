"""
advisor.py — Insurance advisor chat service.

chat_with_advisor() loads the last HISTORY_TURNS exchanges of the session,
replays them as alternating user / assistant turns after the system prompt,
asks the LLM for one reply and appends the new exchange to chat_history.
In mock mode the reply is a fixed echo so tests never leave the process.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from insurai.auth.dependencies import AuthContext
from insurai.errors import BadRequestError
from insurai.llm_client import LLMClient
from insurai.store import get_chat_history, save_chat_message

logger = logging.getLogger(__name__)

HISTORY_TURNS = 10
CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1024

ADVISOR_SYSTEM_PROMPT = """You are an expert Insurance Advisor AI assistant for InsurAI, a platform that helps users in the United Arab Emirates (UAE) find the best insurance plans.

Your role is to:
1. Answer questions about insurance concepts (deductibles, premiums, coverage, exclusions, etc.)
2. Explain different types of insurance (Health, Auto, Life, Property, Travel)
3. Help users understand insurance terms and conditions
4. Provide guidance on choosing the right insurance plan
5. Explain UAE-specific insurance regulations and requirements
6. Be friendly, professional, and helpful

Important guidelines:
- Always provide accurate and helpful information
- If you're unsure about something, admit it and suggest consulting with an insurance professional
- Use simple language to explain complex insurance concepts
- Be specific about UAE insurance context when relevant
- Do not make up information about specific plans or providers
- Encourage users to compare multiple plans before making decisions
- Be concise but thorough in your responses

Context about UAE emirates:
- Abu Dhabi, Dubai, Sharjah, Ajman, Umm Al Quwain, Ras Al Khaimah, Fujairah
- Each emirate may have different insurance requirements and regulations"""


def new_session_id(user_id: int) -> str:
    return f"session_{user_id}_{int(time.time() * 1000)}"


def _history_turns(history: list[dict]) -> list[dict[str, str]]:
    turns: list[dict[str, str]] = []
    for entry in history:
        turns.append({"role": "user", "content": entry["message"]})
        turns.append({"role": "assistant", "content": entry["response"]})
    return turns


async def chat_with_advisor(
    db: AsyncSession,
    llm: LLMClient,
    user: AuthContext,
    message: str,
    session_id: Optional[str] = None,
) -> dict:
    """
    Returns:
        {reply, session_id, timestamp}

    Raises:
        BadRequestError: blank message.
        LLMRequestFailed: the completion call failed; nothing is stored.
    """
    if not message or not message.strip():
        raise BadRequestError("Message is required")

    session_id = session_id or new_session_id(user.id)
    history = await get_chat_history(db, user.id, session_id, limit=HISTORY_TURNS)

    if llm.mock:
        reply = f"Mock reply to: {message}"
    else:
        reply = await llm.complete(
            message,
            system_prompt=ADVISOR_SYSTEM_PROMPT,
            history=_history_turns(history),
            temperature=CHAT_TEMPERATURE,
            max_tokens=CHAT_MAX_TOKENS,
        )
        reply = reply.strip()

    await save_chat_message(db, user.id, session_id, message, reply)
    logger.info(
        "Advisor replied user_id=%s session_id=%s history_turns=%d",
        user.id, session_id, len(history),
    )
    return {
        "reply": reply,
        "session_id": session_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
