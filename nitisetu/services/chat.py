"""Short conversational replies for the assistant tab."""

from __future__ import annotations

import json
from typing import Final

import structlog

from nitisetu.models.profile import FarmerProfile
from nitisetu.services.gemini import RemoteModel
from nitisetu.services.resilience import ResilientInvoker

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_FALLBACK_REPLY: Final[str] = "Understood. How else can I help?"

_SYSTEM_INSTRUCTION: Final[str] = """\
You are Niti-Setu AI for Indian farmers.
Context: {profile}.
Give helpful, professional advice in 1-2 sentences.\
"""


def build_system_instruction(profile: FarmerProfile) -> str:
    snapshot = json.dumps(profile.to_wire(), ensure_ascii=False)
    return _SYSTEM_INSTRUCTION.format(profile=snapshot)


class ConversationalResponder:
    """One-shot chat reply with the current profile as context."""

    def __init__(
        self,
        model: RemoteModel,
        invoker: ResilientInvoker,
        model_name: str | None = None,
    ) -> None:
        self._model = model
        self._invoker = invoker
        self._model_name = model_name

    async def respond(
        self,
        message: str,
        profile_context: FarmerProfile,
        fallback: str = DEFAULT_FALLBACK_REPLY,
    ) -> str:
        instruction = build_system_instruction(profile_context)

        async def _call() -> str:
            return await self._model.generate_text(
                message,
                system_instruction=instruction,
                model=self._model_name,
            )

        reply = await self._invoker.invoke(_call, label="chat")
        if not reply or not reply.strip():
            logger.info("chat.empty_reply")
            return fallback
        return reply
