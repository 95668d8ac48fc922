"""Raw model output → one finished, immutable :class:`ChatResponse`.

    sanitize(text) → resolve(tool calls) → fallback (only if text is empty) → freeze

The chat surface must never show a raw error or stay silent, so any failure
in the chain turns into the fixed apology response with no actions.
"""

from __future__ import annotations

import logging

from concierge.fallback import FallbackSelector
from concierge.models import ChatContext, ChatResponse, ModelOutput, ResponseDraft
from concierge.resolver import resolve
from concierge.sanitizer import sanitize
from concierge.services.metrics import metrics

logger = logging.getLogger(__name__)

APOLOGY_TEXT = "Perdão, encontrei uma instabilidade momentânea. Poderia repetir?"


class ResponseSynthesizer:
    def __init__(self, fallback: FallbackSelector | None = None) -> None:
        self._fallback = fallback or FallbackSelector()

    def apology(self) -> ChatResponse:
        """The fixed response for a failed or timed-out model call."""
        return ChatResponse(text=APOLOGY_TEXT)

    def synthesize(
        self,
        output: ModelOutput,
        context: ChatContext | None = None,
    ) -> ChatResponse:
        """Build the chat response for one model turn.  Never raises."""
        try:
            draft = ResponseDraft(text=sanitize(output.text))
            resolution = resolve(draft, output.tool_calls, context)

            used_fallback = not draft.text
            if used_fallback:
                draft.text = self._fallback.select(draft)

            metrics.record_turn(
                tool_calls=len(output.tool_calls),
                unknown_tools=len(resolution.unknown_tools),
                clarifications=len(resolution.clarifications),
                used_fallback=used_fallback,
            )
            return draft.freeze()
        except Exception:
            logger.exception("Response synthesis failed; answering with apology")
            return self.apology()
