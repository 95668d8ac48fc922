"""Boundary validation for raw tool calls.

A raw ``ToolCall`` (``name: str, args: dict``) is turned into one of:

* :class:`ToolIntent` — a known tool whose arguments validated;
* :class:`NeedsClarification` — a known tool whose arguments are missing or
  malformed; carries the question to put to the visitor instead;
* ``None`` — an unknown name (model drift), ignored by the resolver.

Nothing in here raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from concierge.models import ToolCall
from concierge.tools.declarations import (
    TOOL_ARGS,
    NavigateSiteArgs,
    ScheduleMeetingArgs,
    _ToolArgs,
)

logger = logging.getLogger(__name__)

# Anything shorter cannot be a street address ("Rua X, 10" has 9).
MIN_ADDRESS_LENGTH = 6

# Background tools never interrupt the visitor with a question.
SILENT_TOOLS = frozenset({"learnClientPreference", "autoNoteInterest"})

ASK_APPOINTMENT_TYPE = (
    "Claro! Você prefere uma reunião (online ou no escritório) "
    "ou uma visita técnica ao local da obra?"
)
ASK_VISIT_ADDRESS = (
    "Para agendarmos a visita técnica, qual é o endereço completo da obra ou do imóvel?"
)
ASK_MEETING_MODALITY = (
    "Perfeito! A reunião seria online (videochamada) ou presencial no escritório?"
)
ASK_NOTE_MESSAGE = "Claro! Qual mensagem você gostaria de deixar para a nossa equipe?"
ASK_NAVIGATION_TARGET = (
    "Para qual página você gostaria de ir? Posso te levar ao portfólio, "
    "à loja, à página sobre o escritório ou ao contato."
)
ASK_GENERIC = "Não entendi bem. Pode me dar mais detalhes sobre o que você precisa?"

_QUESTION_BY_TOOL = {
    "scheduleMeeting": ASK_APPOINTMENT_TYPE,
    "saveClientNote": ASK_NOTE_MESSAGE,
    "navigateSite": ASK_NAVIGATION_TARGET,
}


@dataclass(frozen=True)
class ToolIntent:
    name: str
    args: _ToolArgs


@dataclass(frozen=True)
class NeedsClarification:
    name: str
    question: str


def _schedule_question(args: ScheduleMeetingArgs) -> str | None:
    """Return the clarifying question a scheduling request still needs, if any."""
    if args.type is None:
        return ASK_APPOINTMENT_TYPE
    if args.type == "visit":
        address = (args.address or "").strip()
        if len(address) < MIN_ADDRESS_LENGTH:
            return ASK_VISIT_ADDRESS
        return None
    if args.modality is None:
        return ASK_MEETING_MODALITY
    return None


def _navigation_question(args: NavigateSiteArgs) -> str | None:
    path = args.path
    if "://" in path or path.startswith("//"):
        return ASK_NAVIGATION_TARGET
    return None


def parse_tool_call(call: ToolCall) -> ToolIntent | NeedsClarification | None:
    """Validate *call* against its tool's args model."""
    model = TOOL_ARGS.get(call.name)
    if model is None:
        logger.debug("Ignoring unknown tool %r", call.name)
        return None

    raw_args = call.args if isinstance(call.args, dict) else {}
    try:
        args = model.model_validate(raw_args)
    except ValidationError as exc:
        logger.info(
            "Malformed args for %s (%d errors): %s",
            call.name, exc.error_count(), raw_args,
        )
        return NeedsClarification(call.name, _QUESTION_BY_TOOL.get(call.name, ASK_GENERIC))

    question = None
    if isinstance(args, ScheduleMeetingArgs):
        question = _schedule_question(args)
    elif isinstance(args, NavigateSiteArgs):
        question = _navigation_question(args)
    if question:
        return NeedsClarification(call.name, question)
    return ToolIntent(call.name, args)
