"""Turn validated tool calls into a widget and a list of actions.

Resolution runs in two explicit stages:

1. **Intent** (:func:`compute_intent`) — every call, in the order the model
   emitted it, goes through the boundary parser and then its handler from
   ``TOOL_HANDLERS``.  A handler may set the widget (the last widget-producing
   call wins), append actions, and fill in default text only when the text
   is still empty.  A call whose arguments need clarification replaces the
   text with the clarifying question and never produces a widget.
2. **Display authority** (:func:`apply_display_overrides`) — structured
   widgets whose copy must never be model-controlled get their canonical
   text from ``DISPLAY_OVERRIDES``, whatever the model or handler wrote.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from concierge.models import (
    ChatContext,
    LearnMemoryAction,
    LearnMemoryPayload,
    NavigateAction,
    NavigatePayload,
    RequestHumanAction,
    ResponseDraft,
    SaveNoteAction,
    SaveNotePayload,
    ToolCall,
    UIComponent,
)
from concierge.tools.calls import SILENT_TOOLS, NeedsClarification, ToolIntent, parse_tool_call
from concierge.tools.declarations import (
    AutoNoteInterestArgs,
    LearnClientPreferenceArgs,
    NavigateSiteArgs,
    SaveClientNoteArgs,
    ScheduleMeetingArgs,
    ShowCulturalProjectsArgs,
    ShowProjectsArgs,
)

logger = logging.getLogger(__name__)

# ── Widget types (the chat surface's renderers) ──────────────────────
PROJECT_CAROUSEL = "ProjectCarousel"
CULTURAL_CAROUSEL = "CulturalCarousel"
PRODUCT_CAROUSEL = "ProductCarousel"
CALENDAR_WIDGET = "CalendarWidget"
SOCIAL_LINKS = "SocialLinks"
OFFICE_MAP = "OfficeMap"
SERVICE_REDIRECT = "ServiceRedirect"

DISPLAY_OVERRIDES: dict[str, str] = {
    CALENDAR_WIDGET: (
        "Por favor, selecione a data e o horário de sua preferência no calendário abaixo."
    ),
    SOCIAL_LINKS: "Aqui estão nossos canais diretos de contato:",
}

OFFICE_INACTIVE_TEXT = (
    "No momento nosso escritório não está recebendo visitas presenciais. "
    "Posso agendar uma videochamada para você?"
)
HUMAN_UNAVAILABLE_TEXT = (
    "Nossa equipe não está online agora, mas posso anotar seu recado "
    "para retornarmos o quanto antes. Pode ser?"
)
ONLINE_LOCATION = "Online"
DEFAULT_OFFICE_LOCATION = "Escritório Fran Siller"
GUEST_NAME = "Visitante"
UNKNOWN_CONTACT = "Não informado"


@dataclass
class Resolution:
    """Outcome of resolving one turn's tool calls."""

    draft: ResponseDraft
    unknown_tools: list[str] = field(default_factory=list)
    clarifications: list[str] = field(default_factory=list)


Handler = Callable[[ToolIntent, ResponseDraft, ChatContext], None]


def _default_text(draft: ResponseDraft, text: str) -> None:
    if not draft.text:
        draft.text = text


# ── Handlers ─────────────────────────────────────────────────────────


def _show_projects(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    args: ShowProjectsArgs = intent.args
    draft.ui_component = UIComponent(type=PROJECT_CAROUSEL, data={"category": args.category})
    _default_text(draft, "Aqui estão alguns projetos selecionados:")


def _show_cultural_projects(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    args: ShowCulturalProjectsArgs = intent.args
    draft.ui_component = UIComponent(type=CULTURAL_CAROUSEL, data={"category": args.category})
    _default_text(draft, "Confira nossos projetos culturais:")


def _show_products(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    draft.ui_component = UIComponent(type=PRODUCT_CAROUSEL)
    _default_text(draft, "Veja nossos produtos disponíveis:")


def _office_location(ctx: ChatContext) -> str:
    if ctx.office is not None and ctx.office.address:
        return ctx.office.address
    return DEFAULT_OFFICE_LOCATION


def _schedule_meeting(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    args: ScheduleMeetingArgs = intent.args
    if args.type == "visit":
        modality = "in_person"
        location = args.address
    else:
        modality = args.modality
        location = ONLINE_LOCATION if modality == "online" else _office_location(ctx)
    draft.ui_component = UIComponent(
        type=CALENDAR_WIDGET,
        data={
            "type": args.type,
            "modality": modality,
            "address": args.address,
            "location": location,
        },
    )


def _save_client_note(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    args: SaveClientNoteArgs = intent.args
    draft.actions.append(
        SaveNoteAction(
            payload=SaveNotePayload(
                user_name=args.name or _user_name(ctx),
                user_contact=args.contact or _user_contact(ctx),
                message=args.message,
                source="chatbot",
            )
        )
    )


def _get_social_links(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    draft.ui_component = UIComponent(type=SOCIAL_LINKS)


def _show_office_map(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    if not ctx.office_active:
        draft.text = OFFICE_INACTIVE_TEXT
        return
    office = ctx.office.model_dump(by_alias=True) if ctx.office else {}
    draft.ui_component = UIComponent(type=OFFICE_MAP, data={"office": office})
    _default_text(draft, "Nossa localização:")


def _navigate_site(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    args: NavigateSiteArgs = intent.args
    path = args.path if args.path.startswith("/") else f"/{args.path}"
    draft.actions.append(NavigateAction(payload=NavigatePayload(path=path)))


def _request_human_agent(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    if not ctx.human_available:
        draft.text = HUMAN_UNAVAILABLE_TEXT
        return
    draft.actions.append(RequestHumanAction())
    _default_text(draft, "Transferindo você para um especialista...")


def _show_budget_options(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    draft.ui_component = UIComponent(type=SERVICE_REDIRECT)


def _learn_client_preference(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    args: LearnClientPreferenceArgs = intent.args
    draft.actions.append(
        LearnMemoryAction(
            payload=LearnMemoryPayload(
                topic=args.topic, content=args.content, type="system_detected",
            )
        )
    )


def _auto_note_interest(intent: ToolIntent, draft: ResponseDraft, ctx: ChatContext) -> None:
    args: AutoNoteInterestArgs = intent.args
    message = f"Interesse detectado: {args.interest}"
    if args.details:
        message += f". Detalhes: {args.details}"
    draft.actions.append(
        SaveNoteAction(
            payload=SaveNotePayload(
                user_name=_user_name(ctx),
                user_contact=_user_contact(ctx),
                message=message,
                source="chatbot_interest",
            )
        )
    )


def _user_name(ctx: ChatContext) -> str:
    return ctx.user.name if ctx.user else GUEST_NAME


def _user_contact(ctx: ChatContext) -> str:
    if ctx.user is None:
        return UNKNOWN_CONTACT
    return ctx.user.email or ctx.user.phone or UNKNOWN_CONTACT


TOOL_HANDLERS: dict[str, Handler] = {
    "showProjects": _show_projects,
    "showCulturalProjects": _show_cultural_projects,
    "showProducts": _show_products,
    "scheduleMeeting": _schedule_meeting,
    "saveClientNote": _save_client_note,
    "getSocialLinks": _get_social_links,
    "showOfficeMap": _show_office_map,
    "navigateSite": _navigate_site,
    "requestHumanAgent": _request_human_agent,
    "showBudgetOptions": _show_budget_options,
    "learnClientPreference": _learn_client_preference,
    "autoNoteInterest": _auto_note_interest,
}


# ── Pipeline ─────────────────────────────────────────────────────────


def compute_intent(
    draft: ResponseDraft,
    calls: Sequence[ToolCall],
    context: ChatContext | None = None,
) -> Resolution:
    """Stage 1: apply every call's handler to *draft*, in list order."""
    ctx = context or ChatContext()
    resolution = Resolution(draft=draft)

    for call in calls:
        parsed = parse_tool_call(call)
        if parsed is None:
            resolution.unknown_tools.append(call.name)
            continue

        if isinstance(parsed, NeedsClarification):
            if parsed.name in SILENT_TOOLS:
                logger.warning("Dropping %s call with unusable args", parsed.name)
                continue
            draft.text = parsed.question
            resolution.clarifications.append(parsed.name)
            continue

        try:
            TOOL_HANDLERS[parsed.name](parsed, draft, ctx)
        except Exception:
            # A broken handler must not take the whole turn down.
            logger.exception("Handler for %s failed; skipping call", parsed.name)

    return resolution


def apply_display_overrides(draft: ResponseDraft) -> ResponseDraft:
    """Stage 2: canonical copy for widgets whose text is never model-controlled."""
    if draft.ui_component is not None:
        canonical = DISPLAY_OVERRIDES.get(draft.ui_component.type)
        if canonical is not None:
            draft.text = canonical
    return draft


def resolve(
    draft: ResponseDraft,
    calls: Sequence[ToolCall],
    context: ChatContext | None = None,
) -> Resolution:
    """Run both stages and return the resolution."""
    resolution = compute_intent(draft, calls, context)
    apply_display_overrides(resolution.draft)
    return resolution
