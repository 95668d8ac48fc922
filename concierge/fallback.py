"""Human-friendly text for turns that ended up with no text at all.

The pool is picked deterministically from what the turn *did* (precedence
below); the message inside the pool is picked at random so the concierge
doesn't repeat itself word for word.
"""

from __future__ import annotations

import random
from enum import Enum

from concierge.models import NavigateAction, ResponseDraft


class FallbackCategory(str, Enum):
    NOTE_SAVED = "note_saved"
    MEMORY_LEARNED = "memory_learned"
    NAVIGATION = "navigation"
    SERVICE_REDIRECT = "service_redirect"
    NOT_UNDERSTOOD = "not_understood"


FALLBACK_POOLS: dict[FallbackCategory, tuple[str, ...]] = {
    FallbackCategory.NOTE_SAVED: (
        "Pronto! Sua mensagem foi enviada para a nossa equipe.",
        "Anotei tudo e já encaminhei para a equipe. Em breve entraremos em contato.",
        "Recado registrado! Nossa equipe vai retornar o quanto antes.",
    ),
    FallbackCategory.MEMORY_LEARNED: (
        "Entendi! Vou lembrar dessa informação.",
        "Anotado! Isso vai me ajudar a te atender melhor.",
        "Perfeito, guardei essa preferência para as próximas conversas.",
    ),
    FallbackCategory.NAVIGATION: (
        "Te levando para lá agora:",
        "Claro! Redirecionando você para",
        "Abrindo a página",
    ),
    FallbackCategory.SERVICE_REDIRECT: (
        "Veja nossas opções de serviço e valores:",
        "Para um orçamento preciso, confira nossos pacotes de serviço:",
        "Aqui estão os serviços que oferecemos:",
    ),
    FallbackCategory.NOT_UNDERSTOOD: (
        "Não entendi bem. Você quer ver nossos projetos, agendar uma conversa "
        "ou saber mais sobre nossos serviços?",
        "Como posso te ajudar hoje? Posso mostrar projetos, tirar dúvidas ou "
        "agendar uma conversa.",
        "Pode me contar um pouco mais sobre o que você procura?",
    ),
}

SERVICE_REDIRECT_WIDGET = "ServiceRedirect"


def categorize(draft: ResponseDraft) -> tuple[FallbackCategory, str | None]:
    """Return the fallback category for *draft* and, for navigation, the path.

    Precedence: note saved > memory learned > navigation > service redirect
    widget > not understood.
    """
    kinds = {action.type for action in draft.actions}
    if "saveNote" in kinds:
        return FallbackCategory.NOTE_SAVED, None
    if "learnMemory" in kinds:
        return FallbackCategory.MEMORY_LEARNED, None
    for action in draft.actions:
        if isinstance(action, NavigateAction):
            return FallbackCategory.NAVIGATION, action.payload.path
    if draft.ui_component is not None and draft.ui_component.type == SERVICE_REDIRECT_WIDGET:
        return FallbackCategory.SERVICE_REDIRECT, None
    return FallbackCategory.NOT_UNDERSTOOD, None


class FallbackSelector:
    """Pick a fallback message; ``rng`` is injectable for tests."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def select(self, draft: ResponseDraft) -> str:
        category, path = categorize(draft)
        message = self._rng.choice(FALLBACK_POOLS[category])
        if category is FallbackCategory.NAVIGATION:
            return f"{message} {path}"
        return message
