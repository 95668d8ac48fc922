"""Tests for fallback text selection."""

from __future__ import annotations

import random

from concierge.fallback import FALLBACK_POOLS, FallbackCategory, FallbackSelector, categorize
from concierge.models import (
    LearnMemoryAction,
    LearnMemoryPayload,
    NavigateAction,
    NavigatePayload,
    ResponseDraft,
    SaveNoteAction,
    SaveNotePayload,
    UIComponent,
)

_NOTE = SaveNoteAction(payload=SaveNotePayload(user_name="Ana", user_contact="x", message="Oi"))
_MEMORY = LearnMemoryAction(payload=LearnMemoryPayload(topic="estilo", content="clean"))
_NAV = NavigateAction(payload=NavigatePayload(path="/portfolio"))


class TestCategorize:
    def test_note_beats_everything(self):
        draft = ResponseDraft(actions=[_NAV, _MEMORY, _NOTE])
        assert categorize(draft) == (FallbackCategory.NOTE_SAVED, None)

    def test_memory_beats_navigation(self):
        draft = ResponseDraft(actions=[_NAV, _MEMORY])
        assert categorize(draft) == (FallbackCategory.MEMORY_LEARNED, None)

    def test_navigation_carries_path(self):
        draft = ResponseDraft(actions=[_NAV], ui_component=UIComponent(type="ServiceRedirect"))
        assert categorize(draft) == (FallbackCategory.NAVIGATION, "/portfolio")

    def test_service_redirect_widget(self):
        draft = ResponseDraft(ui_component=UIComponent(type="ServiceRedirect"))
        assert categorize(draft) == (FallbackCategory.SERVICE_REDIRECT, None)

    def test_nothing_happened(self):
        assert categorize(ResponseDraft()) == (FallbackCategory.NOT_UNDERSTOOD, None)

    def test_other_widget_is_not_understood(self):
        draft = ResponseDraft(ui_component=UIComponent(type="ProjectCarousel"))
        assert categorize(draft)[0] is FallbackCategory.NOT_UNDERSTOOD


class TestFallbackSelector:
    def test_every_pool_is_populated(self):
        for category in FallbackCategory:
            assert FALLBACK_POOLS[category]

    def test_message_comes_from_the_pool(self):
        selector = FallbackSelector()
        for _ in range(20):
            assert selector.select(ResponseDraft(actions=[_NOTE])) in FALLBACK_POOLS[
                FallbackCategory.NOTE_SAVED
            ]

    def test_navigation_message_ends_with_path(self):
        text = FallbackSelector().select(ResponseDraft(actions=[_NAV]))
        assert text.endswith(" /portfolio")
        assert text[: -len(" /portfolio")] in FALLBACK_POOLS[FallbackCategory.NAVIGATION]

    def test_seeded_rng_is_reproducible(self):
        draft = ResponseDraft()
        first = [FallbackSelector(random.Random(7)).select(draft) for _ in range(3)]
        second = [FallbackSelector(random.Random(7)).select(draft) for _ in range(3)]
        assert first == second
