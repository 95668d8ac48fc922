"""Chat-turn data model shared by the synthesizer, the API and the dispatcher.

Everything here serializes with camelCase keys because the website's chat
widget consumes these objects as-is (``uiComponent``, ``userName``...).
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenWireModel(_WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ── Raw model output (untrusted) ─────────────────────────────────────


class ToolCall(_WireModel):
    """One structured call emitted by the language model."""

    name: str = ""
    args: dict[str, Any] = Field(default_factory=dict)


class ModelOutput(_WireModel):
    """What the model-invocation boundary hands back for one turn."""

    text: str = ""
    tool_calls: list[ToolCall] = Field(
        default_factory=list,
        validation_alias=AliasChoices("toolCalls", "functionCalls", "tool_calls"),
    )


# ── Actions ──────────────────────────────────────────────────────────


class SaveNotePayload(_FrozenWireModel):
    user_name: str
    user_contact: str
    message: str
    source: str = "chatbot"


class NavigatePayload(_FrozenWireModel):
    path: str


class LearnMemoryPayload(_FrozenWireModel):
    topic: str
    content: str
    type: Literal["user_defined", "system_detected"] = "system_detected"


class SaveNoteAction(_FrozenWireModel):
    type: Literal["saveNote"] = "saveNote"
    payload: SaveNotePayload


class NavigateAction(_FrozenWireModel):
    type: Literal["navigate"] = "navigate"
    payload: NavigatePayload


class LearnMemoryAction(_FrozenWireModel):
    type: Literal["learnMemory"] = "learnMemory"
    payload: LearnMemoryPayload


class RequestHumanAction(_FrozenWireModel):
    type: Literal["requestHuman"] = "requestHuman"
    payload: dict[str, Any] = Field(default_factory=dict)


Action = Annotated[
    Union[SaveNoteAction, NavigateAction, LearnMemoryAction, RequestHumanAction],
    Field(discriminator="type"),
]


# ── Chat response ────────────────────────────────────────────────────


class UIComponent(_FrozenWireModel):
    """A widget the chat surface renders under the reply text."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class ResponseDraft(_WireModel):
    """Mutable response under construction during resolution.

    Frozen into a :class:`ChatResponse` once the fallback step is done.
    """

    text: str = ""
    ui_component: UIComponent | None = None
    actions: list[Action] = Field(default_factory=list)

    def freeze(self) -> ChatResponse:
        # Deep copies so nothing holding the draft can reach into the response.
        return ChatResponse(
            text=self.text,
            ui_component=self.ui_component.model_copy(deep=True) if self.ui_component else None,
            actions=tuple(action.model_copy(deep=True) for action in self.actions),
        )


class ChatResponse(_FrozenWireModel):
    """The unit the rest of the system consumes; immutable once produced."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["model"] = "model"
    text: str = ""
    ui_component: UIComponent | None = None
    actions: tuple[Action, ...] = ()


# ── Request context ──────────────────────────────────────────────────


class ChatUser(_WireModel):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    role: str = "client"


class ClientMemory(_WireModel):
    topic: str
    content: str
    type: Literal["user_defined", "system_detected"] = "user_defined"


class OfficeDetails(_WireModel):
    is_active: bool = True
    address: str | None = None
    city: str | None = None
    map_url: str | None = None


class ChatContext(_WireModel):
    """Per-request context sent by the website alongside the messages."""

    user: ChatUser | None = None
    memories: list[ClientMemory] = Field(default_factory=list)
    office: OfficeDetails | None = None
    projects_count: int = 0
    cultural_projects_count: int = 0
    human_available: bool = False

    @property
    def office_active(self) -> bool:
        return self.office is None or self.office.is_active
