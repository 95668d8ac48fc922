"""LangGraph agent for the studio concierge.

Architecture:
  A two-node StateGraph, one pass per visitor message:

    1. **concierge**   — Claude with the tool declarations bound.  Produces
                         free text plus zero or more tool calls; the tools are
                         never executed here.
    2. **synthesize**  — turns that raw output into one finished
                         ``ChatResponse`` (sanitized text, widget, actions).

  Routing:
    concierge → synthesize → END

  Memory:
    Conversation state is kept per session with LangGraph's MemorySaver.
    Only the visitor-facing reply text is written back to the history, so
    leaked markup and unanswered tool-use blocks never reach the next
    model call.
"""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, SystemMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from concierge.config import (
    ANTHROPIC_API_KEY,
    MODEL_MAX_TOKENS,
    MODEL_NAME,
    MODEL_TEMPERATURE,
    MODEL_TIMEOUT_SECONDS,
)
from concierge.models import ChatContext, ModelOutput, ToolCall
from concierge.prompts import get_system_prompt
from concierge.services.metrics import metrics
from concierge.synthesizer import ResponseSynthesizer
from concierge.tools.declarations import tool_declarations

logger = logging.getLogger(__name__)

# Key in config["configurable"] holding a threading.Event the caller sets when
# it stopped waiting for the turn.
CANCEL_KEY = "turn_cancelled"


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict, total=False):
    """The state that flows through the graph.

    ``context`` is the per-request visitor context (``ChatContext`` dump),
    ``model_output`` the raw model turn (``None`` when the call failed) and
    ``response`` the finished ``ChatResponse`` dump read by the caller.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    context: dict[str, Any] | None
    model_output: dict[str, Any] | None
    response: dict[str, Any] | None


# ── Model output conversion ──────────────────────────────────────────


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def to_model_output(message: AIMessage) -> ModelOutput:
    """Convert a LangChain ``AIMessage`` into the raw :class:`ModelOutput`."""
    calls = [
        ToolCall(name=tc.get("name") or "", args=tc.get("args") or {})
        for tc in getattr(message, "tool_calls", None) or []
    ]
    return ModelOutput(text=_message_text(message.content), tool_calls=calls)


# ── LLM builder ─────────────────────────────────────────────────────


def _build_llm():
    """Build Claude with the concierge tool declarations bound."""
    llm = ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=MODEL_TEMPERATURE,
        max_tokens=MODEL_MAX_TOKENS,
        timeout=MODEL_TIMEOUT_SECONDS,
        max_retries=1,
    )
    return llm.bind_tools(tool_declarations())


def _load_context(state: AgentState) -> ChatContext | None:
    raw = state.get("context")
    return ChatContext.model_validate(raw) if raw else None


# ── Node: concierge ─────────────────────────────────────────────────


def _make_concierge_node():
    """Create the model node.  The bound LLM is built once per graph."""
    llm_with_tools = _build_llm()

    def concierge_node(state: AgentState) -> dict:
        system = SystemMessage(content=get_system_prompt(_load_context(state)))
        t0 = time.perf_counter()
        try:
            message = llm_with_tools.invoke([system] + state["messages"])
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_model_call(
                success=False, latency_ms=elapsed, error_type=type(exc).__name__,
            )
            logger.warning("Model call failed after %.0fms: %s", elapsed, exc)
            return {"model_output": None}

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_model_call(success=True, latency_ms=elapsed)
        output = to_model_output(message)
        logger.debug(
            "concierge responded in %.0fms with %d tool call(s)", elapsed, len(output.tool_calls),
        )
        return {"model_output": output.model_dump()}

    return concierge_node


# ── Node: synthesize ────────────────────────────────────────────────


def _make_synthesize_node(synthesizer: ResponseSynthesizer):
    def synthesize_node(state: AgentState, config: RunnableConfig) -> dict:
        raw = state.get("model_output")
        if raw is None:
            response = synthesizer.apology()
        else:
            response = synthesizer.synthesize(
                ModelOutput.model_validate(raw), _load_context(state),
            )
        update: dict[str, Any] = {"response": response.model_dump(mode="json", by_alias=True)}
        cancelled = (config.get("configurable") or {}).get(CANCEL_KEY)
        if cancelled is not None and cancelled.is_set():
            # The visitor already got the apology; history must match what they saw.
            logger.info("Turn finished after its caller gave up; keeping the apology in history")
            apology = synthesizer.apology()
            update["messages"] = [AIMessage(content=apology.text, id=apology.id)]
        elif response.text:
            update["messages"] = [AIMessage(content=response.text, id=response.id)]
        return update

    return synthesize_node


# ── Graph assembly ───────────────────────────────────────────────────


def create_concierge_agent(synthesizer: ResponseSynthesizer | None = None):
    """Build and compile the concierge LangGraph agent.

    Returns a compiled graph that can be invoked with:
        graph.invoke(
            {"messages": [HumanMessage(content="...")], "context": {...}},
            config={"configurable": {"thread_id": "session-123"}},
        )
    and whose result carries the finished response under ``"response"``.
    """
    graph = StateGraph(AgentState)

    graph.add_node("concierge", _make_concierge_node())
    graph.add_node("synthesize", _make_synthesize_node(synthesizer or ResponseSynthesizer()))

    graph.set_entry_point("concierge")
    graph.add_edge("concierge", "synthesize")
    graph.add_edge("synthesize", END)

    compiled = graph.compile(checkpointer=MemorySaver())
    logger.debug("Concierge agent compiled — model: %s", MODEL_NAME)
    return compiled
