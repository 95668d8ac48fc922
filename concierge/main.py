"""CLI entry point for the studio concierge.

A terminal chat for trying the concierge out during development.  Each
reply is printed with its widget, and its actions go to the logging sink.
For production, use the FastAPI server (concierge/server.py).

Usage:
    python -m concierge.main            # normal mode (quiet)
    python -m concierge.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import logging
import uuid

from dotenv import load_dotenv
from langchain_core.messages import HumanMessage

from concierge.agent import create_concierge_agent
from concierge.dispatcher import ActionDispatcher, LoggingActionSink
from concierge.models import ChatResponse
from concierge.synthesizer import ResponseSynthesizer

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    # Keep our own loggers at INFO so dispatched actions show up
    logging.getLogger("concierge").setLevel(logging.DEBUG if debug else logging.INFO)


def format_reply(response: ChatResponse) -> str:
    """Render a response for the terminal: text, then widget and actions."""
    lines = [f"Concierge: {response.text}"]
    if response.ui_component is not None:
        widget = response.ui_component
        lines.append(f"  [widget] {widget.type} {widget.data or ''}".rstrip())
    for action in response.actions:
        lines.append(f"  [action] {action.type}")
    return "\n".join(lines)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Studio concierge CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Fran Siller Arquitetura - Concierge CLI")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new session.")
    print("=" * 60 + "\n")

    synthesizer = ResponseSynthesizer()
    agent = create_concierge_agent(synthesizer)
    dispatcher = ActionDispatcher(LoggingActionSink())
    session_id = str(uuid.uuid4())
    logger.info("Started new session: %s", session_id)

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nTchau!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nTchau! Até breve.")
            break

        if user_input.lower() == "new":
            session_id = str(uuid.uuid4())
            print(f"\n>> New session started: {session_id[:8]}...\n")
            continue

        try:
            result = agent.invoke(
                {"messages": [HumanMessage(content=user_input)]},
                config={"configurable": {"thread_id": session_id}},
            )
            raw = result.get("response")
            response = ChatResponse.model_validate(raw) if raw else synthesizer.apology()
        except KeyboardInterrupt:
            print("\n\nTchau!")
            break
        except Exception:
            logger.exception("Error processing message")
            response = synthesizer.apology()

        print(f"\n{format_reply(response)}\n")
        dispatcher.dispatch(response)


if __name__ == "__main__":
    main()
