"""Studio Concierge — chat concierge for an architecture studio website.

Architecture Overview
=====================

Each visitor message takes one pass through a **LangGraph** state machine:

1. **concierge** — Claude with a fixed set of tool declarations bound
   (show projects, schedule a meeting, leave a note...).  The model answers
   with free text and structured tool calls; no tool is executed here.

2. **synthesize** — the response synthesizer turns that untrusted output
   into one finished ``ChatResponse``:

       sanitize text → resolve tool calls → fallback text → freeze

   Leaked tool syntax is stripped, each tool call becomes a widget and/or
   an action, and a reply is never empty.

The website then renders the widget and the ``ActionDispatcher`` runs the
actions once each (saving notes, navigating, handing off to a human).

Booking goes through the scheduling package: free hour slots are computed
from the studio settings and live appointments, and appointment status
changes follow a small role-aware state machine.  The database enforces
one live booking per slot.

Package Structure
-----------------
- ``concierge/agent.py`` — LangGraph StateGraph definition
- ``concierge/config.py`` — Centralized configuration from environment variables
- ``concierge/prompts.py`` — System prompt with per-visitor context
- ``concierge/sanitizer.py`` — Leaked tool-syntax removal
- ``concierge/resolver.py`` — Tool calls → widget, actions, default text
- ``concierge/fallback.py`` — Replies for turns with no text
- ``concierge/synthesizer.py`` — The full output → response pipeline
- ``concierge/dispatcher.py`` — Executes response actions
- ``concierge/scheduling/`` — Availability, lifecycle rules, stores
- ``concierge/services/`` — Supabase client and CloudWatch metrics
- ``concierge/tools/`` — Tool declarations and argument validation
- ``concierge/server.py`` / ``concierge/api/`` — FastAPI application
- ``concierge/main.py`` — CLI chat interface
"""
