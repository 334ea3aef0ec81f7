"""
Callisto - a meeting assistant that listens in and acts through tools

Callisto takes live transcript text and typed queries, lets a language
model call tools exposed by connected MCP servers (calendar, email, web
search, chat), and holds every outgoing email or chat message for an
explicit human yes/no before it is sent.

Quick Start:
    from callisto import Callisto, Settings

    app = Callisto(Settings.from_env())
    print(await app.chat("What's on my calendar this week?"))
    print(await app.chat("Email Ana the notes from today"))   # staged preview
    print(await app.chat("y"))                                 # sends it
    await app.shutdown()
"""

from .app import Callisto
from .config import ConfigurationError, Settings
from .orchestrator import ApprovalGate, MeetingOrchestrator, TranscriptChunk
from .query import QueryService

__version__ = "0.1.0"

__all__ = [
    "Callisto",
    "ConfigurationError",
    "Settings",
    "ApprovalGate",
    "MeetingOrchestrator",
    "TranscriptChunk",
    "QueryService",
]
