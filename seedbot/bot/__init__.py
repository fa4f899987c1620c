"""Race room bot.

Joins open races of one racetime.gg category and answers chat commands.

Key components:
- BotOrchestrator: Startup sequencing and shutdown
- CredentialManager: OAuth token with expiry-driven refresh
- DiscoveryLoop: Finds races to join and opens a session for each
- SessionRegistry: Which races currently have a live session
- RoomSession: One race room connection and its command state
"""

from seedbot.bot.credentials import Credential, CredentialManager
from seedbot.bot.discovery import DiscoveryLoop
from seedbot.bot.orchestrator import BotOrchestrator
from seedbot.bot.registry import SessionRegistry
from seedbot.bot.session import RoomSession, RoomState

__all__ = [
    "BotOrchestrator",
    "Credential",
    "CredentialManager",
    "DiscoveryLoop",
    "RoomSession",
    "RoomState",
    "SessionRegistry",
]
