"""Race domain services: lobby roster, race sessions and their lifecycle.

Everything here works on connection ids only. Socket handlers translate
the outcomes into emits, keeping transport concerns out of race mechanics.
"""

from .coordinator import DisconnectResult, RaceCoordinator
from .errors import InvalidChallenge, LobbyError, PlayerNotFound, PlayerUnavailable
from .manager import ActionOutcome, DisconnectOutcome, SessionManager
from .registry import PlayerRegistry
from .session import DEFAULT_RULES, RaceRules, RaceSession
