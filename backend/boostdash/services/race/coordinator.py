import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from boostdash.models import Action, Player
from .errors import InvalidChallenge, PlayerNotFound, PlayerUnavailable
from .manager import ActionOutcome, DisconnectOutcome, SessionManager
from .registry import PlayerRegistry
from .session import DEFAULT_RULES, RaceRules, RaceSession


@dataclass(frozen=True)
class DisconnectResult:
    roster_changed: bool
    teardown: Optional[DisconnectOutcome] = None
    restored: Optional[Player] = None


class RaceCoordinator:
    """Lobby and race bookkeeping for one server process.

    Holds the roster, the race table and the set of live connections.
    Callers hold ``lock`` for the whole of an inbound event, including the
    emits that follow it, so each event is applied as a single step.
    """

    def __init__(self, rules: RaceRules = DEFAULT_RULES, logger=None):
        self.registry = PlayerRegistry()
        self.sessions = SessionManager(rules)
        self.lock = threading.RLock()
        self.logger = logger or logging.getLogger(__name__)
        self._connected: Set[str] = set()
        # (challenger id, target id) for challenges not yet answered
        self._challenges: Set[Tuple[str, str]] = set()
        # Names requested with join-lobby while racing, applied on return to the lobby
        self._pending_names: Dict[str, str] = {}

    def connect(self, sid: str) -> None:
        self._connected.add(sid)

    def is_connected(self, sid: str) -> bool:
        return sid in self._connected

    def roster(self) -> List[dict]:
        return self.registry.list_all()

    def join_lobby(self, sid: str, username=None) -> Optional[Player]:
        """Add ``sid`` to the roster.

        A player inside a race stays off the roster; the requested name is
        kept and applied when the race ends. Returns None in that case.
        """
        self._connected.add(sid)
        if self.sessions.find_race_for(sid) is not None:
            self._pending_names[sid] = username if isinstance(username, str) else ''
            self.logger.debug(f"[join-deferred] sid={sid} still racing")
            return None
        player = self.registry.join(sid, username)
        self.logger.info(f"[join] sid={sid} username={player.username}")
        return player

    def challenge(self, sid: str, target_id) -> Tuple[Player, Player]:
        challenger = self.registry.lookup(sid)
        target = self.registry.lookup(target_id)
        if not challenger or not target:
            raise PlayerNotFound('Player not found')
        if challenger.id == target.id:
            raise InvalidChallenge('You cannot challenge yourself')
        if self.sessions.find_race_for(target.id) is not None:
            raise PlayerUnavailable('Player not available')
        self._challenges.add((challenger.id, target.id))
        self.logger.info(f"[challenge] from={challenger.username} to={target.username}")
        return challenger, target

    def accept_challenge(self, sid: str, challenger_id) -> RaceSession:
        acceptor = self.registry.lookup(sid)
        challenger = self.registry.lookup(challenger_id)
        if not acceptor or not challenger or acceptor.id == challenger.id:
            raise PlayerUnavailable('Player not available')
        if (challenger.id, acceptor.id) not in self._challenges:
            raise InvalidChallenge('No challenge from that player')
        if self.sessions.find_race_for(acceptor.id) or self.sessions.find_race_for(challenger.id):
            raise PlayerUnavailable('Player not available')

        race = self.sessions.create_race(challenger, acceptor)
        self.registry.remove(challenger.id)
        self.registry.remove(acceptor.id)
        self._drop_challenges(challenger.id, acceptor.id)
        self.logger.info(
            f"[race-start] room={race.room_id} p1={challenger.username} p2={acceptor.username}"
        )
        return race

    def decline_challenge(self, sid: str, challenger_id) -> Optional[Player]:
        """Forget a pending challenge; returns the challenger to notify, if any."""
        key = (challenger_id, sid)
        if key not in self._challenges:
            self.logger.debug(f"[decline-drop] sid={sid} challenger={challenger_id}")
            return None
        self._challenges.discard(key)
        return self.registry.lookup(challenger_id)

    def player_action(self, sid: str, room_id, action) -> Optional[ActionOutcome]:
        parsed = Action.parse(action)
        if parsed is None:
            self.logger.debug(f"[action-drop] sid={sid} room={room_id} unknown action={action!r}")
            return None
        outcome = self.sessions.route_action(room_id, sid, parsed)
        if outcome is None:
            self.logger.debug(f"[action-drop] sid={sid} room={room_id} no such race")
            return None
        if outcome.finished_now:
            self.logger.info(f"[race-finish] room={outcome.room_id} winner={outcome.snapshot.winner}")
        return outcome

    def arm_cleanup(self, room_id: str) -> Optional[int]:
        return self.sessions.arm_cleanup(room_id)

    def finish_cleanup(self, room_id: str, token: int) -> Optional[List[Player]]:
        """Close a finished race and put its still-connected racers back in the lobby.

        Returns None when the race was already torn down or re-armed.
        """
        race = self.sessions.claim_cleanup(room_id, token)
        if race is None:
            self.logger.debug(f"[cleanup-skip] room={room_id} token={token}")
            return None
        restored = []
        for racer in (race.player1, race.player2):
            player = self._restore_to_lobby(racer)
            if player is not None:
                restored.append(player)
        self.logger.info(f"[cleanup] room={room_id} restored={[p.id for p in restored]}")
        return restored

    def disconnect(self, sid: str) -> DisconnectResult:
        self._connected.discard(sid)
        self._pending_names.pop(sid, None)
        self._drop_challenges(sid)
        was_listed = self.registry.remove(sid)
        teardown = self.sessions.handle_disconnect(sid)
        restored = None
        if teardown is not None:
            restored = self._restore_to_lobby(teardown.remaining)
            self.logger.info(
                f"[race-abort] room={teardown.room_id} left={sid} remaining={teardown.remaining.id}"
            )
        return DisconnectResult(
            roster_changed=was_listed or restored is not None,
            teardown=teardown,
            restored=restored,
        )

    def _drop_challenges(self, *player_ids: str) -> None:
        self._challenges = {
            pair for pair in self._challenges
            if pair[0] not in player_ids and pair[1] not in player_ids
        }

    def _restore_to_lobby(self, racer) -> Optional[Player]:
        # A name sent with join-lobby during the race wins over the race copy
        requested = self._pending_names.pop(racer.id, None)
        if not self.is_connected(racer.id):
            return None
        if requested is not None:
            return self.registry.join(racer.id, requested)
        return self.registry.join(racer.id, racer.username)
