import itertools
import random
import string
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from boostdash.models import Player, RaceSnapshot
from .session import DEFAULT_RULES, RaceRules, RaceSession


def generate_room_id(taken: Iterable[str], length: int = 6) -> str:
    """Generate a short room id not present in ``taken``."""
    taken = set(taken)
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


@dataclass(frozen=True)
class ActionOutcome:
    room_id: str
    snapshot: RaceSnapshot
    finished_now: bool


@dataclass(frozen=True)
class DisconnectOutcome:
    room_id: str
    remaining: Player


class SessionManager:
    """Owns every live RaceSession and the deferred cleanup tokens for them."""

    def __init__(self, rules: RaceRules = DEFAULT_RULES):
        self.rules = rules
        self._races: Dict[str, RaceSession] = {}
        self._cleanup_tokens: Dict[str, int] = {}
        self._token_counter = itertools.count(1)

    def create_race(self, player1: Player, player2: Player) -> RaceSession:
        room_id = generate_room_id(self._races)
        # Usernames are copied now; later lobby renames do not reach the race
        race = RaceSession(
            room_id,
            Player(id=player1.id, username=player1.username),
            Player(id=player2.id, username=player2.username),
            rules=self.rules,
        )
        self._races[room_id] = race
        return race

    def get_race(self, room_id) -> Optional[RaceSession]:
        if not isinstance(room_id, str):
            return None
        return self._races.get(room_id)

    def remove_race(self, room_id: str) -> Optional[RaceSession]:
        self._cleanup_tokens.pop(room_id, None)
        return self._races.pop(room_id, None)

    def find_race_for(self, connection_id: str) -> Optional[RaceSession]:
        for race in self._races.values():
            if race.has_player(connection_id):
                return race
        return None

    def route_action(self, room_id, player_id: str, action) -> Optional[ActionOutcome]:
        race = self.get_race(room_id)
        if race is None or not race.has_player(player_id):
            return None
        finished_now = race.apply_action(player_id, action)
        return ActionOutcome(
            room_id=race.room_id,
            snapshot=race.snapshot(),
            finished_now=finished_now,
        )

    def handle_disconnect(self, connection_id: str) -> Optional[DisconnectOutcome]:
        """Tear down the race holding ``connection_id``, if any.

        A connection is in at most one race; should that ever not hold, only
        the first match is torn down.
        """
        race = self.find_race_for(connection_id)
        if race is None:
            return None
        self.remove_race(race.room_id)
        return DisconnectOutcome(
            room_id=race.room_id,
            remaining=race.opponent_of(connection_id),
        )

    def arm_cleanup(self, room_id: str) -> Optional[int]:
        if room_id not in self._races:
            return None
        token = next(self._token_counter)
        self._cleanup_tokens[room_id] = token
        return token

    def claim_cleanup(self, room_id: str, token: int) -> Optional[RaceSession]:
        """Remove the race if ``token`` is still the armed one; otherwise no-op."""
        if self._cleanup_tokens.get(room_id) != token:
            return None
        return self.remove_race(room_id)

    def __len__(self) -> int:
        return len(self._races)
