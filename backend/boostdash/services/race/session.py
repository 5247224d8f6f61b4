import time
from dataclasses import dataclass
from typing import Optional, Tuple

from boostdash.models import Action, Player, RaceSnapshot, RacerSnapshot


@dataclass(frozen=True)
class RaceRules:
    """Tuning for a single race. Boost is always kept within [0, max_boost]."""
    accelerate_step: int = 2
    boost_cost: float = 20.0
    boost_step: int = 10
    drift_bonus: float = 15.0
    regen_step: float = 0.5
    max_boost: float = 100.0
    starting_boost: float = 100.0
    finish_progress: int = 1000

    def clamp_boost(self, value: float) -> float:
        return max(0.0, min(float(self.max_boost), float(value)))


DEFAULT_RULES = RaceRules()


class RacerState:
    __slots__ = ('id', 'username', 'progress', 'boost', 'is_drifting')

    def __init__(self, player: Player, boost: float):
        self.id = player.id
        self.username = player.username
        self.progress = 0
        self.boost = boost
        self.is_drifting = False

    def snapshot(self) -> RacerSnapshot:
        return RacerSnapshot(
            id=self.id,
            username=self.username,
            progress=self.progress,
            boost=self.boost,
            is_drifting=self.is_drifting,
        )


class RaceSession:
    """Authoritative state of one head-to-head race.

    The session starts running and finishes exactly once, when the acting
    player reaches ``rules.finish_progress``. Actions keep being accepted
    after the finish but the winner never changes.
    """

    def __init__(self, room_id: str, player1: Player, player2: Player,
                 rules: RaceRules = DEFAULT_RULES, clock=time.time):
        self.room_id = room_id
        self.rules = rules
        starting_boost = rules.clamp_boost(rules.starting_boost)
        self.player1 = RacerState(player1, starting_boost)
        self.player2 = RacerState(player2, starting_boost)
        self.start_time = clock()
        self.finished = False
        self.winner: Optional[str] = None

    @property
    def player_ids(self) -> Tuple[str, str]:
        return (self.player1.id, self.player2.id)

    def has_player(self, player_id: str) -> bool:
        return player_id in self.player_ids

    def _racer(self, player_id: str) -> Optional[RacerState]:
        if self.player1.id == player_id:
            return self.player1
        if self.player2.id == player_id:
            return self.player2
        return None

    def opponent_of(self, player_id: str) -> Optional[Player]:
        if self.player1.id == player_id:
            other = self.player2
        elif self.player2.id == player_id:
            other = self.player1
        else:
            return None
        return Player(id=other.id, username=other.username)

    def apply_action(self, player_id: str, action) -> bool:
        """Apply one client action and report whether it finished the race.

        Unknown players and unknown actions are ignored; late messages for a
        torn-down race are expected and must not raise.
        """
        racer = self._racer(player_id)
        action = Action.parse(action)
        if racer is None or action is None:
            return False

        rules = self.rules
        if action is Action.ACCELERATE:
            racer.progress += rules.accelerate_step
        elif action is Action.BOOST:
            if racer.boost >= rules.boost_cost:
                racer.boost = rules.clamp_boost(racer.boost - rules.boost_cost)
                racer.progress += rules.boost_step
        elif action is Action.DRIFT_START:
            racer.is_drifting = True
        elif action is Action.DRIFT_END:
            racer.is_drifting = False
            racer.boost = rules.clamp_boost(racer.boost + rules.drift_bonus)

        # No passive regen while drifting
        if not racer.is_drifting:
            racer.boost = rules.clamp_boost(racer.boost + rules.regen_step)

        if self.finished or racer.progress < rules.finish_progress:
            return False
        self.finished = True
        self.winner = racer.id
        return True

    def snapshot(self) -> RaceSnapshot:
        return RaceSnapshot(
            room_id=self.room_id,
            player1=self.player1.snapshot(),
            player2=self.player2.snapshot(),
            start_time=self.start_time,
            finished=self.finished,
            winner=self.winner,
        )
