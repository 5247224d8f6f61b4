from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Action(str, Enum):
    ACCELERATE = 'accelerate'
    BOOST = 'boost'
    DRIFT_START = 'drift-start'
    DRIFT_END = 'drift-end'

    @classmethod
    def parse(cls, value) -> Optional['Action']:
        """Return the matching action, or None for anything unrecognised."""
        try:
            return cls(value)
        except (ValueError, TypeError):
            return None


@dataclass
class Player:
    id: str
    username: str

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


@dataclass(frozen=True)
class RacerSnapshot:
    id: str
    username: str
    progress: float
    boost: float
    is_drifting: bool

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'progress': self.progress,
            'boost': self.boost,
            'isDrifting': self.is_drifting,
        }


@dataclass(frozen=True)
class RaceSnapshot:
    room_id: str
    player1: RacerSnapshot
    player2: RacerSnapshot
    start_time: float
    finished: bool
    winner: Optional[str]

    def racer(self, player_id: str) -> Optional[RacerSnapshot]:
        for racer in (self.player1, self.player2):
            if racer.id == player_id:
                return racer
        return None

    def to_dict(self):
        return {
            'roomId': self.room_id,
            'player1': self.player1.to_dict(),
            'player2': self.player2.to_dict(),
            'startTime': self.start_time,
            'finished': self.finished,
            'winner': self.winner,
        }
