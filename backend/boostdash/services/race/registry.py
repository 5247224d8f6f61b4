from typing import Dict, List, Optional

from boostdash.models import Player


def fallback_username(connection_id: str) -> str:
    return f"Player{connection_id[-4:]}"


class PlayerRegistry:
    """Lobby roster keyed by connection id.

    Players currently racing are not listed here; the race session keeps
    their identity until they are restored to the lobby.
    """

    def __init__(self) -> None:
        self._players: Dict[str, Player] = {}

    def join(self, connection_id: str, requested_username=None) -> Player:
        # Re-joining overwrites the entry but keeps its roster position
        username = requested_username.strip() if isinstance(requested_username, str) else ''
        player = Player(id=connection_id, username=username or fallback_username(connection_id))
        self._players[connection_id] = player
        return player

    def remove(self, connection_id: str) -> bool:
        return self._players.pop(connection_id, None) is not None

    def lookup(self, connection_id) -> Optional[Player]:
        if not isinstance(connection_id, str):
            return None
        return self._players.get(connection_id)

    def list_all(self) -> List[dict]:
        return [p.to_dict() for p in self._players.values()]

    def __contains__(self, connection_id) -> bool:
        return connection_id in self._players

    def __len__(self) -> int:
        return len(self._players)
