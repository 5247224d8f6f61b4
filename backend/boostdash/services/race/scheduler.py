from typing import Callable, List, Optional

from boostdash import socketio
from boostdash.models import Player


def schedule_race_cleanup(app, coordinator, room_id: str,
                          on_cleanup: Callable[[str, List[Player]], None]) -> Optional[int]:
    """Close a finished race after RACE_CLEANUP_DELAY_SEC.

    - Arms a fresh token for the room; any earlier pending cleanup is superseded
    - Runs as a Socket.IO background task so other events keep flowing
    - The worker re-takes the coordinator lock and is a no-op if the race was
      torn down in the meantime (e.g. a participant disconnected)
    - ``on_cleanup(room_id, restored_players)`` runs under the same lock
    """
    token = coordinator.arm_cleanup(room_id)
    if token is None:
        return None
    delay = float(app.config.get('RACE_CLEANUP_DELAY_SEC', 10))
    app.logger.info(f"[cleanup-set] room={room_id} token={token} delay={delay}s")

    def _worker(code: str, expected_token: int, wait: float):
        socketio.sleep(wait)
        with app.app_context():
            with coordinator.lock:
                restored = coordinator.finish_cleanup(code, expected_token)
                if restored is None:
                    app.logger.info(f"[cleanup-abort] room={code} already closed")
                    return
                on_cleanup(code, restored)

    socketio.start_background_task(_worker, room_id, token, delay)
    return token
