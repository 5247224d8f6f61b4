from flask import current_app, request
from flask_socketio import emit, join_room
from typing import List

from boostdash import get_coordinator, socketio
from boostdash.models import Player
from boostdash.services.race import LobbyError
from boostdash.services.race.scheduler import schedule_race_cleanup

NAMESPACE = '/'


def _get_sid() -> str:
    return request.sid  # type: ignore


def _broadcast_roster(coordinator) -> None:
    socketio.emit('online-players', coordinator.roster(), namespace=NAMESPACE)


def _on_race_cleanup(room_id: str, restored: List[Player]) -> None:
    coordinator = get_coordinator()
    socketio.close_room(room_id, namespace=NAMESPACE)
    if restored:
        _broadcast_roster(coordinator)


def handle_connect(auth=None):
    coordinator = get_coordinator()
    with coordinator.lock:
        coordinator.connect(_get_sid())
    emit('connected', {'id': _get_sid()})


def handle_disconnect(reason=None):
    coordinator = get_coordinator()
    sid = _get_sid()
    with coordinator.lock:
        result = coordinator.disconnect(sid)
        teardown = result.teardown
        if teardown is not None:
            socketio.emit(
                'opponent-disconnected',
                {'roomId': teardown.room_id, 'playerId': sid},
                to=teardown.remaining.id,
                namespace=NAMESPACE,
            )
            socketio.close_room(teardown.room_id, namespace=NAMESPACE)
        if result.roster_changed:
            _broadcast_roster(coordinator)


def handle_join_lobby(username=None):
    if isinstance(username, dict):
        username = username.get('username')
    coordinator = get_coordinator()
    with coordinator.lock:
        if coordinator.join_lobby(_get_sid(), username) is not None:
            _broadcast_roster(coordinator)


def handle_challenge_player(target_player_id=None):
    coordinator = get_coordinator()
    with coordinator.lock:
        try:
            challenger, target = coordinator.challenge(_get_sid(), target_player_id)
        except LobbyError as exc:
            emit('error', str(exc))
            return
        emit('challenge-received', {
            'challengerId': challenger.id,
            'challengerName': challenger.username,
        }, to=target.id)
        emit('challenge-sent', target.username)


def handle_accept_challenge(challenger_id=None):
    coordinator = get_coordinator()
    with coordinator.lock:
        try:
            race = coordinator.accept_challenge(_get_sid(), challenger_id)
        except LobbyError as exc:
            emit('error', str(exc))
            return
        for player_id in race.player_ids:
            join_room(race.room_id, sid=player_id)
        snapshot = race.snapshot().to_dict()
        socketio.emit('race-start', {
            'roomId': snapshot['roomId'],
            'player1': snapshot['player1'],
            'player2': snapshot['player2'],
        }, to=race.room_id, namespace=NAMESPACE)
        _broadcast_roster(coordinator)


def handle_decline_challenge(challenger_id=None):
    coordinator = get_coordinator()
    sid = _get_sid()
    with coordinator.lock:
        challenger = coordinator.decline_challenge(sid, challenger_id)
        if challenger is None:
            return
        decliner = coordinator.registry.lookup(sid)
        emit('challenge-declined', {
            'playerId': sid,
            'username': decliner.username if decliner else None,
        }, to=challenger.id)


def handle_player_action(data=None):
    if not isinstance(data, dict):
        return
    coordinator = get_coordinator()
    with coordinator.lock:
        outcome = coordinator.player_action(_get_sid(), data.get('roomId'), data.get('action'))
        if outcome is None:
            return
        snapshot = outcome.snapshot
        # One snapshot, one emit: both racers see the same state
        socketio.emit('game-update', snapshot.to_dict(), to=outcome.room_id, namespace=NAMESPACE)
        if not outcome.finished_now:
            return
        winner = snapshot.racer(snapshot.winner)
        socketio.emit('race-end', {
            'roomId': outcome.room_id,
            'winner': snapshot.winner,
            'winnerName': winner.username if winner else 'Unknown',
        }, to=outcome.room_id, namespace=NAMESPACE)
        schedule_race_cleanup(
            current_app._get_current_object(), coordinator, outcome.room_id, _on_race_cleanup
        )


def register_socketio_handlers() -> None:
    """Register the lobby and race Socket.IO handlers."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('join-lobby', handle_join_lobby, namespace=NAMESPACE)
    socketio.on_event('challenge-player', handle_challenge_player, namespace=NAMESPACE)
    socketio.on_event('accept-challenge', handle_accept_challenge, namespace=NAMESPACE)
    socketio.on_event('decline-challenge', handle_decline_challenge, namespace=NAMESPACE)
    socketio.on_event('player-action', handle_player_action, namespace=NAMESPACE)
