import pytest

from boostdash.services.race import (
    InvalidChallenge,
    LobbyError,
    PlayerNotFound,
    PlayerUnavailable,
    RaceCoordinator,
)


@pytest.fixture()
def lobby():
    coordinator = RaceCoordinator()
    for sid, name in (('sid-a', 'A'), ('sid-b', 'B'), ('sid-c', 'C')):
        coordinator.connect(sid)
        coordinator.join_lobby(sid, name)
    return coordinator


def roster_ids(coordinator):
    return [p['id'] for p in coordinator.roster()]


def start_race(coordinator, challenger='sid-a', acceptor='sid-b'):
    coordinator.challenge(challenger, acceptor)
    return coordinator.accept_challenge(acceptor, challenger)


def test_challenge_returns_both_players(lobby):
    challenger, target = lobby.challenge('sid-a', 'sid-b')
    assert challenger.username == 'A'
    assert target.username == 'B'


def test_challenge_unknown_target_is_rejected(lobby):
    with pytest.raises(PlayerNotFound) as exc:
        lobby.challenge('sid-a', 'missing')
    assert str(exc.value) == 'Player not found'


def test_challenge_from_player_outside_lobby_is_rejected(lobby):
    with pytest.raises(PlayerNotFound):
        lobby.challenge('stranger', 'sid-b')


def test_self_challenge_is_rejected(lobby):
    with pytest.raises(InvalidChallenge):
        lobby.challenge('sid-a', 'sid-a')


def test_accept_creates_race_and_clears_roster(lobby):
    race = start_race(lobby)
    assert race.player_ids == ('sid-a', 'sid-b')
    assert roster_ids(lobby) == ['sid-c']
    assert lobby.sessions.get_race(race.room_id) is race


def test_accept_when_challenger_is_gone(lobby):
    lobby.challenge('sid-a', 'sid-b')
    lobby.disconnect('sid-a')
    with pytest.raises(PlayerUnavailable) as exc:
        lobby.accept_challenge('sid-b', 'sid-a')
    assert str(exc.value) == 'Player not available'
    assert len(lobby.sessions) == 0


def test_accept_without_challenge_is_rejected(lobby):
    with pytest.raises(InvalidChallenge):
        lobby.accept_challenge('sid-b', 'sid-a')
    # Only the challenged player can accept
    lobby.challenge('sid-a', 'sid-b')
    with pytest.raises(InvalidChallenge):
        lobby.accept_challenge('sid-c', 'sid-a')
    assert len(lobby.sessions) == 0
    assert roster_ids(lobby) == ['sid-a', 'sid-b', 'sid-c']


def test_accept_clears_other_challenges_of_both_racers(lobby):
    lobby.challenge('sid-c', 'sid-a')
    lobby.challenge('sid-b', 'sid-c')
    start_race(lobby)
    with pytest.raises(LobbyError):
        lobby.accept_challenge('sid-a', 'sid-c')
    assert lobby.decline_challenge('sid-c', 'sid-b') is None


def test_racer_rejoining_lobby_stays_off_roster(lobby):
    race = start_race(lobby)
    assert lobby.join_lobby('sid-a', 'Ace') is None
    assert 'sid-a' not in roster_ids(lobby)
    with pytest.raises(PlayerNotFound):
        lobby.challenge('sid-c', 'sid-a')
    assert len(lobby.sessions) == 1

    # The name sent mid-race is used once the race is over
    token = lobby.arm_cleanup(race.room_id)
    lobby.finish_cleanup(race.room_id, token)
    assert lobby.registry.lookup('sid-a').username == 'Ace'
    assert lobby.registry.lookup('sid-b').username == 'B'


def test_challenge_refuses_target_held_by_race(lobby):
    start_race(lobby)
    # Force a roster entry for a racer, bypassing join_lobby
    lobby.registry.join('sid-b', 'B')
    with pytest.raises(PlayerUnavailable):
        lobby.challenge('sid-c', 'sid-b')


def test_decline_requires_pending_challenge(lobby):
    assert lobby.decline_challenge('sid-b', 'sid-a') is None
    lobby.challenge('sid-a', 'sid-b')
    assert lobby.decline_challenge('sid-b', 'sid-a').id == 'sid-a'
    # Answered once; a second decline or accept finds nothing
    assert lobby.decline_challenge('sid-b', 'sid-a') is None
    with pytest.raises(InvalidChallenge):
        lobby.accept_challenge('sid-b', 'sid-a')
    assert lobby.decline_challenge('sid-b', 'missing') is None


def test_player_action_drops_unknown_action_and_room(lobby):
    race = start_race(lobby)
    assert lobby.player_action('sid-a', race.room_id, 'warp') is None
    assert lobby.player_action('sid-a', 'NOPE00', 'accelerate') is None
    assert lobby.player_action('sid-c', race.room_id, 'accelerate') is None
    outcome = lobby.player_action('sid-a', race.room_id, 'accelerate')
    assert outcome.snapshot.player1.progress == 2


def test_finish_cleanup_restores_connected_racers(lobby):
    race = start_race(lobby)
    for _ in range(500):
        outcome = lobby.player_action('sid-a', race.room_id, 'accelerate')
    assert outcome.finished_now is True
    assert outcome.snapshot.winner == 'sid-a'

    token = lobby.arm_cleanup(race.room_id)
    restored = lobby.finish_cleanup(race.room_id, token)
    assert [p.id for p in restored] == ['sid-a', 'sid-b']
    assert roster_ids(lobby) == ['sid-c', 'sid-a', 'sid-b']
    assert lobby.sessions.get_race(race.room_id) is None


def test_finish_cleanup_skips_disconnected_racers(lobby):
    race = start_race(lobby)
    token = lobby.arm_cleanup(race.room_id)
    lobby._connected.discard('sid-b')
    restored = lobby.finish_cleanup(race.room_id, token)
    assert [p.id for p in restored] == ['sid-a']


def test_disconnect_tears_down_race_and_restores_opponent(lobby):
    race = start_race(lobby)
    token = lobby.arm_cleanup(race.room_id)
    result = lobby.disconnect('sid-a')
    assert result.teardown.room_id == race.room_id
    assert result.teardown.remaining.id == 'sid-b'
    assert result.restored.username == 'B'
    assert result.roster_changed is True
    assert roster_ids(lobby) == ['sid-c', 'sid-b']
    # The pending cleanup for the torn-down race does nothing
    assert lobby.finish_cleanup(race.room_id, token) is None


def test_disconnect_from_lobby_only(lobby):
    result = lobby.disconnect('sid-c')
    assert result.roster_changed is True
    assert result.teardown is None
    assert lobby.disconnect('sid-c').roster_changed is False
