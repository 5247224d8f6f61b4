"""Headless races between scripted drivers, used to sanity-check RaceRules."""

from dataclasses import dataclass
from typing import Optional

from boostdash.models import Action, Player, RaceSnapshot, RacerSnapshot
from .session import DEFAULT_RULES, RaceRules, RaceSession

STRATEGIES = ('cruise', 'boost', 'drift')


@dataclass(frozen=True)
class SimulationResult:
    winner: Optional[str]
    actions: int
    snapshot: RaceSnapshot


def choose_action(strategy: str, racer: RacerSnapshot, rules: RaceRules) -> Action:
    if strategy == 'cruise':
        return Action.ACCELERATE
    if strategy == 'boost':
        return Action.BOOST if racer.boost >= rules.boost_cost else Action.ACCELERATE
    if strategy == 'drift':
        # Spend boost when affordable, otherwise bank it with a drift
        if racer.is_drifting:
            return Action.DRIFT_END
        if racer.boost >= rules.boost_cost:
            return Action.BOOST
        return Action.DRIFT_START
    raise ValueError(f"Unknown strategy: {strategy}")


def simulate_race(p1_strategy: str, p2_strategy: str,
                  rules: RaceRules = DEFAULT_RULES, max_actions: int = 10000) -> SimulationResult:
    """Alternate p1/p2 actions until someone wins or ``max_actions`` is hit."""
    race = RaceSession('SIM', Player('p1', p1_strategy), Player('p2', p2_strategy), rules=rules)
    strategies = {'p1': p1_strategy, 'p2': p2_strategy}
    actions = 0
    while not race.finished and actions < max_actions:
        for player_id in ('p1', 'p2'):
            racer = race.snapshot().racer(player_id)
            race.apply_action(player_id, choose_action(strategies[player_id], racer, rules))
            actions += 1
            if race.finished or actions >= max_actions:
                break
    return SimulationResult(winner=race.winner, actions=actions, snapshot=race.snapshot())
