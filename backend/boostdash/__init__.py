from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

EXTENSION_KEY = 'boostdash'

socketio = SocketIO(async_mode=None)


def get_coordinator(app=None):
    """Return the RaceCoordinator owned by ``app`` (default: the current app)."""
    return (app or current_app).extensions[EXTENSION_KEY]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS', '*')
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One coordinator per app; handlers reach it through the app context
    from boostdash.services.race import RaceCoordinator, RaceRules
    rules = RaceRules(
        finish_progress=int(flask_app.config.get('RACE_FINISH_PROGRESS', 1000)),
        starting_boost=float(flask_app.config.get('RACE_STARTING_BOOST', 100)),
    )
    flask_app.extensions[EXTENSION_KEY] = RaceCoordinator(rules=rules, logger=flask_app.logger)

    from boostdash.main import main
    flask_app.register_blueprint(main)

    from boostdash.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from boostdash.services.race.simulation import STRATEGIES, simulate_race

    @click.command('simulate-race')
    @click.option('--p1', 'p1_strategy', type=click.Choice(STRATEGIES), default='cruise', show_default=True)
    @click.option('--p2', 'p2_strategy', type=click.Choice(STRATEGIES), default='boost', show_default=True)
    def simulate_race_command(p1_strategy, p2_strategy):
        """Race two scripted drivers against each other and print the result."""
        result = simulate_race(p1_strategy, p2_strategy, rules=rules)
        snap = result.snapshot
        click.echo(
            f"winner={result.winner} actions={result.actions} "
            f"p1={snap.player1.progress} p2={snap.player2.progress}"
        )

    flask_app.cli.add_command(simulate_race_command)

    return flask_app
