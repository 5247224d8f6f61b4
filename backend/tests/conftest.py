import os
import sys
import pytest

# Ensure the backend root (containing the `boostdash` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from boostdash import create_app, get_coordinator, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    PORT = 3001
    # Short hold so finished races are cleaned up within a test
    RACE_CLEANUP_DELAY_SEC = 0.05
    RACE_FINISH_PROGRESS = 1000
    RACE_STARTING_BOOST = 100
    LOG_LEVEL = 'DEBUG'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def coordinator(flask_app):
    return get_coordinator(flask_app)


@pytest.fixture()
def connect_player(flask_app):
    """Connect a Socket.IO test client; returns (client, connection id)."""
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        received = test_client.get_received()
        sid = next(pkt['args'][0]['id'] for pkt in received if pkt['name'] == 'connected')
        return test_client, sid

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
