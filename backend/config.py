import os


def _origins(value):
    if not value or value.strip() == '*':
        return '*'
    return [o.strip() for o in value.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3001'))
    # Comma-separated list, or '*' for any origin
    CORS_ORIGINS = _origins(os.environ.get('CORS_ORIGINS', '*'))
    # How long a finished race stays open before racers return to the lobby (seconds)
    RACE_CLEANUP_DELAY_SEC = float(os.environ.get('RACE_CLEANUP_DELAY_SEC', '10'))
    RACE_FINISH_PROGRESS = int(os.environ.get('RACE_FINISH_PROGRESS', '1000'))
    RACE_STARTING_BOOST = float(os.environ.get('RACE_STARTING_BOOST', '100'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
