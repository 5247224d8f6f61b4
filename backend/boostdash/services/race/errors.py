class LobbyError(Exception):
    """A lobby request that is rejected back to the client that sent it."""


class PlayerNotFound(LobbyError):
    pass


class PlayerUnavailable(LobbyError):
    pass


class InvalidChallenge(LobbyError):
    pass
