"""Game errors.

Every error a client can trigger derives from ``GameError`` and carries a
human-readable message that is safe to show to whoever caused it. The socket
layer turns these into a single ``errorMsg`` advisory; no codes reach clients.
"""


class GameError(Exception):
    message = 'Something went wrong.'

    def __init__(self, message=None):
        super().__init__(message or self.message)

    @property
    def text(self) -> str:
        return str(self)


class RoomNotFound(GameError):
    message = 'Game not found.'


class InvalidLevelPack(GameError):
    message = 'Invalid level pack selected.'


class InvalidRoomName(GameError):
    message = 'A room name is required.'


class InvalidPlayerName(GameError):
    message = 'A player name is required.'


class GameAlreadyStarted(GameError):
    message = 'Sorry, the game has already started.'


class SessionNotFound(GameError):
    message = 'Your previous session could not be found.'


class NoLevelsConfigured(GameError):
    message = 'This level pack has no levels.'


class EmptySubmission(GameError):
    message = 'Your prompt was empty.'


class Unauthorized(GameError):
    """Non-GM connection invoking a GM-only transition. Never reported."""

    message = 'Not allowed.'


class JudgingUnavailable(GameError):
    """The judge failed or answered with something unusable. Always absorbed."""

    message = 'The judge is unavailable.'


class LevelCatalogError(Exception):
    """The level-pack catalog is missing or malformed. Fatal at startup."""
