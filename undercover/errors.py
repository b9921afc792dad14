"""Typed failures raised by lobby operations.

Every failure leaves the stored lobby untouched. ``code`` is a stable
machine-readable tag the HTTP layer returns alongside the message.
"""


class LobbyError(Exception):
    """Base class for all lobby operation failures."""

    code = "lobby_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class NotFound(LobbyError):
    """Lobby or player not found."""

    code = "not_found"


class LobbyNotFound(NotFound):
    """Lobby not found."""

    code = "lobby_not_found"


class PlayerNotFound(NotFound):
    """Player not found in lobby."""

    code = "player_not_found"


class GuessNotApplicable(NotFound):
    """No pending guess for this player."""

    code = "guess_not_applicable"


class Forbidden(LobbyError):
    """Only the host can do that."""

    code = "forbidden"


class InvalidPhase(LobbyError):
    """Operation not allowed in the current lobby status."""

    code = "invalid_phase"


class LobbyNotJoinable(InvalidPhase):
    """Lobby already started."""

    code = "lobby_not_joinable"


class ValidationFailed(LobbyError):
    """Invalid input."""

    code = "validation_failed"


class PlayerCountMismatch(LobbyError):
    """Player count must equal total roles."""

    code = "player_count_mismatch"

    def __init__(self, players: int, total_roles: int):
        super().__init__(f"Player count ({players}) must equal total roles ({total_roles}).")
        self.players = players
        self.total_roles = total_roles


class CatalogExhausted(LobbyError):
    """This lobby has used all available word pairs."""

    code = "catalog_exhausted"


class StorageError(LobbyError):
    """Lobby storage failed; the caller may retry."""

    code = "storage_error"


class ConcurrencyConflict(StorageError):
    """Lobby was modified concurrently too many times."""

    code = "concurrency_conflict"
