"""Lobby codes, player ids and host reclaim secrets."""

import secrets
import uuid

from undercover.rules import CODE_ALPHABET, CODE_LENGTH, HOST_SECRET_MAX, HOST_SECRET_MIN


def new_lobby_code() -> str:
    """Random 5-character code. Callers check for collisions against the store."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def new_player_id() -> str:
    return uuid.uuid4().hex


def new_host_secret() -> str:
    """
    4-digit host reclaim code, e.g. "4832".

    Low entropy on purpose: it is read aloud to let someone take over as host,
    not an auth token.
    """
    return str(HOST_SECRET_MIN + secrets.randbelow(HOST_SECRET_MAX - HOST_SECRET_MIN + 1))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()
