"""
Player and tournament registry.
"""

from cricauction.core.registry.players import (
    Player,
    PlayerRegistry,
    Tournament,
    TournamentFormat,
    TournamentSettings,
    TournamentStatus,
    PLAYER_ROLES,
    new_id,
    normalize_roles,
)

__all__ = [
    "Player",
    "PlayerRegistry",
    "Tournament",
    "TournamentFormat",
    "TournamentSettings",
    "TournamentStatus",
    "PLAYER_ROLES",
    "new_id",
    "normalize_roles",
]
