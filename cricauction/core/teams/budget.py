"""
Team Budget Ledger - Token accounting for auction teams.

Conceptual Background:
---------------------
Every team starts with `tokens`. A purchase moves a player onto the roster
and debits `total_spent`, so at all times:

    total_spent == sum(roster amounts)
    available_budget == tokens - total_spent >= 0

Bid-time checks are advisory: they read the current available budget.
The sale re-validates at commit time and fails with BudgetExceeded if the
earlier check no longer holds. A committed purchase is only undone by an
explicit administrative correction (`revert`).
"""

import copy
import threading
from typing import Dict, Iterable, List, Optional

from cricauction.core.errors import (
    BudgetExceeded,
    InsufficientBudget,
    NotFound,
    RosterFull,
    ValidationError,
)
from cricauction.core.teams.team import RosterEntry, Team
from cricauction.utils.logger import get_logger

logger = get_logger("budget")


class TeamBudgetLedger:
    """
    Budget and roster bookkeeping for all registered teams.

    Teams can be shared by several auctions of one tournament, so the
    ledger guards its own state with a lock independent of the auctions'.
    """

    def __init__(self, teams: Optional[Iterable[Team]] = None):
        self._teams: Dict[str, Team] = {}
        self._lock = threading.RLock()
        for team in teams or []:
            self.add_team(team)

    # =========================================================================
    # Registration & Access
    # =========================================================================

    def add_team(self, team: Team) -> Team:
        if team.tokens < 0:
            raise ValidationError.single("tokens", "Tokens cannot be negative")
        if team.max_players < 1:
            raise ValidationError.single("max_players", "Max players must be at least 1")
        with self._lock:
            self._teams[team.team_id] = team
        logger.debug(f"Team {team.name} registered with {team.tokens} tokens")
        return team

    def remove_team(self, team_id: str) -> None:
        with self._lock:
            self._teams.pop(team_id, None)

    def get(self, team_id: str) -> Team:
        team = self._teams.get(team_id)
        if team is None:
            raise NotFound(f"Team {team_id} not found")
        return team

    def has_team(self, team_id: str) -> bool:
        return team_id in self._teams

    def teams_for(self, tournament_id: str) -> List[Team]:
        with self._lock:
            return [t for t in self._teams.values() if t.tournament_id == tournament_id]

    def available_budget(self, team_id: str) -> int:
        return self.get(team_id).available_budget

    # =========================================================================
    # Bid-time check
    # =========================================================================

    def check_bid(self, team_id: str, amount: int) -> None:
        """
        Advisory affordability check for a bid.

        Raises:
            NotFound: Unknown team
            RosterFull: Team already holds max_players
            InsufficientBudget: amount exceeds available budget
        """
        with self._lock:
            team = self.get(team_id)
            if team.is_full:
                raise RosterFull(f"{team.name} already has {team.max_players} players")
            if amount > team.available_budget:
                raise InsufficientBudget(
                    f"{team.name} has {team.available_budget} tokens available, bid was {amount}"
                )

    # =========================================================================
    # Commit & Correction
    # =========================================================================

    def commit(self, team_id: str, player_id: str, amount: int) -> RosterEntry:
        """
        Commit a purchase: add the player to the roster and debit the team.

        Raises:
            BudgetExceeded: Team can no longer afford the amount
            RosterFull: Roster filled up since the bid
            ValidationError: Player already on the roster or negative amount
        """
        if amount < 0:
            raise ValidationError.single("amount", "Amount cannot be negative")

        with self._lock:
            team = self.get(team_id)
            if team.has_player(player_id):
                raise ValidationError.single("player_id", "Player already in team")
            if team.is_full:
                raise RosterFull(f"{team.name} already has {team.max_players} players")
            if amount > team.available_budget:
                raise BudgetExceeded(
                    f"{team.name} cannot pay {amount}, only {team.available_budget} available"
                )

            entry = RosterEntry(player_id=player_id, amount=amount)
            team.roster.append(entry)
            team.total_spent += amount

        logger.info(
            f"{team.name} bought player {player_id[:8]} for {amount} "
            f"({team.available_budget} left)"
        )
        return entry

    def revert(self, team_id: str, player_id: str) -> RosterEntry:
        """Administrative correction: remove a purchase and refund it."""
        with self._lock:
            team = self.get(team_id)
            for index, entry in enumerate(team.roster):
                if entry.player_id == player_id:
                    del team.roster[index]
                    team.total_spent -= entry.amount
                    logger.warning(
                        f"Reverted purchase of {player_id[:8]} by {team.name}, refunded {entry.amount}"
                    )
                    return entry
        raise NotFound(f"Player {player_id} is not on team {team_id}")

    # =========================================================================
    # Checkpointing
    # =========================================================================

    def snapshot(self, team_ids: Iterable[str]) -> Dict[str, Team]:
        """Deep copies of the given teams, for rollback."""
        with self._lock:
            return {
                tid: copy.deepcopy(self._teams[tid])
                for tid in team_ids
                if tid in self._teams
            }

    def restore(self, saved: Dict[str, Team]) -> None:
        """Put snapshotted teams back, updating live objects in place."""
        with self._lock:
            for tid, team in saved.items():
                current = self._teams.get(tid)
                if current is None:
                    self._teams[tid] = copy.deepcopy(team)
                else:
                    vars(current).update(vars(copy.deepcopy(team)))

    def verify(self, team_id: str) -> bool:
        """Check the accounting invariants for one team."""
        team = self.get(team_id)
        return (
            team.total_spent == sum(entry.amount for entry in team.roster)
            and team.available_budget >= 0
        )
