"""
Storage contract for auction state.

The service treats the store as an external dependency: any exception it
raises is wrapped in DependencyFailure and the in-memory mutation is
rolled back. Auctions are written with optimistic concurrency control:
`persist` is given the version the caller loaded and fails with
ConcurrencyConflict if the stored version has moved on.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from cricauction.core.auction.models import Auction
from cricauction.core.bidding.bid import Bid
from cricauction.core.registry.players import Player, Tournament
from cricauction.core.teams.team import Team


class AuctionStore(ABC):
    """Persistence for tournaments, players, teams, auctions and bids."""

    # =========================================================================
    # Registry
    # =========================================================================

    @abstractmethod
    def save_tournament(self, tournament: Tournament) -> None:
        ...

    @abstractmethod
    def load_tournament(self, tournament_id: str) -> Optional[Tournament]:
        ...

    @abstractmethod
    def list_tournaments(self) -> List[Tournament]:
        ...

    @abstractmethod
    def save_player(self, player: Player) -> None:
        ...

    @abstractmethod
    def load_player(self, player_id: str) -> Optional[Player]:
        ...

    @abstractmethod
    def list_players(self) -> List[Player]:
        ...

    @abstractmethod
    def save_team(self, team: Team) -> None:
        ...

    @abstractmethod
    def load_team(self, team_id: str) -> Optional[Team]:
        ...

    @abstractmethod
    def list_teams(self, tournament_id: Optional[str] = None) -> List[Team]:
        ...

    # =========================================================================
    # Auctions
    # =========================================================================

    @abstractmethod
    def load_auction(self, auction_id: str) -> Optional[Auction]:
        ...

    @abstractmethod
    def list_auctions(self) -> List[Auction]:
        ...

    @abstractmethod
    def load_bids(self, auction_id: str) -> List[Bid]:
        """Bids of an auction in acceptance order."""
        ...

    @abstractmethod
    def persist(
        self,
        auction: Auction,
        expected_version: int,
        bids: Iterable[Bid] = (),
        teams: Iterable[Team] = (),
    ) -> None:
        """
        Atomically write an auction together with changed bids and teams.

        `auction.version` is the new version; `expected_version` is the
        version currently stored (0 for a new auction).

        Raises:
            ConcurrencyConflict: stored version differs from expected_version
        """
        ...

    def close(self) -> None:
        """Release resources. Optional."""
