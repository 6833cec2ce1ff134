"""
Shared fixtures: actors, a ready-made session and a ready-made service.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import pytest

from cricauction.core.auction import Auction, AuctionSession, AuctionSettings
from cricauction.core.config import ServiceConfig
from cricauction.core.policy import Actor, Role
from cricauction.core.registry import Player, TournamentSettings
from cricauction.core.service import AuctionService
from cricauction.core.storage import InMemoryStore
from cricauction.core.teams import Team, TeamBudgetLedger


ADMIN = Actor("admin-1", Role.ADMIN, "Admin")
AUCTIONEER = Actor("auctioneer-1", Role.AUCTIONEER, "Auctioneer")
CAPTAIN_A = Actor("cap-a", Role.CAPTAIN, "Captain A")
CAPTAIN_B = Actor("cap-b", Role.CAPTAIN, "Captain B")


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def auctioneer():
    return AUCTIONEER


@pytest.fixture
def captain_a():
    return CAPTAIN_A


@pytest.fixture
def captain_b():
    return CAPTAIN_B


# =============================================================================
# Session world (no service, no storage)
# =============================================================================


@dataclass
class SessionWorld:
    session: AuctionSession
    ledger: TeamBudgetLedger
    player_ids: List[str]
    players: Dict[str, Player]
    team_a: Team
    team_b: Team

    @property
    def auction(self) -> Auction:
        return self.session.auction

    def event_names(self) -> List[str]:
        return [event.name for event in self.session.drain_events()]


def build_session(
    settings: Optional[AuctionSettings] = None,
    player_count: int = 3,
    tokens: int = 2000,
    max_players: int = 15,
) -> SessionWorld:
    players = {}
    for i in range(player_count):
        player = Player(name=f"Player {i}", base_price=100 + i * 10)
        players[player.player_id] = player

    ledger = TeamBudgetLedger()
    team_a = ledger.add_team(Team("Team A", "tour-1", "cap-a", tokens=tokens, max_players=max_players))
    team_b = ledger.add_team(Team("Team B", "tour-1", "cap-b", tokens=tokens, max_players=max_players))

    auction = Auction(
        tournament_id="tour-1",
        name="Test Auction",
        created_by=AUCTIONEER.user_id,
        players=list(players),
        settings=settings or AuctionSettings(),
    )
    session = AuctionSession(auction, players, ledger)
    return SessionWorld(session, ledger, list(players), players, team_a, team_b)


@pytest.fixture
def make_world():
    """Factory for a pending session with two teams (cap-a, cap-b)."""
    return build_session


@pytest.fixture
def world():
    return build_session()


# =============================================================================
# Service world
# =============================================================================


@dataclass
class ServiceWorld:
    service: AuctionService
    store: InMemoryStore
    tournament_id: str
    team_a: Team
    team_b: Team
    player_ids: List[str]
    auction_id: str


def build_service(
    settings: Optional[dict] = None,
    player_count: int = 3,
    store=None,
    lock_timeout: float = 1.0,
) -> ServiceWorld:
    store = store if store is not None else InMemoryStore()
    service = AuctionService(
        store=store,
        service_config=ServiceConfig(lock_timeout=lock_timeout),
    )
    tournament = service.register_tournament(
        ADMIN, "Summer Cup", settings=TournamentSettings(total_tokens=1000)
    )
    team_a = service.register_team(ADMIN, tournament.tournament_id, "Lions", "cap-a")
    team_b = service.register_team(ADMIN, tournament.tournament_id, "Tigers", "cap-b")
    player_ids = [
        service.register_player(f"Player {i}", ["batsman"], base_price=50).player_id
        for i in range(player_count)
    ]
    snapshot = service.create_auction(
        AUCTIONEER,
        tournament.tournament_id,
        "Main Auction",
        player_ids=player_ids,
        settings=settings,
    )
    return ServiceWorld(
        service, store, tournament.tournament_id, team_a, team_b, player_ids,
        snapshot["auction_id"],
    )


@pytest.fixture
def make_service():
    """Factory for a service with one pending auction and two teams."""
    return build_service
