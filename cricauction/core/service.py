"""
Auction Service - Serialized entry point for every auction operation.

Each auction is a single-writer state machine. Every mutation (bid,
control action, clock tick) runs under that auction's lock:

    acquire lock (bounded wait, else Busy)
      -> checkpoint session
      -> apply operation
      -> persist (auction + changed bids + changed teams, version checked)
      -> on any failure: restore checkpoint, raise
      -> stamp buffered events with their room sequence
    release lock
    deliver stamped events to subscribers

Different auctions use different locks and proceed in parallel. Room
membership and chat do not take the auction lock.
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar, Union

from cricauction.core.auction.models import Auction, AuctionSettings, AuctionStatus, RoundDecision
from cricauction.core.auction.session import AuctionSession
from cricauction.core.bidding.bid import Bid
from cricauction.core.bidding.ledger import BidLedger
from cricauction.core.config import ServiceConfig, config as default_config
from cricauction.core.errors import (
    AuctionError,
    Busy,
    DependencyFailure,
    NotFound,
    ValidationError,
)
from cricauction.core.policy.access import Action, Actor, require
from cricauction.core.registry.players import (
    Player,
    PlayerRegistry,
    Tournament,
    TournamentFormat,
    TournamentSettings,
)
from cricauction.core.schemas import parse_bid, parse_decision, parse_settings
from cricauction.core.storage.base import AuctionStore
from cricauction.core.storage.memory import InMemoryStore
from cricauction.core.teams.budget import TeamBudgetLedger
from cricauction.core.teams.team import Team
from cricauction.realtime.broadcast import BroadcastChannel
from cricauction.realtime.events import Event
from cricauction.realtime.rooms import RoomHub, Subscriber
from cricauction.utils.logger import get_logger

logger = get_logger("service")

T = TypeVar("T")

MAX_MESSAGE_LENGTH = 500


class AuctionService:
    """
    Facade over registry, team ledger, sessions, storage and broadcast.

    Example:
        service = AuctionService(StorageManager(Path("data")))
        service.load_from_store()
        service.place_bid(auction_id, player_id, team_id, captain, 50)
    """

    def __init__(
        self,
        store: Optional[AuctionStore] = None,
        channel: Optional[BroadcastChannel] = None,
        service_config: Optional[ServiceConfig] = None,
    ):
        self.config = service_config or default_config
        self.store = store or InMemoryStore()
        self.channel = channel or BroadcastChannel(RoomHub(self.config.subscriber_queue_size))
        self.registry = PlayerRegistry()
        self.teams = TeamBudgetLedger()
        self.sessions: Dict[str, AuctionSession] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # =========================================================================
    # Serialization
    # =========================================================================

    def _lock_for(self, auction_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(auction_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[auction_id] = lock
            return lock

    @contextmanager
    def _locked(self, auction_id: str) -> Iterator[None]:
        lock = self._lock_for(auction_id)
        if not lock.acquire(timeout=self.config.lock_timeout):
            logger.warning(f"Auction {auction_id[:8]} busy (waited {self.config.lock_timeout}s)")
            raise Busy(f"Auction {auction_id} is busy, retry shortly")
        try:
            yield
        finally:
            lock.release()

    def _session(self, auction_id: str) -> AuctionSession:
        session = self.sessions.get(auction_id)
        if session is None:
            raise NotFound(f"Auction {auction_id} not found")
        return session

    def _store_call(self, description: str, fn: Callable[..., T], *args, **kwargs) -> T:
        try:
            return fn(*args, **kwargs)
        except AuctionError:
            raise
        except Exception as e:
            logger.error(f"Storage failure while {description}: {e}")
            raise DependencyFailure(f"Storage failure while {description}", cause=e) from e

    def _mutate(
        self,
        auction_id: str,
        operation: Callable[[AuctionSession], T],
        persist_always: bool = True,
    ) -> T:
        """
        Run an operation under the auction lock and commit it.

        Args:
            auction_id: Target auction
            operation: Mutates the session, returns the result
            persist_always: If False, persist only when the result is truthy

        Raises:
            Busy: lock not acquired in time
            DependencyFailure: persistence failed (state rolled back)
        """
        with self._locked(auction_id):
            session = self._session(auction_id)
            saved = session.checkpoint()
            expected_version = session.auction.version

            try:
                result = operation(session)
            except Exception:
                session.restore(saved)
                raise

            if not persist_always and not result:
                return result

            session.auction.version = expected_version + 1
            try:
                self._store_call(
                    f"saving auction {auction_id[:8]}",
                    self.store.persist,
                    session.auction,
                    expected_version,
                    session.bids.drain_dirty(),
                    session.drain_touched_teams(),
                )
            except Exception:
                session.restore(saved)
                raise

            self.channel.enqueue(session.drain_events())

        self.channel.flush()
        return result

    # =========================================================================
    # Registration
    # =========================================================================

    def register_tournament(
        self,
        actor: Actor,
        name: str,
        tournament_format: TournamentFormat = TournamentFormat.BILATERAL,
        settings: Optional[TournamentSettings] = None,
    ) -> Tournament:
        require(actor, Action.CONTROL)
        tournament = Tournament(
            name=name,
            format=tournament_format,
            settings=settings or TournamentSettings(),
        )
        self.registry.add_tournament(tournament)
        try:
            self._store_call("saving tournament", self.store.save_tournament, tournament)
        except DependencyFailure:
            self.registry.remove_tournament(tournament.tournament_id)
            raise
        return tournament

    def register_team(
        self,
        actor: Actor,
        tournament_id: str,
        name: str,
        captain_id: str,
        manager_id: Optional[str] = None,
        tokens: Optional[int] = None,
        max_players: Optional[int] = None,
    ) -> Team:
        """Register a team; budget and roster limits default to the tournament's."""
        require(actor, Action.CONTROL)
        tournament = self.registry.get_tournament(tournament_id)
        ts = tournament.settings
        team = Team(
            name=name,
            tournament_id=tournament_id,
            captain_id=captain_id,
            manager_id=manager_id,
            tokens=ts.total_tokens if tokens is None else tokens,
            max_players=ts.max_players_per_team if max_players is None else max_players,
            min_players=ts.min_players_per_team,
        )
        saved = (list(tournament.team_ids), list(tournament.captain_ids))
        try:
            tournament.add_team(team.team_id, captain_id)
            self.teams.add_team(team)
            self._store_call("saving team", self.store.save_team, team)
            self._store_call("saving tournament", self.store.save_tournament, tournament)
        except AuctionError:
            tournament.team_ids, tournament.captain_ids = saved
            self.teams.remove_team(team.team_id)
            raise
        logger.info(f"Team {name} joined {tournament.name} with {team.tokens} tokens")
        return team

    def register_player(
        self,
        name: str,
        roles: Optional[List[str]] = None,
        base_price: int = 0,
        player_group: Optional[str] = None,
    ) -> Player:
        player = Player(
            name=name,
            roles=list(roles) if roles else ["batsman"],
            base_price=base_price,
            player_group=player_group,
        )
        self.registry.add_player(player)
        try:
            self._store_call("saving player", self.store.save_player, player)
        except DependencyFailure:
            self.registry.remove_player(player.player_id)
            raise
        return player

    def create_auction(
        self,
        actor: Actor,
        tournament_id: str,
        name: str,
        player_ids: Optional[List[str]] = None,
        settings: Optional[Union[AuctionSettings, Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Create a pending auction.

        Args:
            actor: Auctioneer or admin
            tournament_id: Owning tournament
            name: Display name
            player_ids: Pool in insertion order (default: all active players)
            settings: AuctionSettings, or a dict of overrides on the
                tournament's defaults (validated)
        """
        require(actor, Action.CONTROL)
        tournament = self.registry.get_tournament(tournament_id)

        if isinstance(settings, AuctionSettings):
            auction_settings = settings
        else:
            merged = AuctionSettings.from_tournament(tournament).to_dict()
            merged.update(settings or {})
            auction_settings = parse_settings(merged)

        if player_ids is None:
            pool = [p.player_id for p in self.registry.players.values() if p.is_active]
        else:
            for pid in player_ids:
                self.registry.get_player(pid)
            pool = list(dict.fromkeys(player_ids))

        if not name or not name.strip():
            raise ValidationError.single("name", "Auction name is required")

        auction = Auction(
            tournament_id=tournament_id,
            name=name.strip(),
            created_by=actor.user_id,
            players=pool,
            settings=auction_settings,
        )
        auction.timer.duration = auction_settings.timer_duration
        auction.timer.remaining = auction_settings.timer_duration
        auction.log("auction_created", actor.user_id, player_count=len(pool))
        auction.version = 1

        self._store_call("creating auction", self.store.persist, auction, 0)
        self.sessions[auction.auction_id] = AuctionSession(
            auction, self.registry.players, self.teams
        )
        logger.info(f"Auction {auction.name} created with {len(pool)} players")
        return self.sessions[auction.auction_id].snapshot()

    # =========================================================================
    # Bidding
    # =========================================================================

    def place_bid(
        self,
        auction_id: str,
        player_id: str,
        team_id: str,
        actor: Actor,
        amount: int,
        notes: str = "",
    ) -> Bid:
        request = parse_bid({
            "auction_id": auction_id,
            "player_id": player_id,
            "team_id": team_id,
            "amount": amount,
            "notes": notes,
        })
        return self._mutate(
            request.auction_id,
            lambda s: s.place_bid(actor, request.player_id, request.team_id,
                                  request.amount, request.notes),
        )

    # =========================================================================
    # Auctioneer controls
    # =========================================================================

    def start_auction(self, auction_id: str, actor: Actor) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.start(actor))
        return self.get_status(auction_id)

    def pause_auction(self, auction_id: str, actor: Actor) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.pause(actor))
        return self.get_status(auction_id)

    def resume_auction(self, auction_id: str, actor: Actor) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.resume(actor))
        return self.get_status(auction_id)

    def advance_player(self, auction_id: str, actor: Actor) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.next_player(actor))
        return self.get_status(auction_id)

    def resolve_current_round(
        self,
        auction_id: str,
        actor: Actor,
        decision: Union[RoundDecision, str],
    ) -> Dict[str, Any]:
        if isinstance(decision, RoundDecision):
            decision = decision.value
        request = parse_decision({"auction_id": auction_id, "decision": decision})
        self._mutate(auction_id, lambda s: s.resolve(actor, request.decision))
        return self.get_status(auction_id)

    def sell_player(self, auction_id: str, actor: Actor, team_id: str, amount: int) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.sell_player(actor, team_id, amount))
        return self.get_status(auction_id)

    def mark_unsold(self, auction_id: str, actor: Actor) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.mark_unsold(actor))
        return self.get_status(auction_id)

    def cancel_auction(self, auction_id: str, actor: Actor) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.cancel(actor))
        return self.get_status(auction_id)

    def requeue_unsold(self, auction_id: str, actor: Actor, player_id: str) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.requeue_unsold(actor, player_id))
        return self.get_status(auction_id)

    def correct_purchase(self, auction_id: str, actor: Actor, player_id: str) -> Dict[str, Any]:
        self._mutate(auction_id, lambda s: s.correct_purchase(actor, player_id))
        logger.warning(f"Purchase of {player_id[:8]} in {auction_id[:8]} corrected by {actor.user_id}")
        return self.get_status(auction_id)

    # =========================================================================
    # Clock
    # =========================================================================

    def tick(self, auction_id: str) -> bool:
        """Deliver one countdown second. Returns True if the auction changed."""
        return self._mutate(auction_id, lambda s: s.tick(), persist_always=False)

    def expire(self, auction_id: str, round_number: int) -> bool:
        """
        Deliver an expiry signal for the round it was armed for.

        Duplicate or stale signals return False.
        """
        return self._mutate(
            auction_id, lambda s: s.expire(round_number), persist_always=False
        )

    def active_auction_ids(self) -> List[str]:
        return [
            auction_id for auction_id, session in list(self.sessions.items())
            if session.status == AuctionStatus.ACTIVE
        ]

    def tick_all(self) -> int:
        """
        Tick every active auction once.

        A busy or failing auction is skipped; it is ticked again next time.

        Returns:
            Number of auctions that changed
        """
        changed = 0
        for auction_id in self.active_auction_ids():
            try:
                if self.tick(auction_id):
                    changed += 1
            except Busy:
                logger.debug(f"Tick skipped for busy auction {auction_id[:8]}")
            except DependencyFailure as e:
                logger.error(f"Tick failed for auction {auction_id[:8]}: {e}")
        return changed

    # =========================================================================
    # Rooms
    # =========================================================================

    def join(
        self,
        auction_id: str,
        actor: Optional[Actor] = None,
        on_event: Optional[Callable[[Event], None]] = None,
    ) -> Subscriber:
        """Join an auction room; anonymous callers get a viewer identity."""
        self._session(auction_id)
        actor = actor or Actor.viewer()
        require(actor, Action.VIEW)
        return self.channel.join(auction_id, actor.user_id, actor.name, on_event=on_event)

    def leave(self, auction_id: str, client_id: str) -> bool:
        return self.channel.leave(auction_id, client_id)

    def post_message(self, auction_id: str, actor: Actor, text: str) -> Event:
        self._session(auction_id)
        require(actor, Action.CHAT)
        text = (text or "").strip()
        if not text:
            raise ValidationError.single("message", "Message cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError.single(
                "message", f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters"
            )
        return self.channel.post_message(auction_id, actor.user_id, actor.name, text)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_status(self, auction_id: str, actor: Optional[Actor] = None) -> Dict[str, Any]:
        require(actor, Action.VIEW)
        return self._session(auction_id).snapshot()

    def get_auction(self, auction_id: str) -> Auction:
        return self._session(auction_id).auction

    def team_statistics(self, tournament_id: str) -> List[Dict[str, Any]]:
        return [team.statistics() for team in self.teams.teams_for(tournament_id)]

    # =========================================================================
    # Recovery
    # =========================================================================

    def load_from_store(self) -> int:
        """
        Rebuild registry, teams and sessions from the store.

        Returns:
            Number of auctions loaded
        """
        def load_all():
            return (
                self.store.list_tournaments(),
                self.store.list_players(),
                self.store.list_teams(),
                self.store.list_auctions(),
            )

        tournaments, players, teams, auctions = self._store_call("loading state", load_all)

        for tournament in tournaments:
            self.registry.tournaments[tournament.tournament_id] = tournament
        for player in players:
            self.registry.players[player.player_id] = player
        for team in teams:
            self.teams.add_team(team)

        for auction in auctions:
            bids = self._store_call(
                "loading bids", self.store.load_bids, auction.auction_id
            )
            self.sessions[auction.auction_id] = AuctionSession(
                auction,
                self.registry.players,
                self.teams,
                BidLedger(auction.auction_id, bids),
            )

        logger.info(
            f"Loaded {len(tournaments)} tournaments, {len(players)} players, "
            f"{len(teams)} teams, {len(auctions)} auctions"
        )
        return len(auctions)
