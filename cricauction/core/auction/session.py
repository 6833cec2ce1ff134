"""
Auction Session - The state machine for one live auction.

States:
    pending -> active <-> paused -> completed
    (any non-terminal state) -> cancelled

A round is the bidding period for the current player. It ends with a
sale, an unsold mark, or a skip, after which the session advances to the
next remaining player or completes when the pool is exhausted.

Every public method validates first and mutates second, so a raised
error leaves the session untouched. The session is not thread-safe: the
service serializes all calls for one auction behind a lock and uses
checkpoint()/restore() to undo operations whose persistence failed.

Events produced by a mutation are buffered in `pending_events` and
drained by the service after commit.
"""

import copy
from typing import Any, Dict, List, Optional, Set, Tuple

from cricauction.core.auction.models import (
    Auction,
    AuctionStatus,
    ExpiryAction,
    RoundDecision,
    SoldPlayer,
    UnsoldRequeue,
)
from cricauction.core.auction.ordering import sort_pool
from cricauction.core.bidding import protocol as bid_rules
from cricauction.core.bidding.bid import Bid
from cricauction.core.bidding.ledger import BidLedger
from cricauction.core.errors import (
    BudgetExceeded,
    EmptyPool,
    InvalidTransition,
    NoActiveBid,
    NotFound,
    PlayerNotCurrent,
    RosterFull,
    ValidationError,
)
from cricauction.core.policy.access import Action, Actor, require
from cricauction.core.registry.players import Player
from cricauction.core.teams.budget import TeamBudgetLedger
from cricauction.core.teams.team import Team
from cricauction.realtime.events import Event, EventType
from cricauction.utils.logger import get_logger

logger = get_logger("session")


SessionCheckpoint = Tuple[Auction, BidLedger, Dict[str, Team], List[Event], Set[str]]


class AuctionSession:
    """
    Live state for one auction.

    Attributes:
        auction: The auction record being driven
        players: Known players by id (for ordering and payloads)
        teams: Shared team budget ledger
        bids: This auction's bid ledger
        pending_events: Events awaiting broadcast
        touched_teams: Team ids changed since the last drain
    """

    def __init__(
        self,
        auction: Auction,
        players: Dict[str, Player],
        teams: TeamBudgetLedger,
        bids: Optional[BidLedger] = None,
    ):
        self.auction = auction
        self.players = players
        self.teams = teams
        self.bids = bids or BidLedger(auction.auction_id)
        self.pending_events: List[Event] = []
        self.touched_teams: Set[str] = set()

    @property
    def auction_id(self) -> str:
        return self.auction.auction_id

    @property
    def status(self) -> AuctionStatus:
        return self.auction.status

    @property
    def settings(self):
        return self.auction.settings

    # =========================================================================
    # Queries
    # =========================================================================

    def leading_bid(self) -> Optional[Bid]:
        if self.auction.current_player is None:
            return None
        return self.bids.leading(self.auction.current_player)

    def next_required_amount(self) -> Optional[int]:
        """Amount the next bid must reach, or None between rounds."""
        if self.auction.current_player is None:
            return None
        return bid_rules.required_amount(self.settings, self.leading_bid())

    def snapshot(self) -> Dict[str, Any]:
        """Public status: the auction summary plus the live round."""
        data = self.auction.status_summary()
        leader = self.leading_bid()
        data["leading_bid"] = leader.summary() if leader else None
        data["required_amount"] = self.next_required_amount()
        data["current_player_detail"] = self._player_payload(self.auction.current_player)
        return data

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, actor: Actor) -> Auction:
        """
        Start the auction: sort the pool and put up the first player.

        Raises:
            InvalidTransition: not pending
            EmptyPool: no eligible players
        """
        require(actor, Action.CONTROL)
        auction = self.auction
        if auction.status != AuctionStatus.PENDING:
            raise InvalidTransition(
                f"Auction can only be started from pending status (status: {auction.status.value})"
            )
        eligible = [
            pid for pid in auction.players
            if pid not in self.players or self.players[pid].is_active
        ]
        if not eligible:
            raise EmptyPool("Cannot start auction with no players")

        auction.players = sort_pool(eligible, self.players, self.settings.player_order)
        auction.timer.duration = self.settings.timer_duration
        auction.status = AuctionStatus.ACTIVE
        auction.log("auction_started", actor.user_id, order=self.settings.player_order.type.value)

        logger.info(
            f"Auction {auction.name} started with {len(auction.players)} players "
            f"({self.settings.player_order.type.value} order)"
        )
        self._emit(EventType.AUCTION_STARTED, {"auction": auction.status_summary()})
        self._advance()
        return auction

    def pause(self, actor: Actor) -> Auction:
        require(actor, Action.CONTROL)
        auction = self.auction
        if auction.status != AuctionStatus.ACTIVE:
            raise InvalidTransition(f"Cannot pause auction in status {auction.status.value}")
        self._pause(actor.user_id)
        return auction

    def resume(self, actor: Actor) -> Auction:
        """
        Resume a paused auction.

        The timer continues from the remaining seconds it had when paused.
        If the auction paused between rounds (after a sale), the next
        player is put up.
        """
        require(actor, Action.CONTROL)
        auction = self.auction
        if auction.status != AuctionStatus.PAUSED:
            raise InvalidTransition(f"Cannot resume auction in status {auction.status.value}")

        auction.status = AuctionStatus.ACTIVE
        auction.log("auction_resumed", actor.user_id)
        logger.info(f"Auction {auction.name} resumed")
        self._emit(EventType.AUCTION_RESUMED, {"remaining": auction.timer.remaining})

        if auction.current_player is None:
            self._advance()
        elif not auction.round_resolved and auction.timer.remaining > 0:
            auction.timer.resume()
        return auction

    def cancel(self, actor: Actor) -> Auction:
        require(actor, Action.CANCEL)
        auction = self.auction
        if auction.status.is_terminal:
            raise InvalidTransition(f"Cannot cancel a {auction.status.value} auction")

        if auction.current_player is not None and not auction.round_resolved:
            self.bids.close_round(auction.current_player, sold=False)
        auction.status = AuctionStatus.CANCELLED
        auction.timer.disarm()
        auction.current_bid = None
        auction.round_resolved = True
        auction.log("auction_cancelled", actor.user_id)

        logger.warning(f"Auction {auction.name} cancelled by {actor.user_id}")
        self._emit(EventType.AUCTION_CANCELLED, {"auction": auction.status_summary()})
        return auction

    def next_player(self, actor: Actor) -> Auction:
        """
        Move to the next player.

        An unresolved current round is closed as a skip: the player goes
        to skipped_players and any leading bid stops winning.
        """
        require(actor, Action.CONTROL)
        auction = self.auction
        if auction.status not in (AuctionStatus.ACTIVE, AuctionStatus.PAUSED):
            raise InvalidTransition(f"Cannot advance auction in status {auction.status.value}")

        if auction.current_player is not None and not auction.round_resolved:
            player_id = auction.current_player
            self.bids.close_round(player_id, sold=False)
            auction.skipped_players.append(player_id)
            auction.round_resolved = True
            auction.current_player = None
            auction.current_bid = None
            auction.timer.disarm()
            auction.log("player_skipped", actor.user_id, player_id=player_id)
            logger.info(f"Player {player_id[:8]} skipped")
            self._emit(EventType.PLAYER_SKIPPED, {"player": self._player_payload(player_id)})

        self._advance()
        return auction

    # =========================================================================
    # Bidding
    # =========================================================================

    def place_bid(
        self,
        actor: Actor,
        player_id: str,
        team_id: str,
        amount: int,
        notes: str = "",
    ) -> Bid:
        """
        Accept a bid for the current player.

        Raises:
            PlayerNotCurrent: auction not active or player not current
            NotFound: unknown team
            Forbidden: actor may not bid for the team
            BidTooLow: amount below required (carries required_amount)
            ValidationError: amount above max_bid_amount
            RosterFull / InsufficientBudget: team cannot take the player
        """
        auction = self.auction
        bid_rules.check_round_open(auction, player_id)
        if auction.round_resolved:
            raise PlayerNotCurrent("Bidding for this player has closed")

        team = self.teams.get(team_id)
        if team.tournament_id != auction.tournament_id:
            raise NotFound(f"Team {team_id} is not part of this tournament")
        require(actor, Action.BID, team)

        leader = self.bids.leading(player_id)
        bid_rules.check_amount(self.settings, leader, amount)
        self.teams.check_bid(team_id, amount)

        bid = Bid(
            auction_id=auction.auction_id,
            player_id=player_id,
            team_id=team_id,
            bidder_id=actor.user_id,
            amount=amount,
            round_number=auction.round_number,
            notes=notes,
        )
        self.bids.record(bid)
        auction.current_bid = bid.bid_id
        auction.bid_history.append(bid.bid_id)

        if self.settings.reset_timer_on_bid:
            auction.timer.arm(self.settings.timer_duration)

        logger.info(f"Bid {amount} by {team.name} for player {player_id[:8]} accepted")
        self._emit(EventType.BID_UPDATE, {
            "bid": bid.summary(),
            "team": team.summary(),
            "required_amount": bid_rules.required_amount(self.settings, bid),
            "remaining": auction.timer.remaining,
        })
        return bid

    # =========================================================================
    # Round resolution
    # =========================================================================

    def sell_player(self, actor: Actor, team_id: str, amount: int) -> Auction:
        """
        Confirm the leading bid as a sale.

        With allow_forced_sale, an auctioneer may sell without any bid at
        an amount between min_bid and max_bid_amount.

        Raises:
            InvalidTransition: auction not active or no current player
            NoActiveBid: no leading bid and forced sales disabled
            ValidationError: team/amount do not match the leading bid
            BudgetExceeded / RosterFull: commit-time re-check failed
        """
        require(actor, Action.CONTROL)
        auction = self.auction
        if auction.status != AuctionStatus.ACTIVE:
            raise InvalidTransition(f"Cannot sell in status {auction.status.value}")
        if auction.current_player is None or auction.round_resolved:
            raise InvalidTransition("No player is up for auction")

        leader = self.bids.leading(auction.current_player)
        if leader is None:
            if not self.settings.allow_forced_sale:
                raise NoActiveBid("Cannot sell a player without a bid")
            if amount < self.settings.min_bid or amount > self.settings.max_bid_amount:
                raise ValidationError.single(
                    "amount",
                    f"Forced sale amount must be between {self.settings.min_bid} "
                    f"and {self.settings.max_bid_amount}",
                )
            self.teams.get(team_id)
        else:
            errors: Dict[str, List[str]] = {}
            if leader.team_id != team_id:
                errors["team_id"] = ["Sale must go to the team holding the leading bid"]
            if leader.amount != amount:
                errors["amount"] = [f"Sale amount must equal the leading bid of {leader.amount}"]
            if errors:
                raise ValidationError(errors)

        self._sell(team_id, amount, leader, actor.user_id)
        return auction

    def mark_unsold(self, actor: Actor) -> Auction:
        """
        Close the round without a sale.

        Raises:
            InvalidTransition: wrong status, no current player, or a bid leads
        """
        require(actor, Action.CONTROL)
        auction = self.auction
        if auction.status not in (AuctionStatus.ACTIVE, AuctionStatus.PAUSED):
            raise InvalidTransition(f"Cannot mark unsold in status {auction.status.value}")
        if auction.current_player is None or auction.round_resolved:
            raise InvalidTransition("No player is up for auction")
        if self.bids.leading(auction.current_player) is not None:
            raise InvalidTransition("Player has a leading bid; sell or skip instead")

        self._mark_unsold(actor.user_id)
        return auction

    def resolve(self, actor: Actor, decision: RoundDecision) -> Auction:
        """Resolve the current round as a sale to the leader or as unsold."""
        if decision == RoundDecision.SELL:
            require(actor, Action.CONTROL)
            leader = self.leading_bid()
            if leader is None:
                raise NoActiveBid("Cannot sell a player without a bid")
            return self.sell_player(actor, leader.team_id, leader.amount)
        return self.mark_unsold(actor)

    def requeue_unsold(self, actor: Actor, player_id: str) -> Auction:
        """Put an unsold player back at the end of the pool."""
        require(actor, Action.CONTROL)
        auction = self.auction
        if auction.status not in (AuctionStatus.ACTIVE, AuctionStatus.PAUSED):
            raise InvalidTransition(f"Cannot requeue in status {auction.status.value}")
        if not self.settings.allow_unsold_reauction:
            raise InvalidTransition("Re-auction of unsold players is disabled")
        if player_id not in auction.unsold_players:
            raise NotFound(f"Player {player_id} is not unsold")

        self._requeue(player_id, actor.user_id)
        return auction

    def correct_purchase(self, actor: Actor, player_id: str) -> Auction:
        """
        Administrative correction: undo a sale and refund the team.

        The player moves to unsold_players and can be re-queued.
        """
        require(actor, Action.CORRECT)
        auction = self.auction
        sale = auction.sale_for(player_id)
        if sale is None:
            raise NotFound(f"Player {player_id} was not sold in this auction")

        self.teams.revert(sale.team_id, player_id)
        self.touched_teams.add(sale.team_id)
        auction.sold_players.remove(sale)
        auction.unsold_players.append(player_id)

        auction.statistics.rebuild(auction.sold_players, len(auction.unsold_players))
        self.bids.void_sale(sale.bid_id)

        auction.log("purchase_corrected", actor.user_id, player_id=player_id,
                    team_id=sale.team_id, amount=sale.amount)
        self._emit(EventType.PLAYER_UNSOLD, {
            "player": self._player_payload(player_id),
            "corrected": True,
        })
        return auction

    # =========================================================================
    # Timer
    # =========================================================================

    def tick(self) -> bool:
        """
        Advance the countdown by one second.

        Returns:
            True if the session changed
        """
        auction = self.auction
        if (
            auction.status != AuctionStatus.ACTIVE
            or not auction.timer.is_active
            or auction.round_resolved
        ):
            return False

        auction.timer.remaining = max(0, auction.timer.remaining - 1)
        self._emit(EventType.TIMER_TICK, {
            "remaining": auction.timer.remaining,
            "round_number": auction.round_number,
        })
        if auction.timer.remaining == 0:
            self._on_expired()
        return True

    def expire(self, round_number: int) -> bool:
        """
        Handle an expiry signal for a round.

        The signal names the round it was armed for. Stale (other round),
        duplicate, or late signals are ignored.

        Returns:
            True if the signal resolved or held the round
        """
        auction = self.auction
        if auction.status != AuctionStatus.ACTIVE or auction.round_resolved:
            return False
        if round_number != auction.round_number:
            return False
        if not auction.timer.is_active:
            return False

        auction.timer.remaining = 0
        self._on_expired()
        return True

    # =========================================================================
    # Checkpointing
    # =========================================================================

    def checkpoint(self) -> SessionCheckpoint:
        team_ids = [t.team_id for t in self.teams.teams_for(self.auction.tournament_id)]
        return (
            copy.deepcopy(self.auction),
            self.bids.snapshot(),
            self.teams.snapshot(team_ids),
            list(self.pending_events),
            set(self.touched_teams),
        )

    def restore(self, saved: SessionCheckpoint) -> None:
        auction, bids, teams, events, touched = saved
        self.auction = auction
        self.bids = bids
        self.teams.restore(teams)
        self.pending_events = events
        self.touched_teams = touched

    def drain_events(self) -> List[Event]:
        events, self.pending_events = self.pending_events, []
        return events

    def drain_touched_teams(self) -> List[Team]:
        teams = [self.teams.get(tid) for tid in sorted(self.touched_teams)]
        self.touched_teams.clear()
        return teams

    # =========================================================================
    # Internal transitions
    # =========================================================================

    def _emit(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        self.pending_events.append(Event(event_type, self.auction_id, payload))

    def _player_payload(self, player_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if player_id is None:
            return None
        player = self.players.get(player_id)
        if player is None:
            return {"player_id": player_id}
        return player.summary()

    def _pause(self, user_id: Optional[str]) -> None:
        auction = self.auction
        auction.status = AuctionStatus.PAUSED
        auction.timer.halt()
        auction.log("auction_paused", user_id)
        logger.info(f"Auction {auction.name} paused ({auction.timer.remaining}s left)")
        self._emit(EventType.AUCTION_PAUSED, {"remaining": auction.timer.remaining})

    def _advance(self) -> None:
        """Put up the next remaining player or complete the auction."""
        auction = self.auction
        remaining = auction.remaining_players
        if not remaining:
            self._complete()
            return

        auction.current_player = remaining[0]
        auction.current_bid = None
        auction.round_number += 1
        auction.round_resolved = False
        auction.status = AuctionStatus.ACTIVE
        auction.timer.arm(self.settings.timer_duration)

        logger.info(
            f"Round {auction.round_number}: player {auction.current_player[:8]} up "
            f"({len(remaining) - 1} more in queue)"
        )
        self._emit(EventType.CURRENT_PLAYER_CHANGED, {
            "player": self._player_payload(auction.current_player),
            "round_number": auction.round_number,
            "required_amount": self.settings.min_bid,
            "remaining": auction.timer.remaining,
        })

    def _complete(self) -> None:
        auction = self.auction
        auction.current_player = None
        auction.current_bid = None
        auction.round_resolved = True
        auction.timer.disarm()
        auction.status = AuctionStatus.COMPLETED
        auction.statistics.finalize(len(auction.unsold_players))
        auction.log("auction_completed", statistics=auction.statistics.to_dict())

        stats = auction.statistics
        logger.info(
            f"Auction {auction.name} completed: {stats.total_sold} sold, "
            f"{stats.total_unsold} unsold, revenue {stats.total_revenue}"
        )
        self._emit(EventType.AUCTION_COMPLETED, {"statistics": stats.to_dict()})

    def _sell(self, team_id: str, amount: int, leader: Optional[Bid], user_id: Optional[str]) -> None:
        auction = self.auction
        player_id = auction.current_player

        # Commit first: it re-validates the budget and is the only step that can fail.
        self.teams.commit(team_id, player_id, amount)
        self.touched_teams.add(team_id)

        self.bids.close_round(player_id, sold=True)
        auction.sold_players.append(SoldPlayer(
            player_id=player_id,
            team_id=team_id,
            amount=amount,
            bid_id=leader.bid_id if leader else None,
        ))
        auction.statistics.record_sale(player_id, amount)
        auction.round_resolved = True
        auction.current_player = None
        auction.current_bid = None
        auction.timer.disarm()
        auction.log("player_sold", user_id, player_id=player_id, team_id=team_id,
                    amount=amount, forced=leader is None)

        team = self.teams.get(team_id)
        logger.info(f"Player {player_id[:8]} sold to {team.name} for {amount}")
        self._emit(EventType.PLAYER_SOLD, {
            "player": self._player_payload(player_id),
            "team": team.summary(),
            "amount": amount,
        })

        if self.settings.auto_pause_on_sold:
            self._pause(user_id)
        else:
            self._advance()

    def _mark_unsold(self, user_id: Optional[str]) -> None:
        auction = self.auction
        player_id = auction.current_player

        self.bids.close_round(player_id, sold=False)
        auction.unsold_players.append(player_id)
        auction.statistics.total_unsold = len(auction.unsold_players)
        auction.round_resolved = True
        auction.current_player = None
        auction.current_bid = None
        auction.timer.disarm()
        auction.log("player_unsold", user_id, player_id=player_id)

        logger.info(f"Player {player_id[:8]} unsold")
        self._emit(EventType.PLAYER_UNSOLD, {"player": self._player_payload(player_id)})

        if (
            self.settings.allow_unsold_reauction
            and self.settings.unsold_requeue == UnsoldRequeue.END_OF_POOL
            and auction.reauction_counts.get(player_id, 0) < self.settings.max_reauctions
        ):
            self._requeue(player_id, user_id)

        # A paused auction stays paused; resume() puts up the next player.
        if auction.status == AuctionStatus.ACTIVE:
            self._advance()

    def _requeue(self, player_id: str, user_id: Optional[str]) -> None:
        auction = self.auction
        auction.unsold_players.remove(player_id)
        auction.players.remove(player_id)
        auction.players.append(player_id)
        auction.reauction_counts[player_id] = auction.reauction_counts.get(player_id, 0) + 1
        auction.statistics.total_unsold = len(auction.unsold_players)
        auction.log("player_requeued", user_id, player_id=player_id,
                    attempt=auction.reauction_counts[player_id])
        logger.info(f"Player {player_id[:8]} re-queued at end of pool")

    def _on_expired(self) -> None:
        auction = self.auction
        auction.timer.disarm()
        auction.log("timer_expired", round_number=auction.round_number)

        if self.settings.expiry_action == ExpiryAction.HOLD:
            logger.info(f"Round {auction.round_number} expired, waiting for auctioneer")
            return

        leader = self.bids.leading(auction.current_player)
        if leader is None:
            self._mark_unsold(None)
            return

        try:
            self._sell(leader.team_id, leader.amount, leader, None)
        except (BudgetExceeded, RosterFull) as e:
            logger.warning(
                f"Leading bid {leader.bid_id[:8]} could not be committed on expiry: {e}"
            )
            self._mark_unsold(None)
