"""
Tests for the auction session state machine.

Tests cover:
1. Start and pool ordering
2. Bid acceptance and the increment rules
3. Sale, unsold, skip and re-queue
4. Timer ticks, expiry and idempotence
5. Completion, cancellation and corrections
"""

import pytest

from cricauction.core.auction import (
    AuctionSettings,
    AuctionStatus,
    ExpiryAction,
    PlayerOrder,
    PlayerOrderSettings,
    RoundDecision,
    UnsoldRequeue,
)
from cricauction.core.errors import (
    BidTooLow,
    BudgetExceeded,
    EmptyPool,
    Forbidden,
    InsufficientBudget,
    InvalidTransition,
    NoActiveBid,
    NotFound,
    PlayerNotCurrent,
    RosterFull,
    ValidationError,
)
from cricauction.core.policy import Actor


@pytest.fixture
def live(world, auctioneer):
    """Started session with events drained."""
    world.session.start(auctioneer)
    world.session.drain_events()
    return world


def started(world, auctioneer):
    world.session.start(auctioneer)
    world.session.drain_events()
    return world


# =============================================================================
# Start
# =============================================================================


class TestStart:
    """Tests for starting an auction."""

    def test_start_activates_first_player(self, world, auctioneer):
        """Start moves to active, puts up the first player and arms the timer."""
        world.session.start(auctioneer)

        assert world.auction.status == AuctionStatus.ACTIVE
        assert world.auction.current_player == world.player_ids[0]
        assert world.auction.round_number == 1
        assert world.auction.timer.is_active
        assert world.auction.timer.remaining == 30
        assert world.event_names() == ["auction_started", "current_player_changed"]

    def test_start_twice_rejected(self, live, auctioneer):
        with pytest.raises(InvalidTransition):
            live.session.start(auctioneer)

    def test_start_cancelled_rejected(self, world, auctioneer):
        world.session.cancel(auctioneer)
        with pytest.raises(InvalidTransition):
            world.session.start(auctioneer)

    def test_empty_pool(self, make_world, auctioneer):
        world = make_world(player_count=0)
        with pytest.raises(EmptyPool):
            world.session.start(auctioneer)
        assert world.auction.status == AuctionStatus.PENDING

    def test_inactive_players_excluded(self, world, auctioneer):
        world.players[world.player_ids[0]].is_active = False
        world.session.start(auctioneer)

        assert world.auction.current_player == world.player_ids[1]
        assert world.player_ids[0] not in world.auction.players

    def test_captain_cannot_start(self, world, captain_a):
        with pytest.raises(Forbidden):
            world.session.start(captain_a)
        assert world.auction.status == AuctionStatus.PENDING

    def test_base_price_ordering(self, make_world, auctioneer):
        """Highest base price goes first."""
        settings = AuctionSettings(
            player_order=PlayerOrderSettings(type=PlayerOrder.BASE_PRICE)
        )
        world = make_world(settings=settings)
        world.session.start(auctioneer)

        assert world.auction.current_player == world.player_ids[2]


# =============================================================================
# Bidding
# =============================================================================


class TestBidding:
    """Tests for bid acceptance."""

    def test_increment_scenario(self, live, captain_a, captain_b):
        """40 accepted, 50 rejected (required 60), 60 accepted and leads."""
        s = live.session
        player = live.auction.current_player

        bid_a = s.place_bid(captain_a, player, live.team_a.team_id, 40)
        assert s.leading_bid() is bid_a

        with pytest.raises(BidTooLow) as exc:
            s.place_bid(captain_b, player, live.team_b.team_id, 50)
        assert exc.value.required_amount == 60

        bid_c = s.place_bid(captain_b, player, live.team_b.team_id, 60)
        assert s.leading_bid() is bid_c
        assert not bid_a.is_winning
        assert s.bids.winning_count(player) == 1
        assert live.auction.current_bid == bid_c.bid_id
        assert live.auction.bid_history == [bid_a.bid_id, bid_c.bid_id]

    def test_low_bid_never_mutates(self, live, captain_a, captain_b):
        s = live.session
        player = live.auction.current_player
        first = s.place_bid(captain_a, player, live.team_a.team_id, 40)
        s.drain_events()

        with pytest.raises(BidTooLow):
            s.place_bid(captain_b, player, live.team_b.team_id, 45)

        assert live.auction.current_bid == first.bid_id
        assert len(live.auction.bid_history) == 1
        assert len(s.bids) == 1
        assert s.drain_events() == []

    def test_first_bid_below_min(self, live, captain_a):
        with pytest.raises(BidTooLow) as exc:
            live.session.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 30)
        assert exc.value.required_amount == 40

    def test_bid_above_max(self, make_world, auctioneer, captain_a):
        world = started(make_world(settings=AuctionSettings(max_bid_amount=100)), auctioneer)
        with pytest.raises(ValidationError) as exc:
            world.session.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 200)
        assert "amount" in exc.value.errors

    def test_bid_for_other_player(self, live, captain_a):
        with pytest.raises(PlayerNotCurrent):
            live.session.place_bid(captain_a, live.player_ids[1], live.team_a.team_id, 40)

    def test_bid_while_paused(self, live, auctioneer, captain_a):
        live.session.pause(auctioneer)
        with pytest.raises(PlayerNotCurrent):
            live.session.place_bid(captain_a, live.player_ids[0], live.team_a.team_id, 40)

    def test_bid_for_foreign_team(self, live, captain_a):
        with pytest.raises(Forbidden):
            live.session.place_bid(captain_a, live.auction.current_player, live.team_b.team_id, 40)

    def test_viewer_cannot_bid(self, live):
        with pytest.raises(Forbidden):
            live.session.place_bid(
                Actor.viewer(), live.auction.current_player, live.team_a.team_id, 40
            )

    def test_auctioneer_bids_for_any_team(self, live, auctioneer):
        bid = live.session.place_bid(
            auctioneer, live.auction.current_player, live.team_b.team_id, 40
        )
        assert bid.team_id == live.team_b.team_id

    def test_unknown_team(self, live, captain_a):
        with pytest.raises(NotFound):
            live.session.place_bid(captain_a, live.auction.current_player, "no-such-team", 40)

    def test_insufficient_budget(self, make_world, auctioneer, captain_a):
        world = started(make_world(tokens=30), auctioneer)
        with pytest.raises(InsufficientBudget):
            world.session.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 40)

    def test_roster_full(self, make_world, auctioneer, captain_a):
        settings = AuctionSettings(auto_pause_on_sold=False)
        world = started(make_world(settings=settings, max_players=1), auctioneer)
        s = world.session

        s.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 40)
        s.sell_player(auctioneer, world.team_a.team_id, 40)

        with pytest.raises(RosterFull):
            s.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 40)

    def test_bid_resets_timer(self, live, captain_a):
        for _ in range(5):
            live.session.tick()
        assert live.auction.timer.remaining == 25

        live.session.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 40)
        assert live.auction.timer.remaining == 30

    def test_timer_reset_disabled(self, make_world, auctioneer, captain_a):
        world = started(make_world(settings=AuctionSettings(reset_timer_on_bid=False)), auctioneer)
        for _ in range(5):
            world.session.tick()

        world.session.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 40)
        assert world.auction.timer.remaining == 25

    def test_custom_increment_tiers(self, make_world, auctioneer, captain_a, captain_b):
        settings = AuctionSettings(
            min_bid_increment=100,
            increment_tiers=[(100, 10), (500, 50)],
        )
        world = started(make_world(settings=settings), auctioneer)
        s = world.session
        player = world.auction.current_player

        s.place_bid(captain_a, player, world.team_a.team_id, 40)
        assert s.next_required_amount() == 50

        s.place_bid(captain_b, player, world.team_b.team_id, 100)
        assert s.next_required_amount() == 150

        s.place_bid(captain_a, player, world.team_a.team_id, 500)
        assert s.next_required_amount() == 600

    def test_bid_update_event(self, live, captain_a):
        live.session.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 40)
        events = live.session.drain_events()

        assert [e.name for e in events] == ["bid_update"]
        assert events[0].payload["bid"]["amount"] == 40
        assert events[0].payload["required_amount"] == 60


# =============================================================================
# Sale
# =============================================================================


class TestSale:
    """Tests for confirming sales."""

    def test_sale_scenario(self, live, auctioneer, captain_a, captain_b):
        """Sale of the leading 60 debits team B and records the player as sold."""
        s = live.session
        player = live.auction.current_player
        s.place_bid(captain_a, player, live.team_a.team_id, 40)
        winning = s.place_bid(captain_b, player, live.team_b.team_id, 60)
        s.drain_events()

        s.sell_player(auctioneer, live.team_b.team_id, 60)

        assert live.team_b.total_spent == 60
        assert live.team_b.has_player(player)
        assert player in live.auction.sold_ids
        assert player not in live.auction.remaining_players
        assert live.auction.statistics.total_sold == 1
        assert live.auction.statistics.total_revenue == 60
        assert winning.is_sold
        assert live.ledger.verify(live.team_b.team_id)

        # auto_pause_on_sold
        assert live.auction.status == AuctionStatus.PAUSED
        assert live.auction.current_player is None
        assert live.event_names() == ["player_sold_update", "auction_paused"]

    def test_resume_after_sale_puts_up_next(self, live, auctioneer, captain_a):
        s = live.session
        s.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 40)
        s.sell_player(auctioneer, live.team_a.team_id, 40)

        s.resume(auctioneer)

        assert live.auction.status == AuctionStatus.ACTIVE
        assert live.auction.current_player == live.player_ids[1]
        assert live.auction.round_number == 2

    def test_sale_without_auto_pause_advances(self, make_world, auctioneer, captain_a):
        world = started(make_world(settings=AuctionSettings(auto_pause_on_sold=False)), auctioneer)
        world.session.place_bid(captain_a, world.player_ids[0], world.team_a.team_id, 40)
        world.session.sell_player(auctioneer, world.team_a.team_id, 40)

        assert world.auction.status == AuctionStatus.ACTIVE
        assert world.auction.current_player == world.player_ids[1]

    def test_sale_must_match_leading_bid(self, live, auctioneer, captain_a):
        live.session.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 40)

        with pytest.raises(ValidationError) as exc:
            live.session.sell_player(auctioneer, live.team_b.team_id, 40)
        assert "team_id" in exc.value.errors

        with pytest.raises(ValidationError) as exc:
            live.session.sell_player(auctioneer, live.team_a.team_id, 80)
        assert "amount" in exc.value.errors

    def test_sale_without_bid(self, live, auctioneer):
        with pytest.raises(NoActiveBid):
            live.session.sell_player(auctioneer, live.team_a.team_id, 40)

    def test_forced_sale(self, make_world, auctioneer):
        world = started(make_world(settings=AuctionSettings(allow_forced_sale=True)), auctioneer)
        player = world.auction.current_player

        world.session.sell_player(auctioneer, world.team_a.team_id, 100)

        sale = world.auction.sale_for(player)
        assert sale.amount == 100
        assert sale.bid_id is None
        assert world.team_a.total_spent == 100

    def test_forced_sale_below_min(self, make_world, auctioneer):
        world = started(make_world(settings=AuctionSettings(allow_forced_sale=True)), auctioneer)
        with pytest.raises(ValidationError):
            world.session.sell_player(auctioneer, world.team_a.team_id, 10)

    def test_budget_rechecked_at_commit(self, make_world, auctioneer, captain_a):
        """A sale fails with BudgetExceeded if the budget shrank after the bid."""
        world = started(make_world(tokens=100), auctioneer)
        player = world.auction.current_player
        world.session.place_bid(captain_a, player, world.team_a.team_id, 80)
        world.ledger.commit(world.team_a.team_id, "elsewhere", 50)

        with pytest.raises(BudgetExceeded):
            world.session.sell_player(auctioneer, world.team_a.team_id, 80)

        assert world.auction.current_player == player
        assert not world.auction.round_resolved
        assert world.auction.sold_players == []
        assert world.team_a.available_budget == 50

    def test_resolve_sell(self, live, auctioneer, captain_a):
        live.session.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 40)
        live.session.resolve(auctioneer, RoundDecision.SELL)
        assert live.auction.statistics.total_sold == 1

    def test_resolve_sell_without_bid(self, live, auctioneer):
        with pytest.raises(NoActiveBid):
            live.session.resolve(auctioneer, RoundDecision.SELL)


# =============================================================================
# Unsold, Skip, Re-queue
# =============================================================================


class TestUnsoldAndSkip:
    """Tests for rounds that end without a sale."""

    def test_mark_unsold_advances(self, live, auctioneer):
        first = live.auction.current_player
        live.session.mark_unsold(auctioneer)

        assert first in live.auction.unsold_players
        assert live.auction.current_player == live.player_ids[1]
        assert live.event_names() == ["player_unsold_update", "current_player_changed"]

    def test_mark_unsold_with_bid_rejected(self, live, auctioneer, captain_a):
        live.session.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 40)
        with pytest.raises(InvalidTransition):
            live.session.mark_unsold(auctioneer)

    def test_mark_unsold_while_paused_stays_paused(self, live, auctioneer):
        first = live.auction.current_player
        live.session.pause(auctioneer)
        live.session.mark_unsold(auctioneer)

        assert first in live.auction.unsold_players
        assert live.auction.status == AuctionStatus.PAUSED
        assert live.auction.current_player is None

        live.session.resume(auctioneer)
        assert live.auction.current_player == live.player_ids[1]

    def test_skip_unresolved_round(self, live, auctioneer, captain_a):
        first = live.auction.current_player
        bid = live.session.place_bid(captain_a, first, live.team_a.team_id, 40)
        live.session.drain_events()

        live.session.next_player(auctioneer)

        assert first in live.auction.skipped_players
        assert not bid.is_winning
        assert live.auction.current_player == live.player_ids[1]
        assert live.event_names() == ["player_skipped", "current_player_changed"]
        assert live.team_a.total_spent == 0

    def test_next_player_on_pending(self, world, auctioneer):
        with pytest.raises(InvalidTransition):
            world.session.next_player(auctioneer)

    def test_partitions_stay_disjoint(self, make_world, auctioneer, captain_a):
        settings = AuctionSettings(auto_pause_on_sold=False)
        world = started(make_world(settings=settings, player_count=4), auctioneer)
        s = world.session

        s.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 40)
        s.sell_player(auctioneer, world.team_a.team_id, 40)
        s.mark_unsold(auctioneer)
        s.next_player(auctioneer)

        auction = world.auction
        groups = [set(auction.sold_ids), set(auction.unsold_players),
                  set(auction.skipped_players), set(auction.remaining_players)]
        assert sum(len(g) for g in groups) == 4
        assert set().union(*groups) == set(world.player_ids)
        assert auction.current_player in auction.remaining_players

    def test_manual_requeue(self, live, auctioneer):
        first = live.auction.current_player
        live.session.mark_unsold(auctioneer)

        live.session.requeue_unsold(auctioneer, first)

        assert first not in live.auction.unsold_players
        assert live.auction.players[-1] == first
        assert first in live.auction.remaining_players
        assert live.auction.reauction_counts[first] == 1

    def test_requeue_disabled(self, make_world, auctioneer):
        settings = AuctionSettings(allow_unsold_reauction=False)
        world = started(make_world(settings=settings), auctioneer)
        first = world.auction.current_player
        world.session.mark_unsold(auctioneer)

        with pytest.raises(InvalidTransition):
            world.session.requeue_unsold(auctioneer, first)

    def test_requeue_unknown_player(self, live, auctioneer):
        with pytest.raises(NotFound):
            live.session.requeue_unsold(auctioneer, live.player_ids[2])

    def test_end_of_pool_requeue(self, make_world, auctioneer):
        """Unsold players return once at the end of the pool, then stay unsold."""
        settings = AuctionSettings(unsold_requeue=UnsoldRequeue.END_OF_POOL, max_reauctions=1)
        world = started(make_world(settings=settings, player_count=2), auctioneer)
        p0, p1 = world.player_ids
        s = world.session

        s.mark_unsold(auctioneer)
        assert world.auction.players == [p1, p0]
        assert world.auction.current_player == p1

        s.mark_unsold(auctioneer)
        assert world.auction.current_player == p0

        s.mark_unsold(auctioneer)
        assert world.auction.current_player == p1

        s.mark_unsold(auctioneer)
        assert world.auction.status == AuctionStatus.COMPLETED
        assert sorted(world.auction.unsold_players) == sorted([p0, p1])
        assert world.auction.reauction_counts == {p0: 1, p1: 1}


# =============================================================================
# Timer
# =============================================================================


class TestTimer:
    """Tests for ticks and expiry."""

    def test_tick_counts_down(self, live):
        assert live.session.tick()
        events = live.session.drain_events()

        assert live.auction.timer.remaining == 29
        assert events[0].name == "timer_tick"
        assert events[0].payload["remaining"] == 29

    def test_expiry_without_bid_marks_unsold(self, live):
        first = live.auction.current_player
        for _ in range(30):
            live.session.tick()

        assert first in live.auction.unsold_players
        assert live.auction.current_player == live.player_ids[1]

    def test_expiry_with_bid_sells(self, live, captain_a):
        first = live.auction.current_player
        live.session.place_bid(captain_a, first, live.team_a.team_id, 40)
        for _ in range(30):
            live.session.tick()

        assert live.auction.sale_for(first).team_id == live.team_a.team_id
        assert live.auction.status == AuctionStatus.PAUSED

    def test_duplicate_expiry_is_noop(self, live, captain_a):
        live.session.place_bid(captain_a, live.auction.current_player, live.team_a.team_id, 40)
        assert live.session.expire(round_number=1)
        live.session.drain_events()
        before = live.auction.to_dict()

        assert not live.session.expire(round_number=1)
        assert not live.session.expire(round_number=2)
        assert live.session.drain_events() == []
        assert live.auction.to_dict() == before
        assert len(live.auction.sold_players) == 1

    def test_stale_round_expiry_ignored(self, make_world, auctioneer):
        world = started(make_world(settings=AuctionSettings(auto_pause_on_sold=False)), auctioneer)
        assert world.session.expire(round_number=1)
        assert world.auction.round_number == 2
        world.session.drain_events()

        assert not world.session.expire(round_number=1)
        assert world.auction.current_player == world.player_ids[1]
        assert world.session.drain_events() == []

    def test_repeated_expiry_spares_next_player(self, make_world, auctioneer, captain_a):
        """Without auto-pause, a repeated signal for a sold round leaves the next round alone."""
        world = started(make_world(settings=AuctionSettings(auto_pause_on_sold=False)), auctioneer)
        first, second = world.player_ids[0], world.player_ids[1]
        world.session.place_bid(captain_a, first, world.team_a.team_id, 40)

        assert world.session.expire(round_number=1)
        assert world.auction.sale_for(first) is not None
        assert world.auction.current_player == second
        world.session.drain_events()

        assert not world.session.expire(round_number=1)
        assert world.auction.current_player == second
        assert second not in world.auction.unsold_players
        assert world.auction.timer.is_active
        assert world.session.drain_events() == []

    def test_pause_keeps_remaining_seconds(self, live, auctioneer):
        for _ in range(5):
            live.session.tick()
        live.session.pause(auctioneer)

        assert not live.auction.timer.is_active
        assert not live.session.tick()
        assert live.auction.timer.remaining == 25

        live.session.resume(auctioneer)
        assert live.auction.timer.is_active
        assert live.auction.timer.remaining == 25
        assert live.auction.current_player == live.player_ids[0]

    def test_hold_expiry_waits_for_auctioneer(self, make_world, auctioneer, captain_a):
        world = started(make_world(settings=AuctionSettings(expiry_action=ExpiryAction.HOLD)), auctioneer)
        player = world.auction.current_player
        world.session.place_bid(captain_a, player, world.team_a.team_id, 40)
        for _ in range(30):
            world.session.tick()

        assert world.auction.current_player == player
        assert not world.auction.round_resolved
        assert not world.auction.timer.is_active
        assert not world.session.tick()

        world.session.resolve(auctioneer, RoundDecision.SELL)
        assert world.auction.sale_for(player) is not None

    def test_expiry_commit_failure_marks_unsold(self, make_world, auctioneer, captain_a):
        world = started(make_world(tokens=100), auctioneer)
        player = world.auction.current_player
        bid = world.session.place_bid(captain_a, player, world.team_a.team_id, 80)
        world.ledger.commit(world.team_a.team_id, "elsewhere", 50)

        assert world.session.expire(world.auction.round_number)

        assert player in world.auction.unsold_players
        assert not bid.is_winning
        assert world.team_a.total_spent == 50


# =============================================================================
# Completion, Cancellation, Correction
# =============================================================================


class TestCompletion:
    """Tests for the end of an auction."""

    def test_pool_exhaustion_completes(self, make_world, auctioneer, captain_a):
        settings = AuctionSettings(auto_pause_on_sold=False)
        world = started(make_world(settings=settings, player_count=2), auctioneer)
        s = world.session

        s.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 40)
        s.sell_player(auctioneer, world.team_a.team_id, 40)
        s.mark_unsold(auctioneer)

        stats = world.auction.statistics
        assert world.auction.status == AuctionStatus.COMPLETED
        assert world.auction.current_player is None
        assert stats.total_sold == 1
        assert stats.total_unsold == 1
        assert stats.avg_sale_price == 40.0
        assert world.event_names()[-1] == "auction_completed"

    def test_no_sales_average_zero(self, make_world, auctioneer):
        world = started(make_world(player_count=1), auctioneer)
        world.session.mark_unsold(auctioneer)

        assert world.auction.status == AuctionStatus.COMPLETED
        assert world.auction.statistics.avg_sale_price == 0.0

    def test_next_player_after_last_sale_completes(self, make_world, auctioneer, captain_a):
        world = started(make_world(player_count=1), auctioneer)
        world.session.place_bid(captain_a, world.auction.current_player, world.team_a.team_id, 40)
        world.session.sell_player(auctioneer, world.team_a.team_id, 40)
        assert world.auction.status == AuctionStatus.PAUSED

        world.session.next_player(auctioneer)
        assert world.auction.status == AuctionStatus.COMPLETED

    def test_cancel(self, live, auctioneer, captain_a):
        live.session.cancel(auctioneer)

        assert live.auction.status == AuctionStatus.CANCELLED
        assert not live.auction.timer.is_active
        assert live.event_names() == ["auction_cancelled"]

        with pytest.raises(PlayerNotCurrent):
            live.session.place_bid(captain_a, live.player_ids[0], live.team_a.team_id, 40)
        with pytest.raises(InvalidTransition):
            live.session.cancel(auctioneer)

    def test_captain_cannot_cancel(self, live, captain_a):
        with pytest.raises(Forbidden):
            live.session.cancel(captain_a)

    def test_correct_purchase_refunds(self, live, admin, auctioneer, captain_b):
        player = live.auction.current_player
        live.session.place_bid(captain_b, player, live.team_b.team_id, 60)
        live.session.sell_player(auctioneer, live.team_b.team_id, 60)

        live.session.correct_purchase(admin, player)

        assert live.team_b.total_spent == 0
        assert not live.team_b.has_player(player)
        assert player in live.auction.unsold_players
        assert live.auction.statistics.total_sold == 0
        assert live.auction.statistics.total_revenue == 0
        assert live.ledger.verify(live.team_b.team_id)

    def test_correction_is_admin_only(self, live, auctioneer, captain_a):
        player = live.auction.current_player
        live.session.place_bid(captain_a, player, live.team_a.team_id, 40)
        live.session.sell_player(auctioneer, live.team_a.team_id, 40)

        with pytest.raises(Forbidden):
            live.session.correct_purchase(auctioneer, player)

    def test_correct_unknown_sale(self, live, admin):
        with pytest.raises(NotFound):
            live.session.correct_purchase(admin, live.player_ids[1])


class TestInvariants:
    """Budget and winner invariants over a longer run."""

    def test_long_run(self, make_world, auctioneer, captain_a, captain_b):
        settings = AuctionSettings(auto_pause_on_sold=False)
        world = started(make_world(settings=settings, player_count=6, tokens=300), auctioneer)
        s = world.session
        teams = [(captain_a, world.team_a), (captain_b, world.team_b)]

        while world.auction.status == AuctionStatus.ACTIVE:
            player = world.auction.current_player
            for round_bid in range(4):
                actor, team = teams[round_bid % 2]
                required = s.next_required_amount()
                try:
                    s.place_bid(actor, player, team.team_id, required)
                except (InsufficientBudget, RosterFull):
                    pass
                assert s.bids.winning_count(player) <= 1
            s.expire(world.auction.round_number)

            for _, team in teams:
                assert world.ledger.verify(team.team_id)
                assert team.available_budget >= 0

        assert world.auction.status == AuctionStatus.COMPLETED
