"""
Tests for Bid records, the BidLedger and the bid amount rules.

Tests cover:
1. Leader tracking (at most one winning bid per player)
2. Round close for sold and unsold players
3. Dirty tracking for persistence
4. Required amount and increment tiers
"""

import pytest

from cricauction.core.auction import Auction, AuctionSettings, AuctionStatus
from cricauction.core.bidding import (
    Bid,
    BidLedger,
    check_amount,
    check_round_open,
    required_amount,
)
from cricauction.core.errors import BidTooLow, PlayerNotCurrent, ValidationError


def make_bid(amount, player_id="p1", team_id="t1"):
    return Bid(
        auction_id="a1",
        player_id=player_id,
        team_id=team_id,
        bidder_id="u1",
        amount=amount,
    )


class TestBidLedger:
    """Tests for leader tracking."""

    def test_first_bid_leads(self):
        ledger = BidLedger("a1")
        bid = make_bid(40)

        previous = ledger.record(bid)

        assert previous is None
        assert bid.is_winning
        assert ledger.leading("p1") is bid

    def test_higher_bid_flips_winner(self):
        """Recording a new bid un-flags the old leader."""
        ledger = BidLedger("a1")
        first = make_bid(40)
        second = make_bid(60, team_id="t2")
        ledger.record(first)

        previous = ledger.record(second)

        assert previous is first
        assert not first.is_winning
        assert second.is_winning
        assert ledger.winning_count("p1") == 1

    def test_players_are_independent(self):
        ledger = BidLedger("a1")
        ledger.record(make_bid(40, player_id="p1"))
        ledger.record(make_bid(40, player_id="p2"))

        assert ledger.winning_count("p1") == 1
        assert ledger.winning_count("p2") == 1
        assert len(ledger) == 2

    def test_history_in_acceptance_order(self):
        ledger = BidLedger("a1")
        bids = [make_bid(amount) for amount in (40, 60, 80)]
        for bid in bids:
            ledger.record(bid)

        assert ledger.history("p1") == bids
        assert ledger.history("unknown") == []

    def test_close_round_sold(self):
        ledger = BidLedger("a1")
        bid = make_bid(40)
        ledger.record(bid)

        leader = ledger.close_round("p1", sold=True)

        assert leader is bid
        assert bid.is_sold
        assert bid.is_winning

    def test_close_round_unsold(self):
        ledger = BidLedger("a1")
        bid = make_bid(40)
        ledger.record(bid)

        ledger.close_round("p1", sold=False)

        assert not bid.is_winning
        assert ledger.leading("p1") is None

    def test_close_round_without_bids(self):
        assert BidLedger("a1").close_round("p1", sold=True) is None

    def test_void_sale(self):
        ledger = BidLedger("a1")
        bid = make_bid(40)
        ledger.record(bid)
        ledger.close_round("p1", sold=True)
        ledger.drain_dirty()

        ledger.void_sale(bid.bid_id)

        assert not bid.is_sold
        assert not bid.is_winning
        assert ledger.drain_dirty() == [bid]
        assert ledger.void_sale(None) is None

    def test_drain_dirty(self):
        """Both the new leader and the displaced bid are reported once."""
        ledger = BidLedger("a1")
        first = make_bid(40)
        ledger.record(first)
        ledger.drain_dirty()

        second = make_bid(60)
        ledger.record(second)

        assert ledger.drain_dirty() == [first, second]
        assert ledger.drain_dirty() == []

    def test_snapshot_is_independent(self):
        ledger = BidLedger("a1")
        ledger.record(make_bid(40))
        saved = ledger.snapshot()

        ledger.record(make_bid(60))

        assert len(saved) == 1
        assert saved.leading("p1").amount == 40

    def test_rebuild_from_stored_bids(self):
        first = make_bid(40)
        second = make_bid(60)
        second.is_winning = True

        ledger = BidLedger("a1", [first, second])

        assert ledger.leading("p1") is second
        assert ledger.drain_dirty() == []

    def test_bid_dict_roundtrip(self):
        bid = make_bid(80)
        bid.notes = "paddle up"

        restored = Bid.from_dict(bid.to_dict())

        assert restored == bid


class TestBidRules:
    """Tests for required amounts and bid checks."""

    def test_required_amount_without_leader(self):
        assert required_amount(AuctionSettings(min_bid=40), None) == 40

    def test_required_amount_with_leader(self):
        settings = AuctionSettings(min_bid=40, min_bid_increment=20)
        assert required_amount(settings, make_bid(40)) == 60

    def test_increment_tiers(self):
        settings = AuctionSettings(
            min_bid_increment=100,
            increment_tiers=[(500, 50), (100, 10)],
        )

        assert settings.increment_for(40) == 10
        assert settings.increment_for(100) == 50
        assert settings.increment_for(499) == 50
        assert settings.increment_for(500) == 100

    def test_check_amount_too_low(self):
        settings = AuctionSettings()
        with pytest.raises(BidTooLow) as exc:
            check_amount(settings, make_bid(40), 50)

        assert exc.value.required_amount == 60
        assert exc.value.to_dict()["required_amount"] == 60

    def test_check_amount_above_max(self):
        settings = AuctionSettings(max_bid_amount=100)
        with pytest.raises(ValidationError):
            check_amount(settings, None, 101)

    def test_check_amount_returns_required(self):
        assert check_amount(AuctionSettings(), make_bid(40), 75) == 60

    def test_round_open(self):
        auction = Auction("t1", "Auction", "u1", players=["p1", "p2"])
        with pytest.raises(PlayerNotCurrent):
            check_round_open(auction, "p1")

        auction.status = AuctionStatus.ACTIVE
        auction.current_player = "p1"
        check_round_open(auction, "p1")
        with pytest.raises(PlayerNotCurrent):
            check_round_open(auction, "p2")
