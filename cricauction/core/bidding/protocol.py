"""
Bid acceptance rules.

Pure checks used by AuctionSession.place_bid, in protocol order:

1. The auction is active and the player is the current player
2. The actor may bid for the team (access policy, checked by the caller)
3. amount >= required amount (min bid, or leader + increment)
4. The team can afford the amount and has roster space

The amount rules live here so they can be shown to clients (the next
required amount) without touching session state.
"""

from typing import Optional

from cricauction.core.auction.models import Auction, AuctionSettings, AuctionStatus
from cricauction.core.bidding.bid import Bid
from cricauction.core.errors import BidTooLow, PlayerNotCurrent, ValidationError


def required_amount(settings: AuctionSettings, leader: Optional[Bid]) -> int:
    """Smallest amount the next bid may offer."""
    if leader is None:
        return settings.min_bid
    return leader.amount + settings.increment_for(leader.amount)


def check_round_open(auction: Auction, player_id: str) -> None:
    """
    Raises:
        PlayerNotCurrent: auction not active, or player not up for auction
    """
    if auction.status != AuctionStatus.ACTIVE:
        raise PlayerNotCurrent(f"Auction is not active (status: {auction.status.value})")
    if auction.current_player is None or auction.current_player != player_id:
        raise PlayerNotCurrent("This player is not currently up for auction")


def check_amount(settings: AuctionSettings, leader: Optional[Bid], amount: int) -> int:
    """
    Validate a bid amount against the round's leader.

    Returns:
        The required amount the bid satisfied

    Raises:
        BidTooLow: amount below required
        ValidationError: amount above max_bid_amount
    """
    required = required_amount(settings, leader)
    if amount < required:
        raise BidTooLow(required)
    if amount > settings.max_bid_amount:
        raise ValidationError.single(
            "amount", f"Bid cannot exceed {settings.max_bid_amount}"
        )
    return required
