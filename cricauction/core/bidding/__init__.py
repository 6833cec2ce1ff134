"""
CricAuction Bidding Module.

This module provides:
- Bid records
- The per-auction bid ledger (leader tracking)
- Bid amount and round checks
"""

from cricauction.core.bidding.bid import Bid
from cricauction.core.bidding.ledger import BidLedger
from cricauction.core.bidding.protocol import (
    check_amount,
    check_round_open,
    required_amount,
)

__all__ = [
    "Bid",
    "BidLedger",
    "check_amount",
    "check_round_open",
    "required_amount",
]
