"""
CricAuction Auction Module.

This module provides the live auction session:
- Auction records, settings, timer and statistics
- Pool ordering strategies
- The session state machine (start, bid, sell, unsold, skip, expire)
"""

from cricauction.core.auction.models import (
    Auction,
    AuctionSettings,
    AuctionStatistics,
    AuctionStatus,
    AuctionTimer,
    ExpiryAction,
    LogEntry,
    PlayerOrder,
    PlayerOrderSettings,
    RoundDecision,
    SoldPlayer,
    UnsoldRequeue,
)

from cricauction.core.auction.ordering import sort_pool

from cricauction.core.auction.session import AuctionSession

__all__ = [
    # Models
    "Auction",
    "AuctionSettings",
    "AuctionStatistics",
    "AuctionStatus",
    "AuctionTimer",
    "ExpiryAction",
    "LogEntry",
    "PlayerOrder",
    "PlayerOrderSettings",
    "RoundDecision",
    "SoldPlayer",
    "UnsoldRequeue",
    # Ordering
    "sort_pool",
    # Session
    "AuctionSession",
]
