"""
Bid Ledger - Append-only record of bids per (auction, player).

The ledger answers one question on the hot path: who is leading the
current round? It keeps every accepted bid and guarantees that at most
one bid per player carries `is_winning`, flipping it in a single step
when a higher bid is recorded.
"""

import copy
from typing import Dict, List, Optional, Set

from cricauction.core.bidding.bid import Bid
from cricauction.utils.logger import get_logger

logger = get_logger("bids")


class BidLedger:
    """
    Bids for one auction.

    Attributes:
        auction_id: Owning auction
        bids: bid_id -> Bid, in acceptance order
        by_player: player_id -> bid ids in acceptance order
    """

    def __init__(self, auction_id: str, bids: Optional[List[Bid]] = None):
        self.auction_id = auction_id
        self.bids: Dict[str, Bid] = {}
        self.by_player: Dict[str, List[str]] = {}
        self._dirty: Set[str] = set()

        for bid in bids or []:
            self.bids[bid.bid_id] = bid
            self.by_player.setdefault(bid.player_id, []).append(bid.bid_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, bid_id: Optional[str]) -> Optional[Bid]:
        if bid_id is None:
            return None
        return self.bids.get(bid_id)

    def leading(self, player_id: str) -> Optional[Bid]:
        """The winning bid for a player, if any."""
        for bid_id in reversed(self.by_player.get(player_id, [])):
            bid = self.bids[bid_id]
            if bid.is_winning:
                return bid
        return None

    def history(self, player_id: str) -> List[Bid]:
        return [self.bids[bid_id] for bid_id in self.by_player.get(player_id, [])]

    def winning_count(self, player_id: str) -> int:
        return sum(1 for bid in self.history(player_id) if bid.is_winning)

    def __len__(self) -> int:
        return len(self.bids)

    # =========================================================================
    # Mutations
    # =========================================================================

    def record(self, bid: Bid) -> Optional[Bid]:
        """
        Append an accepted bid and make it the leader.

        Returns:
            The previous leader, now flagged not winning
        """
        previous = self.leading(bid.player_id)
        if previous is not None:
            previous.is_winning = False
            self._dirty.add(previous.bid_id)

        bid.is_winning = True
        self.bids[bid.bid_id] = bid
        self.by_player.setdefault(bid.player_id, []).append(bid.bid_id)
        self._dirty.add(bid.bid_id)

        logger.debug(
            f"Bid {bid.amount} from team {bid.team_id[:8]} leads player {bid.player_id[:8]}"
        )
        return previous

    def close_round(self, player_id: str, sold: bool) -> Optional[Bid]:
        """
        Close the bidding for a player.

        A sold round keeps its leader winning and marks it sold; an
        unsold or skipped round clears the winning flag.

        Returns:
            The leader at close time, if any
        """
        leader = self.leading(player_id)
        if leader is None:
            return None
        if sold:
            leader.is_sold = True
        else:
            leader.is_winning = False
        self._dirty.add(leader.bid_id)
        return leader

    def void_sale(self, bid_id: Optional[str]) -> Optional[Bid]:
        """Clear the sold and winning flags of a corrected sale."""
        bid = self.get(bid_id)
        if bid is None:
            return None
        bid.is_sold = False
        bid.is_winning = False
        self._dirty.add(bid.bid_id)
        return bid

    # =========================================================================
    # Persistence support
    # =========================================================================

    def drain_dirty(self) -> List[Bid]:
        """Bids changed since the last drain, in acceptance order."""
        changed = [bid for bid_id, bid in self.bids.items() if bid_id in self._dirty]
        self._dirty.clear()
        return changed

    def snapshot(self) -> "BidLedger":
        return copy.deepcopy(self)
