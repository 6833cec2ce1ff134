"""
Auction records - status, settings, timer, statistics and audit log.

These are plain data holders. All transitions go through AuctionSession.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import time

from cricauction.core.registry.players import Tournament, new_id


# =============================================================================
# Enums
# =============================================================================


class AuctionStatus(Enum):
    """Lifecycle state of an auction."""
    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (AuctionStatus.COMPLETED, AuctionStatus.CANCELLED)


class PlayerOrder(Enum):
    """How the pool is sorted when the auction starts."""
    DEFAULT = "default"          # insertion order
    RANDOM = "random"
    BASE_PRICE = "base_price"    # highest base price first
    CUSTOM = "custom"            # explicit order, unlisted players appended
    GROUP_WISE = "group_wise"    # by group order, ungrouped players last
    ALPHABETICAL = "alphabetical"


class UnsoldRequeue(Enum):
    """What happens to an unsold player when re-auction is allowed."""
    MANUAL = "manual"            # auctioneer calls requeue_unsold
    END_OF_POOL = "end_of_pool"  # moved to the end of the pool automatically


class ExpiryAction(Enum):
    """What the session does when a round's timer reaches zero."""
    AUTO_RESOLVE = "auto_resolve"  # sell to the leader, or mark unsold
    HOLD = "hold"                  # stop the timer, auctioneer decides


class RoundDecision(Enum):
    SELL = "sell"
    UNSOLD = "unsold"


# =============================================================================
# Settings
# =============================================================================


@dataclass
class PlayerOrderSettings:
    type: PlayerOrder = PlayerOrder.DEFAULT
    custom_order: List[str] = field(default_factory=list)
    group_order: List[str] = field(default_factory=list)
    seed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "custom_order": list(self.custom_order),
            "group_order": list(self.group_order),
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerOrderSettings":
        return cls(
            type=PlayerOrder(data.get("type", PlayerOrder.DEFAULT.value)),
            custom_order=list(data.get("custom_order", [])),
            group_order=list(data.get("group_order", [])),
            seed=data.get("seed"),
        )


@dataclass
class AuctionSettings:
    """Rules for one auction session."""
    min_bid: int = 40
    min_bid_increment: int = 20
    increment_tiers: List[Tuple[int, int]] = field(default_factory=list)  # (up_to, increment)
    timer_duration: int = 30
    auto_pause_on_sold: bool = True
    allow_unsold_reauction: bool = True
    unsold_requeue: UnsoldRequeue = UnsoldRequeue.MANUAL
    max_reauctions: int = 1
    max_bid_amount: int = 1_000_000
    player_order: PlayerOrderSettings = field(default_factory=PlayerOrderSettings)
    reset_timer_on_bid: bool = True
    allow_forced_sale: bool = False
    expiry_action: ExpiryAction = ExpiryAction.AUTO_RESOLVE

    def increment_for(self, leading_amount: int) -> int:
        """Increment required on top of the leading amount."""
        for up_to, increment in sorted(self.increment_tiers):
            if leading_amount < up_to:
                return increment
        return self.min_bid_increment

    @classmethod
    def from_tournament(cls, tournament: Tournament, **overrides) -> "AuctionSettings":
        """Seed auction settings from a tournament's settings."""
        ts = tournament.settings
        settings = cls(
            min_bid=ts.min_bid,
            min_bid_increment=ts.bid_increment,
            increment_tiers=list(ts.custom_increments) if ts.increment_mode == "custom" else [],
            timer_duration=ts.timer_duration,
        )
        for name, value in overrides.items():
            setattr(settings, name, value)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_bid": self.min_bid,
            "min_bid_increment": self.min_bid_increment,
            "increment_tiers": [list(t) for t in self.increment_tiers],
            "timer_duration": self.timer_duration,
            "auto_pause_on_sold": self.auto_pause_on_sold,
            "allow_unsold_reauction": self.allow_unsold_reauction,
            "unsold_requeue": self.unsold_requeue.value,
            "max_reauctions": self.max_reauctions,
            "max_bid_amount": self.max_bid_amount,
            "player_order": self.player_order.to_dict(),
            "reset_timer_on_bid": self.reset_timer_on_bid,
            "allow_forced_sale": self.allow_forced_sale,
            "expiry_action": self.expiry_action.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuctionSettings":
        defaults = cls()
        return cls(
            min_bid=int(data.get("min_bid", defaults.min_bid)),
            min_bid_increment=int(data.get("min_bid_increment", defaults.min_bid_increment)),
            increment_tiers=[(int(a), int(b)) for a, b in data.get("increment_tiers", [])],
            timer_duration=int(data.get("timer_duration", defaults.timer_duration)),
            auto_pause_on_sold=bool(data.get("auto_pause_on_sold", defaults.auto_pause_on_sold)),
            allow_unsold_reauction=bool(
                data.get("allow_unsold_reauction", defaults.allow_unsold_reauction)
            ),
            unsold_requeue=UnsoldRequeue(data.get("unsold_requeue", defaults.unsold_requeue.value)),
            max_reauctions=int(data.get("max_reauctions", defaults.max_reauctions)),
            max_bid_amount=int(data.get("max_bid_amount", defaults.max_bid_amount)),
            player_order=PlayerOrderSettings.from_dict(data.get("player_order", {})),
            reset_timer_on_bid=bool(data.get("reset_timer_on_bid", defaults.reset_timer_on_bid)),
            allow_forced_sale=bool(data.get("allow_forced_sale", defaults.allow_forced_sale)),
            expiry_action=ExpiryAction(data.get("expiry_action", defaults.expiry_action.value)),
        )


# =============================================================================
# Timer, Statistics, Outcomes, Log
# =============================================================================


@dataclass
class AuctionTimer:
    """Server-side countdown for the current round."""
    duration: int = 30
    remaining: int = 30
    is_active: bool = False
    started_at: Optional[float] = None

    def arm(self, duration: Optional[int] = None) -> None:
        if duration is not None:
            self.duration = duration
        self.remaining = self.duration
        self.is_active = True
        self.started_at = time.time()

    def halt(self) -> None:
        self.is_active = False

    def resume(self) -> None:
        self.is_active = True

    def disarm(self) -> None:
        self.is_active = False
        self.remaining = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "remaining": self.remaining,
            "is_active": self.is_active,
            "started_at": self.started_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuctionTimer":
        return cls(
            duration=int(data.get("duration", 30)),
            remaining=int(data.get("remaining", 30)),
            is_active=bool(data.get("is_active", False)),
            started_at=data.get("started_at"),
        )


@dataclass
class BidMark:
    player_id: Optional[str] = None
    amount: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"player_id": self.player_id, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BidMark":
        return cls(player_id=data.get("player_id"), amount=data.get("amount"))


@dataclass
class AuctionStatistics:
    total_sold: int = 0
    total_unsold: int = 0
    total_revenue: int = 0
    avg_sale_price: float = 0.0
    highest_bid: BidMark = field(default_factory=BidMark)
    lowest_bid: BidMark = field(default_factory=BidMark)

    def record_sale(self, player_id: str, amount: int) -> None:
        self.total_sold += 1
        self.total_revenue += amount
        self.avg_sale_price = self.total_revenue / self.total_sold
        if self.highest_bid.amount is None or amount > self.highest_bid.amount:
            self.highest_bid = BidMark(player_id, amount)
        if self.lowest_bid.amount is None or amount < self.lowest_bid.amount:
            self.lowest_bid = BidMark(player_id, amount)

    def rebuild(self, sales: List["SoldPlayer"], unsold_count: int) -> None:
        """Recompute from scratch after a sale is corrected."""
        self.total_sold = 0
        self.total_revenue = 0
        self.avg_sale_price = 0.0
        self.highest_bid = BidMark()
        self.lowest_bid = BidMark()
        for sale in sales:
            self.record_sale(sale.player_id, sale.amount)
        self.total_unsold = unsold_count

    def finalize(self, unsold_count: int) -> None:
        self.total_unsold = unsold_count
        self.avg_sale_price = (
            self.total_revenue / self.total_sold if self.total_sold else 0.0
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_sold": self.total_sold,
            "total_unsold": self.total_unsold,
            "total_revenue": self.total_revenue,
            "avg_sale_price": self.avg_sale_price,
            "highest_bid": self.highest_bid.to_dict(),
            "lowest_bid": self.lowest_bid.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuctionStatistics":
        return cls(
            total_sold=int(data.get("total_sold", 0)),
            total_unsold=int(data.get("total_unsold", 0)),
            total_revenue=int(data.get("total_revenue", 0)),
            avg_sale_price=float(data.get("avg_sale_price", 0.0)),
            highest_bid=BidMark.from_dict(data.get("highest_bid", {})),
            lowest_bid=BidMark.from_dict(data.get("lowest_bid", {})),
        )


@dataclass
class SoldPlayer:
    player_id: str
    team_id: str
    amount: int
    sold_at: float = field(default_factory=time.time)
    bid_id: Optional[str] = None  # None for a forced sale

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "team_id": self.team_id,
            "amount": self.amount,
            "sold_at": self.sold_at,
            "bid_id": self.bid_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SoldPlayer":
        return cls(
            player_id=data["player_id"],
            team_id=data["team_id"],
            amount=int(data["amount"]),
            sold_at=float(data.get("sold_at", time.time())),
            bid_id=data.get("bid_id"),
        )


@dataclass
class LogEntry:
    action: str
    user_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "user_id": self.user_id,
            "timestamp": self.timestamp,
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        return cls(
            action=data["action"],
            user_id=data.get("user_id"),
            timestamp=float(data.get("timestamp", time.time())),
            details=dict(data.get("details", {})),
        )


# =============================================================================
# Auction
# =============================================================================


@dataclass
class Auction:
    """
    Persistent record of an auction session.

    `players` is the ordered pool; the remaining queue is derived from it
    by removing sold, unsold and skipped players.
    """
    tournament_id: str
    name: str
    created_by: str
    players: List[str] = field(default_factory=list)
    status: AuctionStatus = AuctionStatus.PENDING
    current_player: Optional[str] = None
    sold_players: List[SoldPlayer] = field(default_factory=list)
    unsold_players: List[str] = field(default_factory=list)
    skipped_players: List[str] = field(default_factory=list)
    current_bid: Optional[str] = None
    bid_history: List[str] = field(default_factory=list)
    timer: AuctionTimer = field(default_factory=AuctionTimer)
    settings: AuctionSettings = field(default_factory=AuctionSettings)
    statistics: AuctionStatistics = field(default_factory=AuctionStatistics)
    logs: List[LogEntry] = field(default_factory=list)
    reauction_counts: Dict[str, int] = field(default_factory=dict)
    round_number: int = 0
    round_resolved: bool = True
    version: int = 0
    created_at: float = field(default_factory=time.time)
    auction_id: str = field(default_factory=new_id)

    @property
    def sold_ids(self) -> List[str]:
        return [sp.player_id for sp in self.sold_players]

    @property
    def remaining_players(self) -> List[str]:
        done = set(self.sold_ids) | set(self.unsold_players) | set(self.skipped_players)
        return [pid for pid in self.players if pid not in done]

    def sale_for(self, player_id: str) -> Optional[SoldPlayer]:
        for sale in self.sold_players:
            if sale.player_id == player_id:
                return sale
        return None

    def log(self, action: str, user_id: Optional[str] = None, **details) -> None:
        self.logs.append(LogEntry(action=action, user_id=user_id, details=details))

    def status_summary(self) -> Dict[str, Any]:
        """Compact public state, suitable for clients."""
        return {
            "auction_id": self.auction_id,
            "name": self.name,
            "status": self.status.value,
            "current_player": self.current_player,
            "current_bid": self.current_bid,
            "round_number": self.round_number,
            "timer": self.timer.to_dict(),
            "remaining_count": len(self.remaining_players),
            "sold_count": len(self.sold_players),
            "unsold_count": len(self.unsold_players),
            "skipped_count": len(self.skipped_players),
            "statistics": self.statistics.to_dict(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auction_id": self.auction_id,
            "tournament_id": self.tournament_id,
            "name": self.name,
            "created_by": self.created_by,
            "players": list(self.players),
            "status": self.status.value,
            "current_player": self.current_player,
            "sold_players": [sp.to_dict() for sp in self.sold_players],
            "unsold_players": list(self.unsold_players),
            "skipped_players": list(self.skipped_players),
            "current_bid": self.current_bid,
            "bid_history": list(self.bid_history),
            "timer": self.timer.to_dict(),
            "settings": self.settings.to_dict(),
            "statistics": self.statistics.to_dict(),
            "logs": [entry.to_dict() for entry in self.logs],
            "reauction_counts": dict(self.reauction_counts),
            "round_number": self.round_number,
            "round_resolved": self.round_resolved,
            "version": self.version,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Auction":
        return cls(
            auction_id=data["auction_id"],
            tournament_id=data["tournament_id"],
            name=data["name"],
            created_by=data["created_by"],
            players=list(data.get("players", [])),
            status=AuctionStatus(data.get("status", "pending")),
            current_player=data.get("current_player"),
            sold_players=[SoldPlayer.from_dict(sp) for sp in data.get("sold_players", [])],
            unsold_players=list(data.get("unsold_players", [])),
            skipped_players=list(data.get("skipped_players", [])),
            current_bid=data.get("current_bid"),
            bid_history=list(data.get("bid_history", [])),
            timer=AuctionTimer.from_dict(data.get("timer", {})),
            settings=AuctionSettings.from_dict(data.get("settings", {})),
            statistics=AuctionStatistics.from_dict(data.get("statistics", {})),
            logs=[LogEntry.from_dict(e) for e in data.get("logs", [])],
            reauction_counts=dict(data.get("reauction_counts", {})),
            round_number=int(data.get("round_number", 0)),
            round_resolved=bool(data.get("round_resolved", True)),
            version=int(data.get("version", 0)),
            created_at=float(data.get("created_at", time.time())),
        )
