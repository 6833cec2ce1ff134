"""
Inbound payload schemas.

Requests arriving from the API layer (or a scenario file) are validated
with pydantic before they reach the service. Failures are converted into
the package's ValidationError so callers only ever see AuctionError.
"""

from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from cricauction.core.auction.models import (
    AuctionSettings,
    ExpiryAction,
    PlayerOrder,
    PlayerOrderSettings,
    RoundDecision,
    UnsoldRequeue,
)
from cricauction.core.errors import ValidationError
from cricauction.core.registry.players import TournamentFormat

MIN_TIMER_SECONDS = 10

ModelT = TypeVar("ModelT", bound=BaseModel)


# =============================================================================
# Bidding
# =============================================================================


class BidRequest(BaseModel):
    """Schema for a bid submitted by a team representative."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    auction_id: str = Field(min_length=1)
    player_id: str = Field(min_length=1)
    team_id: str = Field(min_length=1)
    amount: int = Field(gt=0)
    notes: str = Field(default="", max_length=200)

    @field_validator("amount", mode="before")
    @classmethod
    def reject_fractional(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("Amount must be an integer")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError("Amount must be a whole number of tokens")
        return value


class RoundDecisionRequest(BaseModel):
    """Schema for the auctioneer resolving the current round."""
    model_config = ConfigDict(extra="forbid")

    auction_id: str = Field(min_length=1)
    decision: RoundDecision


# =============================================================================
# Settings
# =============================================================================


class PlayerOrderInput(BaseModel):
    type: PlayerOrder = PlayerOrder.DEFAULT
    custom_order: List[str] = Field(default_factory=list)
    group_order: List[str] = Field(default_factory=list)
    seed: Optional[int] = None

    @model_validator(mode="after")
    def check_order_lists(self) -> "PlayerOrderInput":
        if self.type == PlayerOrder.CUSTOM and not self.custom_order:
            raise ValueError("custom_order is required for custom ordering")
        if self.type == PlayerOrder.GROUP_WISE and not self.group_order:
            raise ValueError("group_order is required for group-wise ordering")
        return self


class AuctionSettingsInput(BaseModel):
    """Schema for auction settings supplied at creation time."""
    model_config = ConfigDict(extra="forbid")

    min_bid: int = Field(default=40, gt=0)
    min_bid_increment: int = Field(default=20, gt=0)
    increment_tiers: List[Tuple[int, int]] = Field(default_factory=list)
    timer_duration: int = Field(default=30, ge=MIN_TIMER_SECONDS, le=600)
    auto_pause_on_sold: bool = True
    allow_unsold_reauction: bool = True
    unsold_requeue: UnsoldRequeue = UnsoldRequeue.MANUAL
    max_reauctions: int = Field(default=1, ge=0)
    max_bid_amount: int = Field(default=1_000_000, gt=0)
    player_order: PlayerOrderInput = Field(default_factory=PlayerOrderInput)
    reset_timer_on_bid: bool = True
    allow_forced_sale: bool = False
    expiry_action: ExpiryAction = ExpiryAction.AUTO_RESOLVE

    @field_validator("increment_tiers")
    @classmethod
    def check_tiers(cls, tiers: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
        previous = 0
        for up_to, increment in tiers:
            if increment <= 0:
                raise ValueError("Tier increments must be positive")
            if up_to <= previous:
                raise ValueError("Tier limits must be strictly increasing")
            previous = up_to
        return tiers

    @model_validator(mode="after")
    def check_amounts(self) -> "AuctionSettingsInput":
        if self.max_bid_amount < self.min_bid:
            raise ValueError("max_bid_amount must be at least min_bid")
        return self

    def to_settings(self) -> AuctionSettings:
        order = self.player_order
        return AuctionSettings(
            min_bid=self.min_bid,
            min_bid_increment=self.min_bid_increment,
            increment_tiers=list(self.increment_tiers),
            timer_duration=self.timer_duration,
            auto_pause_on_sold=self.auto_pause_on_sold,
            allow_unsold_reauction=self.allow_unsold_reauction,
            unsold_requeue=self.unsold_requeue,
            max_reauctions=self.max_reauctions,
            max_bid_amount=self.max_bid_amount,
            player_order=PlayerOrderSettings(
                type=order.type,
                custom_order=list(order.custom_order),
                group_order=list(order.group_order),
                seed=order.seed,
            ),
            reset_timer_on_bid=self.reset_timer_on_bid,
            allow_forced_sale=self.allow_forced_sale,
            expiry_action=self.expiry_action,
        )


# =============================================================================
# Registration (scenario files, admin tools)
# =============================================================================


class PlayerInput(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    roles: List[str] = Field(default_factory=lambda: ["batsman"], min_length=1)
    base_price: int = Field(default=0, ge=0)
    player_group: Optional[str] = None


class TeamInput(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    captain_id: str = Field(min_length=1)
    manager_id: Optional[str] = None
    tokens: Optional[int] = Field(default=None, ge=0)
    max_players: Optional[int] = Field(default=None, ge=1)


class TournamentInput(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    format: TournamentFormat = TournamentFormat.BILATERAL
    total_tokens: int = Field(default=2000, gt=0)
    max_players_per_team: int = Field(default=15, ge=1)
    min_players_per_team: int = Field(default=11, ge=0)

    @model_validator(mode="after")
    def check_roster_limits(self) -> "TournamentInput":
        if self.min_players_per_team > self.max_players_per_team:
            raise ValueError("min_players_per_team cannot exceed max_players_per_team")
        return self


# =============================================================================
# Parsing helpers
# =============================================================================


def _field_errors(exc: PydanticValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        field_name = ".".join(str(part) for part in error["loc"]) or "__root__"
        errors.setdefault(field_name, []).append(error["msg"])
    return errors


def parse_model(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """
    Validate a payload against a schema.

    Raises:
        ValidationError: with one entry per offending field
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_field_errors(e)) from e


def parse_bid(data: Dict[str, Any]) -> BidRequest:
    return parse_model(BidRequest, data)


def parse_settings(data: Optional[Dict[str, Any]]) -> AuctionSettings:
    return parse_model(AuctionSettingsInput, data or {}).to_settings()


def parse_decision(data: Dict[str, Any]) -> RoundDecisionRequest:
    return parse_model(RoundDecisionRequest, data)
