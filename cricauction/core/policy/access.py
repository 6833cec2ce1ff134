"""
Access Policy - Who may do what in an auction.

A single pure evaluator consulted by every service operation:

    evaluate(actor, action, team) -> Decision

Roles are totally ordered (viewer < bidder < captain = manager <
auctioneer < admin). Team-scoped bidding additionally requires the actor
to be the team's captain or manager.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import uuid

from cricauction.core.errors import Forbidden
from cricauction.core.teams.team import Team
from cricauction.utils.logger import get_logger

logger = get_logger("policy")


class Role(Enum):
    """User roles. Captain and manager share a rank but keep their own names."""
    VIEWER = "viewer"
    BIDDER = "bidder"
    CAPTAIN = "captain"
    MANAGER = "manager"
    AUCTIONEER = "auctioneer"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str) -> "Role":
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown role: {value}") from None

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]

    def at_least(self, other: "Role") -> bool:
        return self.rank >= other.rank


ROLE_RANKS = {
    Role.VIEWER: 0,
    Role.BIDDER: 1,
    Role.CAPTAIN: 2,
    Role.MANAGER: 2,
    Role.AUCTIONEER: 3,
    Role.ADMIN: 4,
}


class Action(Enum):
    VIEW = "view"
    CHAT = "chat"
    BID = "bid"
    CONTROL = "control"      # start, pause, resume, next, resolve, requeue
    CANCEL = "cancel"
    CORRECT = "correct"      # administrative budget correction


@dataclass(frozen=True)
class Actor:
    """An authenticated (or ephemeral) participant."""
    user_id: str
    role: Role = Role.VIEWER
    display_name: str = ""
    is_ephemeral: bool = False

    @classmethod
    def viewer(cls, display_name: str = "Anonymous") -> "Actor":
        """Issue a temporary viewer identity for an anonymous participant."""
        return cls(
            user_id=f"viewer-{uuid.uuid4().hex[:12]}",
            role=Role.VIEWER,
            display_name=display_name,
            is_ephemeral=True,
        )

    @property
    def name(self) -> str:
        return self.display_name or self.user_id


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def evaluate(actor: Optional[Actor], action: Action, team: Optional[Team] = None) -> Decision:
    """
    Decide whether an actor may perform an action.

    Args:
        actor: Acting participant; None is treated as an anonymous viewer
        action: Requested action
        team: Target team, required for BID

    Returns:
        Decision (truthy when allowed)
    """
    role = actor.role if actor else Role.VIEWER

    if action in (Action.VIEW, Action.CHAT):
        return ALLOW

    if actor is None or actor.is_ephemeral:
        return Decision(False, "Anonymous participants can only view and chat")

    if action == Action.CORRECT:
        if role.at_least(Role.ADMIN):
            return ALLOW
        return Decision(False, "Only admins can correct purchases")

    if action in (Action.CONTROL, Action.CANCEL):
        if role.at_least(Role.AUCTIONEER):
            return ALLOW
        return Decision(False, "Only auctioneers and admins can control the auction")

    if action == Action.BID:
        if team is None:
            return Decision(False, "Bid requires a team")
        if role.at_least(Role.AUCTIONEER):
            return ALLOW
        if not role.at_least(Role.BIDDER):
            return Decision(False, "Viewers cannot bid")
        if team.is_representative(actor.user_id):
            return ALLOW
        return Decision(False, "You do not have permission to bid for this team")

    return Decision(False, f"Unknown action {action}")


def require(actor: Optional[Actor], action: Action, team: Optional[Team] = None) -> None:
    """Raise Forbidden unless the action is allowed."""
    decision = evaluate(actor, action, team)
    if not decision:
        who = actor.user_id if actor else "anonymous"
        logger.debug(f"Denied {action.value} for {who}: {decision.reason}")
        raise Forbidden(decision.reason)
