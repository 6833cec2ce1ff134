"""
Teams and their token budgets.
"""

from cricauction.core.teams.team import RosterEntry, Team
from cricauction.core.teams.budget import TeamBudgetLedger

__all__ = ["RosterEntry", "Team", "TeamBudgetLedger"]
