"""
CricAuction

Live cricket player auction core:
- Sequenced player rounds under a countdown timer
- Bid acceptance against increments and team token budgets
- Role-based access for auctioneers, captains and viewers
- Room broadcast of every committed state change
"""
