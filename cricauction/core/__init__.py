"""
CricAuction Core.

Auction session state machine, bidding, team budgets, access policy,
registry, storage and the serialized service facade.
"""
