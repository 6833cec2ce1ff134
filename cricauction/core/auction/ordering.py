"""
Pool ordering strategies applied when an auction starts.
"""

import random
from typing import Dict, List

from cricauction.core.auction.models import PlayerOrder, PlayerOrderSettings
from cricauction.core.registry.players import Player


def sort_pool(
    pool: List[str],
    players: Dict[str, Player],
    order: PlayerOrderSettings,
) -> List[str]:
    """
    Return the pool sorted by the configured strategy.

    Sorting is stable: players that compare equal keep insertion order.
    Ids missing from `players` sort as base price 0 / no group / empty name.

    Args:
        pool: Player ids in insertion order
        players: Known players by id
        order: Ordering settings

    Returns:
        New list of player ids
    """
    if order.type == PlayerOrder.DEFAULT:
        return list(pool)

    if order.type == PlayerOrder.RANDOM:
        shuffled = list(pool)
        random.Random(order.seed).shuffle(shuffled)
        return shuffled

    if order.type == PlayerOrder.BASE_PRICE:
        return sorted(
            pool,
            key=lambda pid: players[pid].base_price if pid in players else 0,
            reverse=True,
        )

    if order.type == PlayerOrder.ALPHABETICAL:
        return sorted(
            pool,
            key=lambda pid: players[pid].name.lower() if pid in players else "",
        )

    if order.type == PlayerOrder.CUSTOM:
        listed = [pid for pid in order.custom_order if pid in pool]
        seen = set(listed)
        return listed + [pid for pid in pool if pid not in seen]

    if order.type == PlayerOrder.GROUP_WISE:
        rank = {group: i for i, group in enumerate(order.group_order)}
        last = len(rank)

        def group_rank(pid: str) -> int:
            player = players.get(pid)
            if player is None or player.player_group is None:
                return last
            return rank.get(player.player_group, last)

        return sorted(pool, key=group_rank)

    raise ValueError(f"Unknown player order: {order.type}")
