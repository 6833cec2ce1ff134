"""
Access policy for auction actions.
"""

from cricauction.core.policy.access import (
    Action,
    Actor,
    Decision,
    Role,
    evaluate,
    require,
)

__all__ = ["Action", "Actor", "Decision", "Role", "evaluate", "require"]
