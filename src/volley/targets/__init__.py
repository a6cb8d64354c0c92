"""Volley targets - the services a stress run calls.

Re-exports the BaseTarget ABC, the simulated target and the registry
function.
"""

from volley.targets.base import BaseTarget
from volley.targets.registry import get_target
from volley.targets.simulated import SimulatedTarget

__all__ = [
    "BaseTarget",
    "SimulatedTarget",
    "get_target",
]
