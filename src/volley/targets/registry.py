"""Target registry for resolving target names to instances.

Supports the builtin "simulated" target and custom dotted-path
imports (e.g., "my.module.MyTarget").
"""

from __future__ import annotations

import importlib

from volley.models.config import SimulatedTargetConfig
from volley.targets.base import BaseTarget
from volley.targets.simulated import SimulatedTarget

# Mapping of builtin target short names to their fully-qualified class paths.
BUILTIN_TARGETS: dict[str, str] = {
    "simulated": "volley.targets.simulated.SimulatedTarget",
}


def get_target(name: str, simulated: SimulatedTargetConfig | None = None) -> BaseTarget:
    """Resolve a target by name or dotted path and return an instance.

    For "simulated", returns a SimulatedTarget built from ``simulated``.
    For dotted paths ("my.module.MyTarget"), imports the module and
    instantiates the class with no arguments.

    Args:
        name: A builtin target name or a fully-qualified dotted path
              to a target class.
        simulated: Fault injection settings for the simulated target.

    Returns:
        An instance of the resolved target class.

    Raises:
        ValueError: If the name is not a builtin and has no dots (unknown).
        ImportError: If the module or class cannot be imported.
        TypeError: If the resolved class is not a subclass of BaseTarget.
    """
    if name == "simulated":
        return SimulatedTarget(simulated)

    if "." not in name:
        available = ", ".join(sorted(BUILTIN_TARGETS.keys()))
        raise ValueError(
            f"Unknown target '{name}'. "
            f"Available builtin targets: {available}. "
            f"For custom targets, provide the full dotted path "
            f"(e.g., 'my.module.MyTarget')."
        )

    dotted_path = name
    module_path, _, class_name = dotted_path.rpartition(".")
    if not module_path or not class_name:
        raise ValueError(
            f"Invalid target path '{dotted_path}'. "
            f"Expected format: 'module.path.ClassName'."
        )

    module = importlib.import_module(module_path)

    try:
        cls = getattr(module, class_name)
    except AttributeError:
        raise ImportError(
            f"Module '{module_path}' has no attribute '{class_name}'."
        ) from None

    if not isinstance(cls, type) or not issubclass(cls, BaseTarget):
        raise TypeError(
            f"'{dotted_path}' is not a subclass of BaseTarget. "
            f"Custom targets must inherit from volley.targets.base.BaseTarget."
        )

    return cls()
