"""
General utility functions for the patrec package.

This module provides the helpers shared by the classifier and the
reducers: argument presence checks, target dimension resolution,
point-major flattening and logging setup.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from patrec.errors import InvalidInputError, InvalidParameterError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Short level names accepted in configuration
_LEVEL_ALIASES = {'warn': 'WARNING', 'fatal': 'CRITICAL'}


def is_absent(value: Any) -> bool:
    """
    Check if a load argument is missing.

    None, zero and empty sequences all count as absent.

    Args:
        value: Argument to check

    Returns:
        True if the argument is absent
    """
    if value is None:
        return True
    if isinstance(value, np.ndarray):
        return value.size == 0
    if isinstance(value, (int, float, np.integer, np.floating)):
        return value == 0
    try:
        return len(value) == 0
    except TypeError:
        return False


def missing_arguments(args: Dict[str, Any]) -> List[str]:
    """
    List the names of absent arguments, preserving order.

    Args:
        args: Mapping of argument name to value

    Returns:
        Names of the absent arguments
    """
    return [name for name, value in args.items() if is_absent(value)]


def check_load_arguments(owner: str, args: Dict[str, Any], strict: bool) -> bool:
    """
    Decide whether a load call should proceed.

    Absent arguments make the load a no-op. In strict mode they raise
    instead.

    Args:
        owner: Name of the component, for messages
        args: Mapping of argument name to value
        strict: Raise InvalidInputError instead of skipping

    Returns:
        True if every argument is present
    """
    missing = missing_arguments(args)
    if not missing:
        return True

    message = f"{owner}: missing or zero {', '.join(missing)}, keeping previous state"
    if strict:
        raise InvalidInputError(message)
    logger.warning(message)
    return False


def resolve_target_dim(k: int, dim: int, strict: bool = False) -> int:
    """
    Resolve the number of components to keep.

    Valid values are 1..dim. Anything else clamps to dim - 1 (at least 1),
    or raises in strict mode.

    Args:
        k: Requested number of components
        dim: Dimension of the data
        strict: Raise InvalidParameterError instead of clamping

    Returns:
        Number of components to keep
    """
    if 0 < k <= dim:
        return int(k)

    if strict:
        raise InvalidParameterError(f"k must be in [1, {dim}], got {k}")

    clamped = max(dim - 1, 1)
    logger.warning(f"k={k} outside [1, {dim}], clamping to {clamped}")
    return clamped


def flatten_point_major(projected: np.ndarray) -> np.ndarray:
    """
    Flatten a (components x points) matrix so each point's coordinates
    are contiguous.

    Args:
        projected: Matrix with one column per point

    Returns:
        1-D array of length components * points
    """
    return np.asarray(projected).ravel(order='F')


def setup_logging(level: Optional[str] = None) -> None:
    """
    Set up logging.

    Args:
        level: Logging level; defaults to the configured 'logging.level'
    """
    if level is None:
        from patrec.components.config import ConfigManager
        level = ConfigManager.get_config().get('logging.level', 'warn')

    name = _LEVEL_ALIASES.get(level.lower(), level.upper())
    logging.basicConfig(
        level=getattr(logging, name),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler()
        ]
    )
