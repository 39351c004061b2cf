"""
Exceptions raised by the patrec package.
"""

import numpy as np


class PatrecError(Exception):
    """Base class for all patrec errors."""


class InvalidInputError(PatrecError, ValueError):
    """Raised when a dataset or query buffer is absent or malformed."""


class InvalidParameterError(PatrecError, ValueError):
    """Raised when a neighbor count or target dimension is out of range."""


class SingularMatrixError(PatrecError, np.linalg.LinAlgError):
    """Raised when the within-class scatter matrix cannot be inverted."""


class NotFittedError(PatrecError, RuntimeError):
    """Raised when a reducer is asked to transform before it was fitted."""
