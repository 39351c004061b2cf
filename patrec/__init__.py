"""
Patrec package for classical pattern recognition.

This package provides a k-nearest-neighbor classifier and two linear
dimensionality reducers (PCA and LDA) operating on flat, point-major
numeric buffers.
"""

__version__ = '0.1.0'

from patrec.math.knn import KnnClassifier, PreparedQuery
from patrec.math.pca import PcaReducer
from patrec.math.lda import LdaReducer
from patrec.components.config import Config, ConfigManager
from patrec.errors import (
    PatrecError, InvalidInputError, InvalidParameterError,
    SingularMatrixError, NotFittedError
)
