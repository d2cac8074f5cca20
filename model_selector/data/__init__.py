"""Model Selector - Data Components.

Feature declarations, column metadata storage and holdout splitters.
"""

from .features import (
    FeatureType,
    Feature,
    FeatureHistory,
    FeatureVector,
    VectorColumnMetadata,
    VectorMetadata,
    response_sub_features
)
from .metadata import ColumnMetadata
from .splitter import (
    Splitter,
    DataSplitter,
    DataBalancer,
    DataCutter,
    random_split,
    seeded_uniform
)

__all__ = [
    'FeatureType',
    'Feature',
    'FeatureHistory',
    'FeatureVector',
    'VectorColumnMetadata',
    'VectorMetadata',
    'response_sub_features',
    'ColumnMetadata',
    'Splitter',
    'DataSplitter',
    'DataBalancer',
    'DataCutter',
    'random_split',
    'seeded_uniform',
]
