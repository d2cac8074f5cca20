# model_selector/data/splitter.py
"""Deterministic train/holdout partitioning.

Row membership is decided independently per row from a seeded hash of the
row's index label, so the partition does not depend on the physical order
of the rows and never needs a shared random state.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..utils.exceptions import ConfigurationError, DataError, validate_fraction, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SEED = 42
DEFAULT_RESERVE_TEST_FRACTION = 0.1

# Distinct hash salts keep the holdout, inner validation and balancing draws independent
SPLIT_SALT = 0
TRAIN_VALIDATION_SALT = 1
BALANCE_SALT = 2

_MASK_64 = 0xFFFFFFFFFFFFFFFF


def seeded_uniform(index: pd.Index, seed: int, salt: int = 0) -> np.ndarray:
    """Map every index label to a reproducible pseudo-uniform draw in [0, 1).

    Args:
        index: Row labels identifying the rows
        seed: Seed of the draw
        salt: Extra key separating independent draws with the same seed

    Returns:
        Array of floats aligned with ``index``
    """
    key = ((int(seed) * 0x9E3779B97F4A7C15) + salt) & _MASK_64
    labels = np.asarray(index.astype(str), dtype=object)
    hashed = pd.util.hash_array(labels, hash_key=format(key, "016x"), categorize=False)
    return (hashed >> np.uint64(11)).astype(np.float64) / float(1 << 53)


def random_split(
    frame: pd.DataFrame,
    fraction: float,
    seed: int = DEFAULT_SEED,
    salt: int = SPLIT_SALT
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Split rows into ``(rest, selected)`` where each row is selected with probability ``fraction``.

    Raises:
        ConfigurationError: If ``fraction`` is outside (0, 1)
        DataError: If the frame index has duplicate labels
    """
    validate_fraction("fraction", fraction)
    if not frame.index.is_unique:
        raise DataError(
            "Row index labels must be unique to split deterministically",
            error_code="SPLIT_INDEX_NOT_UNIQUE"
        )
    selected = seeded_uniform(frame.index, seed, salt) < fraction
    return frame.loc[~selected], frame.loc[selected]


class Splitter(ABC):
    """Base class for holdout splitters.

    Subclasses decide how the train partition is prepared once the holdout
    has been reserved.
    """

    def __init__(self, reserve_test_fraction: float = DEFAULT_RESERVE_TEST_FRACTION, seed: int = DEFAULT_SEED) -> None:
        validate_fraction("reserve_test_fraction", reserve_test_fraction)
        self.reserve_test_fraction = float(reserve_test_fraction)
        self.seed = int(seed)

    def split(self, frame: pd.DataFrame, label_column: Optional[str] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Reserve the holdout and prepare the train partition.

        Args:
            frame: Full dataset
            label_column: Name of the label column, used by label-aware splitters

        Returns:
            Tuple of ``(train, holdout)``
        """
        train, holdout = random_split(frame, self.reserve_test_fraction, self.seed)
        logger.debug(
            f"{type(self).__name__} reserved {len(holdout)} of {len(frame)} rows for holdout"
        )
        return self.prepare(train, holdout, label_column)

    @abstractmethod
    def prepare(
        self,
        train: pd.DataFrame,
        holdout: pd.DataFrame,
        label_column: Optional[str]
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Adjust the partitions after the holdout has been reserved."""

    def summary(self) -> Dict[str, Any]:
        """Parameters and statistics describing the last preparation."""
        return {
            "splitterType": type(self).__name__,
            "reserveTestFraction": self.reserve_test_fraction,
            "seed": self.seed,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(reserve_test_fraction={self.reserve_test_fraction}, seed={self.seed})"


class DataSplitter(Splitter):
    """Plain holdout splitter, train partition is used as is."""

    def prepare(self, train, holdout, label_column):
        return train, holdout


class DataBalancer(Splitter):
    """Holdout splitter that down-samples the majority label of binary data.

    If the minority label makes up less than ``sample_fraction`` of the train
    partition, majority rows are dropped until it does. A partition larger
    than ``max_training_sample`` rows is then sampled down evenly across both
    labels, in the same per-row draw.
    """

    def __init__(
        self,
        sample_fraction: float = 0.1,
        max_training_sample: int = 1_000_000,
        reserve_test_fraction: float = DEFAULT_RESERVE_TEST_FRACTION,
        seed: int = DEFAULT_SEED
    ) -> None:
        super().__init__(reserve_test_fraction, seed)
        validate_parameter("sample_fraction", sample_fraction, min_value=0.0, max_value=0.5, exclusive=True)
        validate_parameter("max_training_sample", max_training_sample, min_value=1)
        self.sample_fraction = float(sample_fraction)
        self.max_training_sample = int(max_training_sample)
        self._summary: Dict[str, Any] = {}

    def prepare(self, train, holdout, label_column):
        if label_column is None:
            raise ConfigurationError("DataBalancer needs the label column", error_code="BALANCER_NO_LABEL")

        labels = train[label_column]
        distinct = sorted(labels.unique())
        if len(distinct) > 2:
            raise DataError(
                f"DataBalancer supports binary labels only, found {len(distinct)} distinct values",
                error_code="BALANCER_NOT_BINARY",
                context={"labels": distinct[:10]}
            )

        positives = int((labels == 1).sum())
        negatives = int(len(labels) - positives)
        small, big = sorted((positives, negatives))
        majority_value = 1 if positives > negatives else 0

        minority_fraction, majority_fraction = self.keep_fractions(small, big)
        if minority_fraction < 1.0 or majority_fraction < 1.0:
            draws = seeded_uniform(train.index, self.seed, BALANCE_SALT)
            thresholds = np.where(labels.to_numpy() == majority_value, majority_fraction, minority_fraction)
            train = train.loc[draws < thresholds]
            logger.info(
                f"Balanced training data: kept {majority_fraction:.3f} of majority label {majority_value} "
                f"and {minority_fraction:.3f} of the minority label, {len(train)} rows left"
            )

        self._summary = {
            "positiveLabels": positives,
            "negativeLabels": negatives,
            "desiredFraction": self.sample_fraction,
            "downSamplingFraction": majority_fraction,
            "minoritySamplingFraction": minority_fraction,
            "maxTrainingSample": self.max_training_sample,
        }
        return train, holdout

    def keep_fractions(self, small: int, big: int) -> Tuple[float, float]:
        """Fraction of minority and majority rows to keep.

        The majority is down-sampled until the minority makes up
        ``sample_fraction`` of the rows. If the balanced partition would still
        exceed ``max_training_sample`` rows, both labels are scaled by the same
        factor so the minority share is preserved.

        Args:
            small: Number of minority label rows
            big: Number of majority label rows

        Returns:
            Tuple of ``(minority_fraction, majority_fraction)``
        """
        majority_fraction = 1.0
        if small > 0 and small / (small + big) < self.sample_fraction:
            majority_fraction = small * (1.0 - self.sample_fraction) / (self.sample_fraction * big)

        balanced_size = small + big * majority_fraction
        cap_fraction = 1.0
        if balanced_size > self.max_training_sample:
            cap_fraction = self.max_training_sample / balanced_size

        return cap_fraction, majority_fraction * cap_fraction

    def summary(self) -> Dict[str, Any]:
        return {**super().summary(), **self._summary}


class DataCutter(Splitter):
    """Holdout splitter that drops rare labels of multiclass data.

    Keeps at most ``max_label_categories`` labels of the train partition,
    each covering at least ``min_label_fraction`` of its rows. Rows of the
    dropped labels are removed from both partitions.
    """

    def __init__(
        self,
        max_label_categories: int = 100,
        min_label_fraction: float = 0.0,
        reserve_test_fraction: float = DEFAULT_RESERVE_TEST_FRACTION,
        seed: int = DEFAULT_SEED
    ) -> None:
        super().__init__(reserve_test_fraction, seed)
        validate_parameter("max_label_categories", max_label_categories, min_value=1)
        validate_parameter("min_label_fraction", min_label_fraction, min_value=0.0, max_value=0.5)
        self.max_label_categories = int(max_label_categories)
        self.min_label_fraction = float(min_label_fraction)
        self._labels_kept: List[float] = []
        self._labels_dropped: List[float] = []

    def prepare(self, train, holdout, label_column):
        if label_column is None:
            raise ConfigurationError("DataCutter needs the label column", error_code="CUTTER_NO_LABEL")

        counts = train[label_column].value_counts()
        total = int(counts.sum())
        # Most frequent first, ties broken by label value
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        kept = [label for label, count in ranked if total and count / total >= self.min_label_fraction]
        kept = kept[:self.max_label_categories]
        dropped = sorted(label for label, _ in ranked if label not in kept)

        if not kept:
            raise DataError(
                "DataCutter dropped every label, relax min_label_fraction",
                error_code="CUTTER_NO_LABELS_LEFT",
                context={"min_label_fraction": self.min_label_fraction}
            )

        self._labels_kept = sorted(kept)
        self._labels_dropped = dropped
        if dropped:
            logger.info(f"Dropping {len(dropped)} rare labels: {dropped}")
            train = train.loc[train[label_column].isin(kept)]
            holdout = holdout.loc[holdout[label_column].isin(kept)]
        return train, holdout

    @property
    def labels_kept(self) -> List[float]:
        return list(self._labels_kept)

    @property
    def labels_dropped(self) -> List[float]:
        return list(self._labels_dropped)

    def summary(self) -> Dict[str, Any]:
        return {
            **super().summary(),
            "maxLabelCategories": self.max_label_categories,
            "minLabelFraction": self.min_label_fraction,
            "labelsKept": [float(label) for label in self._labels_kept],
            "labelsDropped": [float(label) for label in self._labels_dropped],
        }
