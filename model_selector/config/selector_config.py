# model_selector/config/selector_config.py
"""Immutable selector configuration values.

Every builder call on a selector produces a new ``SelectorConfig``; nothing
in this module is mutated after construction. Grids keep declaration order
so configuration enumeration, and therefore tie-breaking, is reproducible.
"""

import itertools
from collections.abc import Iterable as IterableABC
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from ..utils.exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..data.splitter import Splitter
    from ..models.evaluators import Evaluator
    from ..models.families import ModelFamily
    from ..models.validator import BaseValidator


class ProblemType(Enum):
    """Prediction task handled by a selector."""

    REGRESSION = "regression"
    BINARY_CLASSIFICATION = "binary"
    MULTI_CLASSIFICATION = "multiclass"

    @property
    def is_classification(self) -> bool:
        return self is not ProblemType.REGRESSION


@dataclass(frozen=True)
class ParamGrid:
    """Ordered hyperparameter grid: parameter name to candidate values.

    Example:
        >>> grid = ParamGrid().with_values("max_depth", 2, 10).with_values("n_estimators", 10)
        >>> grid.configurations()
        [{'max_depth': 2, 'n_estimators': 10}, {'max_depth': 10, 'n_estimators': 10}]
    """

    entries: Tuple[Tuple[str, Tuple[Any, ...]], ...] = ()

    def with_values(self, name: str, *values: Any) -> "ParamGrid":
        """Return a grid where ``name`` takes ``values``, duplicates removed in declaration order.

        A parameter that is already present keeps its position.

        Raises:
            ConfigurationError: If no values are given
        """
        if not values:
            raise ConfigurationError(
                f"Hyperparameter '{name}' needs at least one value",
                error_code="GRID_EMPTY_VALUES",
                context={"parameter": name}
            )
        unique: List[Any] = []
        for value in values:
            if value not in unique:
                unique.append(value)

        entries = list(self.entries)
        for position, (existing, _) in enumerate(entries):
            if existing == name:
                entries[position] = (name, tuple(unique))
                break
        else:
            entries.append((name, tuple(unique)))
        return ParamGrid(tuple(entries))

    @classmethod
    def from_dict(cls, values: Dict[str, Iterable[Any]]) -> "ParamGrid":
        grid = cls()
        for name, candidates in values.items():
            if isinstance(candidates, (str, bytes)) or not isinstance(candidates, IterableABC):
                candidates = [candidates]
            grid = grid.with_values(name, *candidates)
        return grid

    def names(self) -> List[str]:
        return [name for name, _ in self.entries]

    def values(self, name: str) -> Tuple[Any, ...]:
        for existing, values in self.entries:
            if existing == name:
                return values
        raise KeyError(name)

    def configurations(self) -> List[Dict[str, Any]]:
        """All points of the grid in declaration order; ``[{}]`` for an empty grid."""
        names = self.names()
        value_lists = [values for _, values in self.entries]
        return [dict(zip(names, combo)) for combo in itertools.product(*value_lists)]

    def __len__(self) -> int:
        size = 1
        for _, values in self.entries:
            size *= len(values)
        return size

    def to_dict(self) -> Dict[str, List[Any]]:
        return {name: list(values) for name, values in self.entries}


@dataclass(frozen=True)
class Candidate:
    """A model family together with its hyperparameter grid."""

    family: "ModelFamily"
    grid: ParamGrid = field(default_factory=ParamGrid)

    @property
    def name(self) -> str:
        return self.family.name


@dataclass(frozen=True)
class Configuration:
    """One concrete hyperparameter assignment of a candidate.

    ``index`` is the position in the global enumeration order (candidates
    in declaration order, grid points in declaration order) and decides ties.
    """

    family_name: str
    params: Dict[str, Any] = field(hash=False)
    index: int = 0
    family: Optional["ModelFamily"] = field(default=None, compare=False, hash=False, repr=False)

    def describe(self) -> str:
        rendered = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.family_name}({rendered})"


def enumerate_configurations(candidates: Iterable[Candidate]) -> List[Configuration]:
    """Flatten candidates into configurations in tie-breaking order."""
    configurations: List[Configuration] = []
    for candidate in candidates:
        for params in candidate.grid.configurations():
            configurations.append(Configuration(
                family_name=candidate.name,
                params=params,
                index=len(configurations),
                family=candidate.family,
            ))
    return configurations


@dataclass(frozen=True)
class SelectorConfig:
    """Complete, immutable description of a model selector.

    Attributes:
        problem_type: Task the selector solves
        candidates: Candidate families with their grids, in declaration order
        validator: Cross-validation or train/validation split strategy
        splitter: Optional holdout splitter, ``None`` trains on all rows
        train_test_evaluators: Extra evaluators reported on train and holdout
        output_name: Name of the prediction column, derived from the label if unset
    """

    problem_type: ProblemType
    candidates: Tuple[Candidate, ...] = ()
    validator: Optional["BaseValidator"] = None
    splitter: Optional["Splitter"] = None
    train_test_evaluators: Tuple["Evaluator", ...] = ()
    output_name: Optional[str] = None

    def evolve(self, **changes: Any) -> "SelectorConfig":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def candidate(self, family_name: str) -> Optional[Candidate]:
        for candidate in self.candidates:
            if candidate.name == family_name:
                return candidate
        return None

    def validate(self) -> None:
        """Check the configuration is complete enough to fit.

        Raises:
            ConfigurationError: If no candidates or no validator are configured
        """
        if not self.candidates:
            raise ConfigurationError(
                "At least one model family must be selected to try",
                error_code="NO_CANDIDATES",
                context={"problem_type": self.problem_type.value}
            )
        if self.validator is None:
            raise ConfigurationError(
                "A validation strategy must be configured",
                error_code="NO_VALIDATOR",
                context={"problem_type": self.problem_type.value}
            )

    def configuration_count(self) -> int:
        return sum(len(candidate.grid) for candidate in self.candidates)
