import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Type

from ..data.roles import Role
from ..data.table import Table
from ..exceptions import NotFittedError, SchemaError
from ..utils import FrozenMapping
from .selectors import Selector, SelectorLike, as_selector

logger = logging.getLogger(__name__)


class BaseCalculator(ABC):
    # Whether every fitted column must be present when the step is applied
    requires_columns: bool = True

    @abstractmethod
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calculates parameters from the training data.
        ``config['columns']`` holds the resolved target columns.
        Returns a dictionary of fitted parameters.
        """
        pass


class BaseApplier(ABC):
    @abstractmethod
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        """
        Applies the transformation using fitted parameters.
        Must not modify ``params``.
        """
        pass


_STEP_REGISTRY: Dict[str, Tuple[Type[BaseCalculator], Type[BaseApplier]]] = {}


def register_step(kind: str, calculator: Type[BaseCalculator], applier: Type[BaseApplier]) -> None:
    _STEP_REGISTRY[kind] = (calculator, applier)


def get_step_components(kind: str) -> Tuple[BaseCalculator, BaseApplier]:
    if kind not in _STEP_REGISTRY:
        raise ValueError(f"Unknown step kind: {kind}")
    calculator_cls, applier_cls = _STEP_REGISTRY[kind]
    return calculator_cls(), applier_cls()


def registered_steps() -> Tuple[str, ...]:
    return tuple(sorted(_STEP_REGISTRY))


@dataclass(frozen=True)
class FitState:
    """Learned quantities of one fitted step. Read-only."""

    step_id: str
    kind: str
    columns: Tuple[str, ...]
    outcome_columns: Tuple[str, ...]
    params: Mapping[str, Any]


@dataclass(frozen=True)
class Step:
    """
    A named, parameterized preprocessing transformation.

    A Step only holds configuration. ``fit`` returns a FitState with the
    learned quantities and ``apply`` uses one; the Step itself never changes.
    Steps with ``skip=True`` run while a recipe is prepared but are left out
    when it is baked on new data.
    """

    kind: str
    selector: Selector
    options: Mapping[str, Any] = field(default_factory=dict)
    id: str = ""
    skip: bool = False

    @classmethod
    def create(
        cls,
        kind: str,
        selector: Optional[SelectorLike] = None,
        options: Optional[Mapping[str, Any]] = None,
        id: Optional[str] = None,
        skip: bool = False,
    ) -> "Step":
        get_step_components(kind)  # fail early on unknown kinds
        if selector is None:
            raise ValueError(f"Step '{kind}' needs a column selector")
        return cls(
            kind=kind,
            selector=as_selector(selector),
            options=FrozenMapping(dict(options or {})),
            id=id or f"{kind}_{uuid.uuid4().hex[:8]}",
            skip=skip,
        )

    def fit(self, table: Table, roles: Mapping[str, Role]) -> FitState:
        calculator, _ = get_step_components(self.kind)
        columns = self.selector.resolve(table, roles)

        config: Dict[str, Any] = dict(self.options)
        config["columns"] = list(columns)
        config["roles"] = dict(roles)

        logger.debug(f"Fitting step {self.id} on columns {columns}")
        params = calculator.fit(table, config)

        return FitState(
            step_id=self.id,
            kind=self.kind,
            columns=tuple(columns),
            outcome_columns=tuple(c for c in columns if roles.get(c) is Role.OUTCOME),
            params=FrozenMapping(dict(params)),
        )

    def apply(self, table: Table, state: Optional[FitState]) -> Table:
        if state is None:
            raise NotFittedError(f"Step '{self.id}' must be fit before it is applied")
        if state.step_id != self.id:
            raise NotFittedError(
                f"Fit state belongs to step '{state.step_id}', not '{self.id}'",
                {"step_id": self.id, "state_step_id": state.step_id},
            )

        calculator, applier = get_step_components(self.kind)
        if calculator.requires_columns:
            # Outcome columns may be absent from prediction data
            missing = [
                c for c in state.columns
                if c not in table and c not in state.outcome_columns
            ]
            if missing:
                raise SchemaError(f"Step '{self.id}' expects columns that are missing: {missing}", missing)

        return applier.apply(table, state.params)

    def describe(self) -> str:
        return f"{self.kind}({self.selector!r})"
