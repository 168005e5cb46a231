"""Recipe: an ordered, immutable composition of preprocessing steps."""

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from ..config import get_settings
from ..data.roles import Role, RoleMap
from ..data.table import ColumnType, Table
from ..exceptions import NotRetainedError
from .base import FitState, Step
from .selectors import AnyOf, SelectorLike, all_predictors, as_selector

logger = logging.getLogger(__name__)


class Recipe:
    """
    Ordered steps plus column roles.

    Every builder method returns a new Recipe; the receiver is never changed,
    so one base recipe can be extended into several variants safely.
    """

    def __init__(
        self,
        outcome: Optional[str] = None,
        identifiers: Iterable[str] = (),
        roles: Optional[RoleMap] = None,
        steps: Sequence[Step] = (),
        retain: Optional[bool] = None,
    ):
        if roles is None:
            identifiers = list(identifiers)
            roles = RoleMap.supervised(outcome, identifiers) if outcome else RoleMap(
                {c: Role.IDENTIFIER for c in identifiers}
            )
        elif outcome or identifiers:
            raise ValueError("Pass either 'roles' or 'outcome'/'identifiers', not both")

        self._roles = roles
        self._steps: Tuple[Step, ...] = tuple(steps)
        self._retain = get_settings().RETAIN_TRAINING if retain is None else bool(retain)

        ids = [s.id for s in self._steps]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Step ids must be unique, got {ids}")

    def _replace(self, **changes: Any) -> "Recipe":
        values = {"roles": self._roles, "steps": self._steps, "retain": self._retain}
        values.update(changes)
        return Recipe(**values)

    @property
    def roles(self) -> RoleMap:
        return self._roles

    @property
    def steps(self) -> Tuple[Step, ...]:
        return self._steps

    @property
    def retain(self) -> bool:
        return self._retain

    @property
    def outcome(self) -> Optional[str]:
        return self._roles.outcome

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        steps = ", ".join(s.kind for s in self._steps)
        return f"Recipe(roles={self._roles!r}, steps=[{steps}])"

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------
    def update_role(self, columns: Union[str, Iterable[str]], role: Union[Role, str]) -> "Recipe":
        return self._replace(roles=self._roles.update(columns, role))

    def with_retain(self, retain: bool) -> "Recipe":
        return self._replace(retain=retain)

    def add_step(self, step: Step) -> "Recipe":
        return self._replace(steps=self._steps + (step,))

    def step(
        self,
        kind: str,
        selector: SelectorLike,
        skip: bool = False,
        id: Optional[str] = None,
        **options: Any,
    ) -> "Recipe":
        return self.add_step(Step.create(kind, selector, options, id=id, skip=skip))

    def step_log(self, selector: SelectorLike, base: float = math.e, offset: float = 0.0, skip: bool = False) -> "Recipe":
        return self.step("log", selector, skip=skip, base=base, offset=offset)

    def step_other(
        self,
        selector: SelectorLike,
        threshold: float = 0.05,
        other: str = "other",
        allow_novel: bool = True,
    ) -> "Recipe":
        return self.step("other", selector, threshold=threshold, other=other, allow_novel=allow_novel)

    def step_unknown(self, selector: SelectorLike, new_level: str = "unknown") -> "Recipe":
        return self.step("unknown", selector, new_level=new_level)

    def step_dummy(self, selector: SelectorLike, drop_first: bool = False, sep: str = "_") -> "Recipe":
        return self.step("dummy", selector, drop_first=drop_first, sep=sep)

    def step_zv(self, selector: Optional[SelectorLike] = None) -> "Recipe":
        return self.step("zv", selector if selector is not None else all_predictors())

    def step_normalize(self, selector: SelectorLike, center: bool = True, scale: bool = True) -> "Recipe":
        return self.step("normalize", selector, center=center, scale=scale)

    def step_interact(self, terms: Sequence[Sequence[SelectorLike]], sep: str = "_x_") -> "Recipe":
        terms = [tuple(term) for term in terms]
        factors = tuple(as_selector(f) for term in terms for f in term)
        return self.step("interact", AnyOf(factors), terms=terms, sep=sep)

    def step_date(
        self,
        selector: SelectorLike,
        features: Sequence[str] = ("dow", "month"),
        holidays: Any = None,
    ) -> "Recipe":
        return self.step("date", selector, features=tuple(features), holidays=holidays)

    def step_rm(self, selector: SelectorLike) -> "Recipe":
        return self.step("rm", selector)

    def step_impute(self, selector: SelectorLike, strategy: str = "mean") -> "Recipe":
        return self.step("impute", selector, strategy=strategy)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def summary(self, table: Table) -> pd.DataFrame:
        """Columns of ``table`` with their types and the roles this recipe gives them."""
        roles = self._roles.assign(table)
        return _schema_frame(table.types, roles)

    def prepare(self, table: Table) -> "PreparedRecipe":
        """
        Fit every step, in order, on the progressively transformed training table.
        Each step sees the output of the previous one.
        """
        return self.fit_transform(table)[0]

    def fit_transform(self, table: Table) -> Tuple["PreparedRecipe", Table]:
        """Prepare the recipe and also return the transformed training table, retained or not."""
        roles = self._roles.assign(table)
        logger.info(f"Preparing recipe with {len(self._steps)} step(s) on {table.n_rows} rows")

        current = table
        states: List[FitState] = []
        for i, step in enumerate(self._steps):
            logger.debug(f"Step {i}: {step.id} ({step.kind})")
            state = step.fit(current, roles)
            current = step.apply(current, state)
            # New columns become predictors; removed columns drop out of the role map
            roles = {c: roles.get(c, Role.PREDICTOR) for c in current.columns}
            states.append(state)

        logger.info(f"Recipe prepared: {len(table.columns)} -> {len(current.columns)} columns")
        prepared = PreparedRecipe(
            recipe=self,
            states=tuple(states),
            input_types=table.types,
            output_types=current.types,
            roles=roles,
            training=current if self._retain else None,
        )
        return prepared, current


class PreparedRecipe:
    """A recipe whose steps have all been fit. Immutable."""

    def __init__(
        self,
        recipe: Recipe,
        states: Tuple[FitState, ...],
        input_types: Mapping[str, ColumnType],
        output_types: Mapping[str, ColumnType],
        roles: Mapping[str, Role],
        training: Optional[Table] = None,
    ):
        self._recipe = recipe
        self._states = tuple(states)
        self._input_types = dict(input_types)
        self._output_types = dict(output_types)
        self._roles = dict(roles)
        self._training = training

    @property
    def recipe(self) -> Recipe:
        return self._recipe

    @property
    def states(self) -> Tuple[FitState, ...]:
        return self._states

    @property
    def roles(self) -> Dict[str, Role]:
        return dict(self._roles)

    @property
    def outcome(self) -> Optional[str]:
        outcomes = [c for c, r in self._roles.items() if r is Role.OUTCOME]
        return outcomes[0] if len(outcomes) == 1 else None

    @property
    def predictors(self) -> List[str]:
        return [c for c, r in self._roles.items() if r is Role.PREDICTOR]

    @property
    def retained(self) -> bool:
        return self._training is not None

    def bake(self, table: Optional[Table] = None) -> Table:
        """
        Apply the fitted steps to ``table``. Without a table, return the
        retained, already transformed training data.
        """
        if table is None:
            if self._training is None:
                raise NotRetainedError()
            return self._training

        current = table
        for step, state in zip(self._recipe.steps, self._states):
            if step.skip:
                continue
            current = step.apply(current, state)
        return current

    def summary(self) -> pd.DataFrame:
        return _schema_frame(self._output_types, self._roles)

    def tidy(self) -> pd.DataFrame:
        """One row per step with the quantities it learned."""
        rows = []
        for number, (step, state) in enumerate(zip(self._recipe.steps, self._states), start=1):
            params = {k: v for k, v in state.params.items() if k not in ('type', 'columns')}
            rows.append({
                "number": number,
                "id": step.id,
                "kind": step.kind,
                "columns": list(state.columns),
                "skip": step.skip,
                "params": params,
            })
        return pd.DataFrame(rows, columns=["number", "id", "kind", "columns", "skip", "params"])

    def __repr__(self) -> str:
        return (
            f"PreparedRecipe(steps={len(self._states)}, predictors={len(self.predictors)}, "
            f"outcome={self.outcome!r}, retained={self.retained})"
        )


def prepare(recipe: Recipe, table: Table) -> PreparedRecipe:
    return recipe.prepare(table)


def bake(prepared: PreparedRecipe, table: Optional[Table] = None) -> Table:
    return prepared.bake(table)


def _schema_frame(types: Mapping[str, ColumnType], roles: Mapping[str, Role]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"variable": c, "type": types[c].value, "role": roles.get(c, Role.UNASSIGNED).value}
            for c in types
        ],
        columns=["variable", "type", "role"],
    )
