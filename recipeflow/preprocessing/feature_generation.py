from itertools import product
from typing import Any, Dict, List, Mapping, Sequence
import logging

import numpy as np

from .base import BaseCalculator, BaseApplier, register_step
from .selectors import as_selector
from ..data.table import ColumnType, Table
from ..exceptions import SchemaError

logger = logging.getLogger(__name__)


# --- Interaction Terms ---
class InteractionCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'terms': [(selector, selector, ...), ...], 'sep': '_x_'}
        terms: Sequence[Sequence[Any]] = config.get('terms', [])
        sep = config.get('sep', '_x_')
        roles = config.get('roles', {})

        interactions: List[tuple] = []
        for term in terms:
            if len(term) < 2:
                raise ValueError(f"An interaction term needs at least two factors, got {term!r}")

            factors = [as_selector(factor).resolve(table, roles) for factor in term]
            if not all(factors):
                logger.warning(f"Interaction term {term!r} matched no columns for some factor; skipped")
                continue

            for combo in product(*factors):
                if len(set(combo)) < len(combo):
                    continue
                interactions.append(tuple(combo))

        used = sorted({c for combo in interactions for c in combo}, key=table.columns.index)
        non_numeric = [c for c in used if table.type_of(c) is not ColumnType.NUMERIC]
        if non_numeric:
            raise SchemaError(
                f"Interactions need numeric or dummy-encoded columns; encode these first: {non_numeric}",
                non_numeric,
            )

        names = [sep.join(combo) for combo in interactions]
        clashes = sorted(set(n for n in names if n in table or names.count(n) > 1))
        if clashes:
            raise SchemaError(f"Interaction columns would collide with existing names: {clashes}", clashes)

        return {
            'type': 'interact',
            'columns': used,
            'interactions': interactions,
            'feature_names': names,
        }


class InteractionApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        interactions = params.get('interactions', [])
        names = params.get('feature_names', [])

        if not interactions:
            return table

        df_out = table.to_pandas()
        types = table.types
        for combo, name in zip(interactions, names):
            values = np.ones(table.n_rows, dtype=float)
            for col in combo:
                values = values * df_out[col].to_numpy(dtype=float)
            df_out[name] = values
            types[name] = ColumnType.NUMERIC

        return Table(df_out, types)


register_step("interact", InteractionCalculator, InteractionApplier)
