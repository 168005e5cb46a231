from typing import Any, Dict, Mapping
import logging
import math

import numpy as np
import pandas as pd

from .base import BaseCalculator, BaseApplier, register_step
from ..data.table import ColumnType, Table
from ..exceptions import DomainError, SchemaError

logger = logging.getLogger(__name__)


# --- Log Transform ---
class LogTransformCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'base': e, 'offset': 0.0, 'columns': [...]}
        cols = config.get('columns', [])
        base = config.get('base', math.e)
        offset = float(config.get('offset', 0.0))

        if base <= 0 or base == 1:
            raise ValueError(f"Log base must be positive and not 1, got {base}")

        non_numeric = [c for c in cols if table.type_of(c) is not ColumnType.NUMERIC]
        if non_numeric:
            raise SchemaError(f"Log transform needs numeric columns: {non_numeric}", non_numeric)

        return {
            'type': 'log',
            'columns': cols,
            'base': base,
            'offset': offset,
        }


class LogTransformApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        cols = params.get('columns', [])
        base = params.get('base', math.e)
        offset = params.get('offset', 0.0)

        valid_cols = [c for c in cols if c in table]
        if not valid_cols:
            return table

        df_out = table.to_pandas()
        for col in valid_cols:
            shifted = pd.to_numeric(df_out[col]) + offset
            invalid = shifted.notna() & (shifted <= 0)
            if invalid.any():
                raise DomainError(
                    f"Log transform of '{col}' requires values greater than {-offset}; "
                    f"found {int(invalid.sum())} invalid value(s). Configure an offset to shift them.",
                    column=col,
                )
            df_out[col] = np.log(shifted.astype(float)) / np.log(base)

        return Table(df_out, table.types)


register_step("log", LogTransformCalculator, LogTransformApplier)
