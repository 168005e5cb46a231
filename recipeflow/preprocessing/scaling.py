from typing import Any, Dict, Mapping
import logging

import numpy as np
from sklearn.preprocessing import StandardScaler

from .base import BaseCalculator, BaseApplier, register_step
from ..data.table import ColumnType, Table
from ..exceptions import DegenerateScaleError, SchemaError

logger = logging.getLogger(__name__)


# --- Normalize (center / scale) ---
class NormalizeCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'center': True, 'scale': True, 'columns': [...]}
        center = config.get('center', True)
        scale = config.get('scale', True)
        cols = config.get('columns', [])

        if not cols:
            return {'type': 'normalize', 'columns': [], 'mean': [], 'sd': []}

        non_numeric = [c for c in cols if table.type_of(c) is not ColumnType.NUMERIC]
        if non_numeric:
            raise SchemaError(f"Normalization needs numeric columns: {non_numeric}", non_numeric)

        scaler = StandardScaler(with_mean=True, with_std=True)
        scaler.fit(table.frame[cols].astype(float))

        mean = scaler.mean_.tolist()
        sd = np.sqrt(scaler.var_).tolist()

        if scale:
            degenerate = [c for c, s in zip(cols, sd) if not np.isfinite(s) or s == 0]
            if degenerate:
                raise DegenerateScaleError(degenerate)

        return {
            'type': 'normalize',
            'columns': cols,
            'mean': mean,
            'sd': sd,
            'center': center,
            'scale': scale,
        }


class NormalizeApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        cols = params.get('columns', [])
        mean = params.get('mean')
        sd = params.get('sd')

        valid_cols = [c for c in cols if c in table]
        if not valid_cols:
            return table

        df_out = table.to_pandas()
        col_indices = [cols.index(c) for c in valid_cols]
        X = df_out[valid_cols].to_numpy(dtype=float)

        if params.get('center', True):
            X = X - np.asarray(mean)[col_indices]

        if params.get('scale', True):
            X = X / np.asarray(sd)[col_indices]

        df_out[valid_cols] = X
        return Table(df_out, table.types)


register_step("normalize", NormalizeCalculator, NormalizeApplier)
