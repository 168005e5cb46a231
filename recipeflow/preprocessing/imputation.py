from typing import Any, Dict, Mapping
import logging

import numpy as np
from sklearn.impute import SimpleImputer

from .base import BaseCalculator, BaseApplier, register_step
from ..data.table import ColumnType, Table
from ..exceptions import SchemaError

logger = logging.getLogger(__name__)

_STRATEGIES = {'mean': 'mean', 'median': 'median', 'mode': 'most_frequent'}


# --- Simple Imputer (Mean, Median, Mode) ---
class ImputeCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'strategy': 'mean' | 'median' | 'mode', 'columns': [...]}
        strategy = config.get('strategy', 'mean')
        cols = config.get('columns', [])

        if strategy not in _STRATEGIES:
            raise ValueError(f"Unknown imputation strategy '{strategy}'; choose from {list(_STRATEGIES)}")

        if not cols:
            return {'type': 'impute', 'strategy': strategy, 'columns': [], 'fill_values': {}}

        if strategy in ('mean', 'median'):
            non_numeric = [c for c in cols if table.type_of(c) is not ColumnType.NUMERIC]
            if non_numeric:
                raise SchemaError(f"{strategy} imputation needs numeric columns: {non_numeric}", non_numeric)
            X = table.frame[cols].astype(float)
        else:
            X = table.frame[cols].astype(object)
            X = X.where(X.notna(), np.nan)

        imputer = SimpleImputer(strategy=_STRATEGIES[strategy], keep_empty_features=True)
        imputer.fit(X)

        fill_values = {}
        for col, value in zip(cols, imputer.statistics_.tolist()):
            if table.frame[col].notna().any():
                fill_values[col] = value
            else:
                logger.warning(f"Column '{col}' has no observed values in the training data; it is left unimputed")

        missing_counts = {c: int(n) for c, n in table.frame[cols].isna().sum().items()}

        return {
            'type': 'impute',
            'strategy': strategy,
            'columns': cols,
            'fill_values': fill_values,
            'missing_counts': missing_counts,
        }


class ImputeApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        fill_values = params.get('fill_values', {})

        valid_cols = [c for c in params.get('columns', []) if c in table and c in fill_values]
        if not valid_cols:
            return table

        df_out = table.to_pandas()
        for col in valid_cols:
            series = df_out[col]
            if series.isna().any():
                if series.dtype.kind in 'biu':
                    series = series.astype(float)
                df_out[col] = series.where(series.notna(), fill_values[col])

        return Table(df_out, table.types)


register_step("impute", ImputeCalculator, ImputeApplier)
