from typing import Any, Dict, Mapping
import logging

from .base import BaseCalculator, BaseApplier, register_step
from ..data.table import Table

logger = logging.getLogger(__name__)


# --- Zero Variance Filter ---
class ZeroVarianceCalculator(BaseCalculator):
    requires_columns = False

    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        cols = config.get('columns', [])

        # Constant means at most one distinct non-missing value
        distinct = {col: int(table.frame[col].nunique(dropna=True)) for col in cols}
        dropped = [col for col in cols if distinct[col] <= 1]

        if dropped:
            logger.info(f"Zero variance filter removes {len(dropped)} column(s): {dropped}")

        return {
            'type': 'zv',
            'columns': cols,
            'dropped_columns': dropped,
            'distinct_counts': distinct,
        }


# --- Remove Columns ---
class RemoveColumnsCalculator(BaseCalculator):
    requires_columns = False

    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        cols = config.get('columns', [])
        return {
            'type': 'rm',
            'columns': cols,
            'dropped_columns': list(cols),
        }


class DropColumnsApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        # Drops whatever fitted columns are present; the data's own variance is never re-checked
        dropped = [c for c in params.get('dropped_columns', []) if c in table]
        if not dropped:
            return table
        return table.drop(dropped)


register_step("zv", ZeroVarianceCalculator, DropColumnsApplier)
register_step("rm", RemoveColumnsCalculator, DropColumnsApplier)
