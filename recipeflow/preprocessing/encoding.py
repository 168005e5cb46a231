from typing import Any, Dict, List, Mapping
import logging

import numpy as np
import pandas as pd

from .base import BaseCalculator, BaseApplier, register_step
from ..data.table import ColumnType, Table
from ..exceptions import SchemaError, UnknownLevelError

logger = logging.getLogger(__name__)

_CATEGORICAL_TYPES = (ColumnType.NOMINAL, ColumnType.ORDINAL)


def _require_categorical(table: Table, cols: List[str], step: str) -> None:
    bad = [c for c in cols if table.type_of(c) not in _CATEGORICAL_TYPES]
    if bad:
        raise SchemaError(f"{step} needs nominal or ordinal columns, got: {bad}", bad)


def sorted_levels(series: pd.Series) -> List[Any]:
    """Distinct non-missing values in a stable order (category order for categoricals)."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        present = set(series.dropna().unique())
        return [c for c in series.cat.categories if c in present]
    values = series.dropna().unique().tolist()
    try:
        return sorted(values)
    except TypeError:
        # Mixed types: order by string form, then type name
        return sorted(values, key=lambda v: (str(v), type(v).__name__))


# --- Rare Level Collapse ("other") ---
class OtherLevelCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'threshold': 0.05, 'other': 'other', 'allow_novel': True, 'columns': [...]}
        cols = config.get('columns', [])
        threshold = config.get('threshold', 0.05)
        other = config.get('other', 'other')
        allow_novel = config.get('allow_novel', True)

        if threshold <= 0:
            raise ValueError(f"Threshold must be positive, got {threshold}")
        _require_categorical(table, cols, "Rare level collapse")

        kept: Dict[str, tuple] = {}
        collapsed: Dict[str, tuple] = {}
        frequencies: Dict[str, Dict[str, float]] = {}

        for col in cols:
            series = table.frame[col]
            levels = sorted_levels(series)
            if other in levels:
                raise SchemaError(
                    f"Column '{col}' already contains the level '{other}'; choose another name for pooled levels",
                    [col],
                )

            counts = series.dropna().value_counts()
            # A threshold of 1 or more is an absolute count, otherwise a fraction
            if threshold >= 1:
                freq = counts.astype(float)
            else:
                total = counts.sum()
                freq = counts / total if total else counts.astype(float)

            kept[col] = tuple(level for level in levels if freq.get(level, 0) >= threshold)
            collapsed[col] = tuple(level for level in levels if freq.get(level, 0) < threshold)
            frequencies[col] = {str(level): float(freq.get(level, 0)) for level in levels}

            if collapsed[col]:
                logger.debug(f"Collapsing {len(collapsed[col])} rare level(s) of '{col}' into '{other}'")

        return {
            'type': 'other',
            'columns': cols,
            'kept_levels': kept,
            'collapsed_levels': collapsed,
            'frequencies': frequencies,
            'threshold': threshold,
            'other': other,
            'allow_novel': allow_novel,
        }


class OtherLevelApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        cols = params.get('columns', [])
        kept = params.get('kept_levels', {})
        collapsed = params.get('collapsed_levels', {})
        other = params.get('other', 'other')
        allow_novel = params.get('allow_novel', True)

        valid_cols = [c for c in cols if c in table]
        if not valid_cols:
            return table

        df_out = table.to_pandas()
        types = table.types
        for col in valid_cols:
            series = df_out[col].astype(object)
            present = series.notna()
            to_pool = present & ~series.isin(kept[col])
            novel = to_pool & ~series.isin(collapsed[col])

            if novel.any() and not allow_novel:
                raise UnknownLevelError(col, series[novel].unique().tolist())

            df_out[col] = series.where(~to_pool, other)
            types[col] = ColumnType.NOMINAL

        return Table(df_out, types)


# --- Unknown Value Sentinel ---
class UnknownLevelCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'new_level': 'unknown', 'columns': [...]}
        cols = config.get('columns', [])
        new_level = config.get('new_level', 'unknown')

        _require_categorical(table, cols, "Unknown value sentinel")
        for col in cols:
            if new_level in sorted_levels(table.frame[col]):
                raise SchemaError(
                    f"Column '{col}' already contains the level '{new_level}'", [col]
                )

        return {
            'type': 'unknown',
            'columns': cols,
            'new_level': new_level,
        }


class UnknownLevelApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        cols = params.get('columns', [])
        new_level = params.get('new_level', 'unknown')

        valid_cols = [c for c in cols if c in table]
        if not valid_cols:
            return table

        df_out = table.to_pandas()
        types = table.types
        for col in valid_cols:
            series = df_out[col].astype(object)
            df_out[col] = series.where(series.notna(), new_level)
            types[col] = ColumnType.NOMINAL

        return Table(df_out, types)


# --- Dummy / One-Hot Encoder ---
class DummyEncoderCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'drop_first': False, 'sep': '_', 'columns': [...]}
        cols = config.get('columns', [])
        drop_first = config.get('drop_first', False)
        sep = config.get('sep', '_')

        _require_categorical(table, cols, "Dummy encoding")

        levels: Dict[str, tuple] = {}
        indicators: Dict[str, tuple] = {}
        feature_names: Dict[str, tuple] = {}

        for col in cols:
            col_levels = sorted_levels(table.frame[col])
            encoded = col_levels[1:] if drop_first else col_levels
            names = tuple(f"{col}{sep}{level}" for level in encoded)

            if not encoded:
                logger.warning(
                    f"Dummy encoding: column '{col}' has {len(col_levels)} level(s); "
                    f"it produces no indicator columns and will be dropped."
                )

            levels[col] = tuple(col_levels)
            indicators[col] = tuple(encoded)
            feature_names[col] = names

        # New columns must not collide with columns that survive the encoding
        survivors = set(table.columns) - set(cols)
        all_names = [name for names in feature_names.values() for name in names]
        clashes = sorted(set(n for n in all_names if n in survivors or all_names.count(n) > 1))
        if clashes:
            raise SchemaError(f"Dummy columns would collide with existing names: {clashes}", clashes)

        return {
            'type': 'dummy',
            'columns': cols,
            'levels': levels,
            'indicator_levels': indicators,
            'feature_names': feature_names,
            'drop_first': drop_first,
            'sep': sep,
        }


class DummyEncoderApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        cols = params.get('columns', [])
        levels = params.get('levels', {})
        indicators = params.get('indicator_levels', {})
        feature_names = params.get('feature_names', {})

        valid_cols = [c for c in cols if c in table]
        if not valid_cols:
            return table

        df = table.frame
        types = table.types
        encoded: Dict[str, np.ndarray] = {}

        for col in valid_cols:
            series = df[col].astype(object)
            col_levels = list(levels[col])
            # Values outside the fitted level set get code -1 and encode as all zeros
            codes = pd.Categorical(series, categories=col_levels).codes
            missing = series.isna().to_numpy()

            unseen = (codes == -1) & ~missing
            if unseen.any():
                logger.debug(
                    f"Dummy encoding: {int(unseen.sum())} value(s) of '{col}' were not seen during fit "
                    f"and encode as all-zero indicators"
                )

            for level, name in zip(indicators[col], feature_names[col]):
                values = (codes == col_levels.index(level)).astype(float)
                values[missing] = np.nan
                encoded[name] = values
                types[name] = ColumnType.NUMERIC

        df_out = df.drop(columns=valid_cols)
        df_out = pd.concat([df_out, pd.DataFrame(encoded, index=df_out.index)], axis=1)
        for col in valid_cols:
            types.pop(col, None)

        return Table(df_out, types)


register_step("other", OtherLevelCalculator, OtherLevelApplier)
register_step("unknown", UnknownLevelCalculator, UnknownLevelApplier)
register_step("dummy", DummyEncoderCalculator, DummyEncoderApplier)
