"""Date decomposition step."""

from typing import Any, Dict, List, Mapping, Sequence, Tuple
import logging

import numpy as np
import pandas as pd
from pandas.tseries.holiday import USFederalHolidayCalendar

from .base import BaseCalculator, BaseApplier, register_step
from ..data.table import ColumnType, Table
from ..exceptions import DomainError, SchemaError

logger = logging.getLogger(__name__)

DATE_FEATURES = ("dow", "month", "year", "quarter", "doy", "week")

_DOW_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _to_datetime(series: pd.Series, col: str) -> pd.Series:
    try:
        converted = pd.to_datetime(series)
    except (ValueError, TypeError) as exc:
        raise DomainError(f"Column '{col}' cannot be parsed as dates: {exc}", column=col) from exc
    return converted.dt.tz_localize(None) if converted.dt.tz is not None else converted


def _resolve_holidays(holidays: Any, start: pd.Timestamp, end: pd.Timestamp) -> Dict[str, Tuple[pd.Timestamp, ...]]:
    """Normalize the ``holidays`` option to {suffix: dates}."""
    if holidays is None:
        return {}
    if isinstance(holidays, str):
        if holidays != "us_federal":
            raise ValueError(f"Unknown holiday calendar: {holidays!r}")
        dates = USFederalHolidayCalendar().holidays(start=start, end=end)
        return {"holiday": tuple(pd.Timestamp(d) for d in dates)}
    if isinstance(holidays, Mapping):
        return {
            str(name): tuple(pd.Timestamp(d).normalize() for d in dates)
            for name, dates in holidays.items()
        }
    return {"holiday": tuple(pd.Timestamp(d).normalize() for d in holidays)}


# --- Date Decomposition ---
class DateFeaturesCalculator(BaseCalculator):
    def fit(self, table: Table, config: Dict[str, Any]) -> Dict[str, Any]:
        # Config: {'features': ('dow', 'month'), 'holidays': None | 'us_federal' | [...] | {...}}
        cols = config.get('columns', [])
        features: Sequence[str] = tuple(config.get('features', ("dow", "month")))
        holidays = config.get('holidays')

        unknown = [f for f in features if f not in DATE_FEATURES]
        if unknown:
            raise ValueError(f"Unknown date features {unknown}; choose from {list(DATE_FEATURES)}")

        for col in cols:
            if table.type_of(col) not in (ColumnType.DATETIME, ColumnType.NOMINAL):
                raise SchemaError(f"Date decomposition needs a date column, got '{col}'", [col])
            _to_datetime(table.frame[col], col)

        # Calendar holidays are materialized once so baking is independent of the data's date range
        holiday_dates = _resolve_holidays(
            holidays, pd.Timestamp("1900-01-01"), pd.Timestamp("2100-12-31")
        )

        feature_names: Dict[str, List[str]] = {}
        for col in cols:
            names = [f"{col}_{f}" for f in features] + [f"{col}_{suffix}" for suffix in holiday_dates]
            feature_names[col] = names

        all_names = [n for names in feature_names.values() for n in names]
        clashes = sorted(set(n for n in all_names if n in table))
        if clashes:
            raise SchemaError(f"Date feature columns would collide with existing names: {clashes}", clashes)

        return {
            'type': 'date',
            'columns': cols,
            'features': tuple(features),
            'holiday_dates': holiday_dates,
            'feature_names': feature_names,
        }


class DateFeaturesApplier(BaseApplier):
    def apply(self, table: Table, params: Mapping[str, Any]) -> Table:
        cols = params.get('columns', [])
        features = params.get('features', ())
        holiday_dates = params.get('holiday_dates', {})

        valid_cols = [c for c in cols if c in table]
        if not valid_cols:
            return table

        df_out = table.to_pandas()
        types = table.types
        for col in valid_cols:
            dates = _to_datetime(df_out[col], col)
            missing = dates.isna()

            for feature in features:
                name = f"{col}_{feature}"
                if feature == "dow":
                    values = pd.Categorical.from_codes(
                        dates.dt.dayofweek.fillna(-1).astype(int), categories=_DOW_LABELS
                    )
                    df_out[name] = pd.Series(values, index=df_out.index).astype(object)
                    types[name] = ColumnType.NOMINAL
                elif feature == "month":
                    values = pd.Categorical.from_codes(
                        (dates.dt.month.fillna(0).astype(int) - 1), categories=_MONTH_LABELS
                    )
                    df_out[name] = pd.Series(values, index=df_out.index).astype(object)
                    types[name] = ColumnType.NOMINAL
                else:
                    accessor = {
                        "year": lambda d: d.dt.year,
                        "quarter": lambda d: d.dt.quarter,
                        "doy": lambda d: d.dt.dayofyear,
                        "week": lambda d: d.dt.isocalendar().week,
                    }[feature]
                    df_out[name] = accessor(dates).astype(float)
                    types[name] = ColumnType.NUMERIC

            normalized = dates.dt.normalize()
            for suffix, days in holiday_dates.items():
                name = f"{col}_{suffix}"
                values = normalized.isin(days).astype(float)
                df_out[name] = values.where(~missing, np.nan)
                types[name] = ColumnType.NUMERIC

        return Table(df_out, types)


register_step("date", DateFeaturesCalculator, DateFeaturesApplier)
