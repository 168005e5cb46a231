from .table import ColumnType, Table, infer_column_type
from .roles import Role, RoleMap
from .split import Fold, InitialSplit, Resamples, initial_split, validation_split, vfold_cv

__all__ = [
    "ColumnType",
    "Table",
    "infer_column_type",
    "Role",
    "RoleMap",
    "Fold",
    "InitialSplit",
    "Resamples",
    "initial_split",
    "validation_split",
    "vfold_cv",
]
