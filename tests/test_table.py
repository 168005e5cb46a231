import numpy as np
import pandas as pd
import pytest

from recipeflow.data import ColumnType, Role, RoleMap, Table
from recipeflow.exceptions import SchemaError


def test_types_are_inferred_and_overridable():
    table = Table.from_pandas(
        pd.DataFrame({
            "num": [1.0, 2.0],
            "cat": ["a", "b"],
            "when": pd.to_datetime(["2024-01-01", "2024-01-02"]),
            "flag": [True, False],
        }),
        types={"cat": "ordinal"},
    )
    assert table.types == {
        "num": ColumnType.NUMERIC,
        "cat": ColumnType.ORDINAL,
        "when": ColumnType.DATETIME,
        "flag": ColumnType.NUMERIC,
    }


def test_duplicate_columns_rejected():
    frame = pd.DataFrame([[1, 2]], columns=["a", "a"])
    with pytest.raises(SchemaError):
        Table(frame)


def test_types_for_unknown_columns_rejected():
    with pytest.raises(SchemaError):
        Table.from_dict({"a": [1]}, types={"b": "numeric"})


def test_table_owns_a_copy():
    frame = pd.DataFrame({"a": [1.0, 2.0]})
    table = Table.from_pandas(frame)
    frame.loc[0, "a"] = 99.0
    assert table.column("a").iloc[0] == 1.0


def test_index_is_reset():
    frame = pd.DataFrame({"a": [1, 2, 3]}, index=[10, 20, 30])
    assert list(Table(frame).frame.index) == [0, 1, 2]


def test_select_drop_and_missing_columns():
    table = Table.from_dict({"a": [1], "b": [2], "c": [3]})
    assert table.select(["c", "a"]).columns == ["c", "a"]
    assert table.drop(["b"]).columns == ["a", "c"]
    with pytest.raises(SchemaError):
        table.select(["zzz"])


def test_filter_keeps_original_order():
    table = Table.from_dict({"a": [5, 1, 4, 2]})
    filtered = table.filter(lambda df: df["a"] > 1)
    assert filtered.column("a").tolist() == [5, 4, 2]


def test_with_column_from_callable_and_values():
    table = Table.from_dict({"a": [1.0, 2.0]})
    doubled = table.with_column("b", lambda df: df["a"] * 2)
    assert doubled.column("b").tolist() == [2.0, 4.0]
    assert "b" not in table

    labelled = table.with_column("c", ["x", "y"], ColumnType.NOMINAL)
    assert labelled.type_of("c") is ColumnType.NOMINAL

    with pytest.raises(SchemaError):
        table.with_column("d", [1, 2, 3])


def test_split_partitions_rows_in_order():
    table = Table.from_dict({"a": list(range(6))})
    selected, rest = table.split([4, 1])
    assert selected.column("a").tolist() == [1, 4]
    assert rest.column("a").tolist() == [0, 2, 3, 5]


def test_take_out_of_range():
    table = Table.from_dict({"a": [1, 2]})
    with pytest.raises(IndexError):
        table.take([2])


def test_equals():
    a = Table.from_dict({"x": [1.0, np.nan]})
    b = Table.from_dict({"x": [1.0, np.nan]})
    assert a.equals(b)
    assert not a.equals(b.with_types({"x": "nominal"}))


class TestRoleMap:
    def test_supervised_roles(self):
        table = Table.from_dict({"id": [1], "x": [1.0], "y": [2.0]})
        roles = RoleMap.supervised("y", identifiers=["id"]).assign(table)
        assert roles == {"id": Role.IDENTIFIER, "x": Role.PREDICTOR, "y": Role.OUTCOME}

    def test_outcome_requires_exactly_one(self):
        roles = RoleMap({"a": Role.OUTCOME, "b": Role.OUTCOME})
        assert roles.outcome is None
        with pytest.raises(SchemaError):
            roles.validate(supervised=True)

    def test_update_returns_new_map(self):
        roles = RoleMap.supervised("y")
        updated = roles.update("x", Role.IDENTIFIER)
        assert roles.role_of("x") is Role.PREDICTOR
        assert updated.role_of("x") is Role.IDENTIFIER

    def test_missing_columns(self):
        with pytest.raises(SchemaError):
            RoleMap.supervised("y").assign(Table.from_dict({"x": [1]}))

    def test_outcome_cannot_be_identifier(self):
        with pytest.raises(ValueError):
            RoleMap.supervised("y", identifiers=["y"])

    def test_assigning_twice_gives_same_schema(self):
        table = Table.from_dict({"id": [1, 2], "x": [1.0, 2.0], "z": ["a", "b"], "y": [0.5, 1.5]})
        roles = RoleMap.supervised("y", identifiers=["id"])
        assert roles.assign(table) == roles.assign(table)

        updated = roles.update("z", Role.IDENTIFIER)
        first = updated.assign(table)
        assert updated.assign(table) == first
        assert list(first) == table.columns
        # Re-applying the same update changes nothing
        assert updated.update("z", Role.IDENTIFIER) == updated
        assert updated.update("z", Role.IDENTIFIER).assign(table) == first
