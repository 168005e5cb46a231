import pandas as pd
import pytest

from recipeflow.data import ColumnType, Role, RoleMap, Table
from recipeflow.exceptions import SchemaError
from recipeflow.preprocessing import (
    all_nominal_predictors,
    all_numeric,
    all_numeric_predictors,
    all_outcomes,
    all_predictors,
    by_name,
    by_type,
    starts_with,
)


@pytest.fixture
def table_and_roles():
    table = Table.from_pandas(pd.DataFrame({
        "id": [1, 2],
        "x1": [1.0, 2.0],
        "x2": [3.0, 4.0],
        "color": ["r", "g"],
        "y": [0.5, 0.7],
    }))
    roles = RoleMap.supervised("y", identifiers=["id"]).assign(table)
    return table, roles


def test_role_and_type_selectors(table_and_roles):
    table, roles = table_and_roles
    assert all_predictors().resolve(table, roles) == ["x1", "x2", "color"]
    assert all_outcomes().resolve(table, roles) == ["y"]
    assert all_numeric_predictors().resolve(table, roles) == ["x1", "x2"]
    assert all_nominal_predictors().resolve(table, roles) == ["color"]


def test_identifiers_never_selected(table_and_roles):
    table, roles = table_and_roles
    assert "id" not in all_numeric().resolve(table, roles)
    assert by_name("id", "x1").resolve(table, roles) == ["x1"]


def test_by_name_keeps_given_order(table_and_roles):
    table, roles = table_and_roles
    assert by_name("x2", "x1").resolve(table, roles) == ["x2", "x1"]


def test_by_name_missing_column(table_and_roles):
    table, roles = table_and_roles
    with pytest.raises(SchemaError):
        by_name("nope").resolve(table, roles)


def test_composition(table_and_roles):
    table, roles = table_and_roles
    assert (all_predictors() & ~starts_with("x")).resolve(table, roles) == ["color"]
    assert (by_type(ColumnType.NOMINAL) | all_outcomes()).resolve(table, roles) == ["color", "y"]


def test_strings_become_name_selectors(table_and_roles):
    from recipeflow.preprocessing.selectors import as_selector

    table, roles = table_and_roles
    assert as_selector("x1").resolve(table, roles) == ["x1"]
    assert as_selector(["color", "x2"]).resolve(table, roles) == ["color", "x2"]
    assert Role.PREDICTOR is roles["x1"]
