import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from ..data.table import Table

PREDICTION_MODES = ("numeric", "class", "prob")


class TuneParameter:
    """Placeholder for a hyperparameter whose value is chosen by tuning."""

    def __init__(self, id: Optional[str] = None):
        self.id = id

    def __repr__(self) -> str:
        return f"tune({self.id!r})" if self.id else "tune()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TuneParameter) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("tune", self.id))


def tune(id: Optional[str] = None) -> TuneParameter:
    return TuneParameter(id)


def is_tune(value: Any) -> bool:
    return isinstance(value, TuneParameter)


class Model(ABC):
    """A trained, immutable model. Only consumed through ``predict``."""

    @property
    @abstractmethod
    def problem_type(self) -> str:
        """Returns 'classification' or 'regression'."""
        pass

    @property
    def classes(self) -> Optional[List[Any]]:
        return None

    @abstractmethod
    def predict(self, features: Table, mode: str) -> Union[pd.Series, pd.DataFrame]:
        """
        Generates predictions.
        'numeric' and 'class' return a Series; 'prob' returns a DataFrame
        with one column per class.
        """
        pass


class Estimator(ABC):
    """
    Model specification: an algorithm plus hyperparameter values, some of
    which may still be ``tune()`` placeholders. Estimators are values;
    ``set_params`` returns a new one.
    """

    def __init__(self, **params: Any):
        self._params: Dict[str, Any] = dict(params)

    @property
    @abstractmethod
    def problem_type(self) -> str:
        """Returns 'classification' or 'regression'."""
        pass

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    def tunable(self) -> List[str]:
        """Names of the hyperparameters still bound to ``tune()``."""
        return [name for name, value in self._params.items() if is_tune(value)]

    def tune_ids(self) -> Dict[str, str]:
        """Grid name for each tunable parameter (the ``tune(id)`` label or the parameter name)."""
        return {name: (self._params[name].id or name) for name in self.tunable()}

    def set_params(self, **values: Any) -> "Estimator":
        unknown = [k for k in values if k not in self._params and k not in self.accepted_params()]
        if unknown:
            raise ValueError(f"{self.name} does not accept parameters: {unknown}")
        clone = copy.copy(self)
        clone._params = {**self._params, **values}
        return clone

    def accepted_params(self) -> List[str]:
        return list(self._params)

    @abstractmethod
    def train(self, features: Table, outcome: pd.Series, hyperparameters: Mapping[str, Any]) -> Model:
        """
        Trains the model. Returns an immutable Model.
        """
        pass

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self._params.items())
        return f"{self.name}({params})"
