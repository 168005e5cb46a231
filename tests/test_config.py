import logging

import pytest
from pydantic import ValidationError

from recipeflow.config import Settings, get_settings, setup_logging
from recipeflow.exceptions import EstimatorError, RecipeflowError, SchemaError, TuningCancelled, TuningError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # no stray .env file
    for name in ("RANDOM_STATE", "N_JOBS", "TIE_TOLERANCE", "RETAIN_TRAINING", "LOG_LEVEL", "LOG_FILE"):
        monkeypatch.delenv(f"RECIPEFLOW_{name}", raising=False)
    return monkeypatch


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_defaults(clean_env):
    settings = Settings()
    assert settings.RANDOM_STATE == 42
    assert settings.N_JOBS == 1
    assert settings.RETAIN_TRAINING is True
    assert settings.LOG_FILE is None


def test_environment_overrides(clean_env):
    clean_env.setenv("RECIPEFLOW_RANDOM_STATE", "7")
    clean_env.setenv("RECIPEFLOW_N_JOBS", "-1")
    clean_env.setenv("RECIPEFLOW_LOG_LEVEL", "debug")
    settings = get_settings()
    assert settings.RANDOM_STATE == 7
    assert settings.N_JOBS == -1
    assert settings.LOG_LEVEL == "DEBUG"


def test_env_file(clean_env, tmp_path):
    (tmp_path / ".env").write_text("RECIPEFLOW_RETAIN_TRAINING=false\n")
    assert Settings().RETAIN_TRAINING is False


def test_settings_are_cached(clean_env):
    assert get_settings() is get_settings()


@pytest.mark.parametrize(
    "name,value",
    [("N_JOBS", "0"), ("LOG_LEVEL", "LOUD"), ("TIE_TOLERANCE", "-1")],
)
def test_invalid_values(clean_env, name, value):
    clean_env.setenv(f"RECIPEFLOW_{name}", value)
    with pytest.raises(ValidationError):
        Settings()


def test_setup_logging_with_file(clean_env, restore_root_logger, tmp_path):
    log_file = tmp_path / "logs" / "recipeflow.log"
    setup_logging(log_level="warning", log_file=str(log_file))

    assert restore_root_logger.level == logging.WARNING
    assert len(restore_root_logger.handlers) == 2

    logging.getLogger("recipeflow.test").warning("written to file")
    for handler in restore_root_logger.handlers:
        handler.flush()
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_setup_logging_console_only(clean_env, restore_root_logger):
    setup_logging()
    assert restore_root_logger.level == logging.INFO
    assert len(restore_root_logger.handlers) == 1
    assert logging.getLogger("joblib").level == logging.WARNING


def test_error_hierarchy():
    cause = RuntimeError("boom")
    error = EstimatorError("training failed", cause=cause)
    assert isinstance(error, RecipeflowError)
    assert error.cause is cause
    assert issubclass(TuningCancelled, TuningError)

    schema = SchemaError("missing", ["a", "b"])
    assert schema.detail == {"columns": ["a", "b"]}
    assert str(schema) == "missing"
