from __future__ import annotations

import pytest

from capflow.errors import SettingsError
from capflow.settings import OrchestratorSettings


def test_defaults():
    settings = OrchestratorSettings()

    assert settings.max_parallelism is None
    assert settings.dependency_policy == "best_effort"
    assert settings.telemetry_backend == "null"
    assert settings.low_confidence_threshold == 0.7


def test_from_env_reads_capflow_variables():
    settings = OrchestratorSettings.from_env(
        {
            "CAPFLOW_MAX_PARALLELISM": "4",
            "CAPFLOW_DEPENDENCY_POLICY": " STRICT ",
            "CAPFLOW_TELEMETRY_BACKEND": "inmemory",
            "CAPFLOW_LOW_CONFIDENCE_THRESHOLD": "0.5",
        }
    )

    assert settings.max_parallelism == 4
    assert settings.dependency_policy == "strict"
    assert settings.telemetry_backend == "inmemory"
    assert settings.low_confidence_threshold == 0.5


def test_zero_parallelism_means_unbounded():
    assert OrchestratorSettings.from_env({"CAPFLOW_MAX_PARALLELISM": "0"}).max_parallelism is None


def test_from_env_uses_process_environment(monkeypatch):
    monkeypatch.setenv("CAPFLOW_TELEMETRY_BACKEND", "otel")
    monkeypatch.delenv("CAPFLOW_MAX_PARALLELISM", raising=False)

    settings = OrchestratorSettings.from_env()

    assert settings.telemetry_backend == "otel"
    assert settings.max_parallelism is None


@pytest.mark.parametrize(
    "environ",
    [
        {"CAPFLOW_MAX_PARALLELISM": "many"},
        {"CAPFLOW_LOW_CONFIDENCE_THRESHOLD": "1.5"},
        {"CAPFLOW_DEPENDENCY_POLICY": "optimistic"},
    ],
)
def test_invalid_values_raise_settings_error(environ):
    with pytest.raises(SettingsError):
        OrchestratorSettings.from_env(environ)


def test_non_positive_parallelism_is_rejected():
    with pytest.raises(SettingsError):
        OrchestratorSettings(max_parallelism=0)
