from __future__ import annotations

import pytest
from pydantic import ValidationError

from log_lander.kernel.step_registry import UnknownStepError
from log_lander.usecases.config_models import AppConfig
from log_lander.usecases.steps import AppendToShard, ExpandLogEvents, FrameRecords, ReceiveBatch
from log_lander.usecases.wiring import build_scenario, build_step_registry


def test_default_pipeline_is_bound_in_order() -> None:
    config = AppConfig.model_validate({"version": 1})
    scenario = build_scenario(config, {"writers": lambda shard: None})

    assert scenario.scenario_id == "land_logs"
    assert [spec.name for spec in scenario.steps] == [
        "receive_batch",
        "frame_records",
        "expand_log_events",
        "append_to_shard",
    ]
    kinds = [type(spec.step) for spec in scenario.steps]
    assert kinds == [ReceiveBatch, FrameRecords, ExpandLogEvents, AppendToShard]


def test_append_to_shard_requires_writers_wiring() -> None:
    config = AppConfig.model_validate({"version": 1})
    with pytest.raises(KeyError, match="writers"):
        build_scenario(config, {})


def test_unknown_step_name_fails_fast() -> None:
    config = AppConfig.model_validate({"version": 1, "pipeline": {"steps": [{"name": "missing"}]}})
    with pytest.raises(UnknownStepError):
        build_scenario(config, {"writers": lambda shard: None})


def test_pipeline_needs_at_least_one_step() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"version": 1, "pipeline": {"steps": []}})


def test_registry_knows_every_default_step() -> None:
    registry = build_step_registry(AppConfig.model_validate({"version": 1}), {})
    for name in ("receive_batch", "frame_records", "expand_log_events"):
        assert callable(registry.get(name)({}, {}))
