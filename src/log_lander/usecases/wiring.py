from __future__ import annotations

from typing import Any

from log_lander.kernel.scenario import Scenario, StepSpec
from log_lander.kernel.step_registry import StepRegistry
from log_lander.usecases.config_models import AppConfig
from log_lander.usecases.steps import AppendToShard, ExpandLogEvents, FrameRecords, ReceiveBatch


def build_step_registry(config: AppConfig, wiring: dict[str, object]) -> StepRegistry:
    # Step registry is built from config + wiring; steps pull ports from wiring by name.
    _ = config
    registry = StepRegistry()
    registry.register("receive_batch", lambda cfg, w: ReceiveBatch())
    registry.register("frame_records", lambda cfg, w: FrameRecords())
    registry.register("expand_log_events", lambda cfg, w: ExpandLogEvents())
    registry.register(
        "append_to_shard",
        lambda cfg, w: AppendToShard(writers=_require(w, "writers")),
    )
    return registry


def build_scenario(config: AppConfig, wiring: dict[str, object]) -> Scenario:
    """Bind the configured pipeline, in declared order, to ready step instances.

    Step names and configs are already validated by PipelineConfig; an unknown
    name raises UnknownStepError and a missing wiring key raises KeyError.
    """
    registry = build_step_registry(config, wiring)
    steps = [
        StepSpec(name=decl.name, step=registry.get(decl.name)(decl.config, wiring))
        for decl in config.pipeline.steps
    ]
    return Scenario(scenario_id=config.scenario.name, steps=steps)


def _require(wiring: dict[str, object], key: str) -> Any:
    # Wiring must provide required ports; raise KeyError to fail fast.
    if key not in wiring:
        raise KeyError(f"Missing wiring dependency: {key}")
    return wiring[key]
