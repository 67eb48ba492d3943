from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from log_lander.domain.messages import Codec
from log_lander.domain.projection import PARTITION_FIELDS, PartitionField, ProjectionSpec

# Config models map YAML sections to typed structures; every model rejects unknown keys.

DEFAULT_STEPS: tuple[str, ...] = ("receive_batch", "frame_records", "expand_log_events", "append_to_shard")


class StepDecl(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    config: dict[str, Any] = Field(default_factory=dict)


class PipelineConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    steps: list[StepDecl] = Field(
        default_factory=lambda: [StepDecl(name=name) for name in DEFAULT_STEPS],
        min_length=1,
    )


class ScenarioConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "land_logs"
    description: str | None = None


class PartitionFieldConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: Literal["integer", "string"] = "integer"
    range: tuple[int, int]
    digits: int

    @model_validator(mode="after")
    def _check_width(self) -> PartitionFieldConfig:
        lo, hi = self.range
        if lo > hi:
            raise ValueError("range lower bound exceeds upper bound")
        if len(str(hi)) > self.digits:
            raise ValueError(f"digits={self.digits} cannot hold {hi}")
        return self


def _default_fields() -> dict[str, PartitionFieldConfig]:
    return {
        "year": PartitionFieldConfig(range=(2020, 2035), digits=4),
        "month": PartitionFieldConfig(range=(1, 12), digits=2),
        "day": PartitionFieldConfig(range=(1, 31), digits=2),
        "hour": PartitionFieldConfig(range=(0, 23), digits=2),
    }


class ProjectionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    prefix: str = ""
    template: str = "{prefix}year={year}/month={month}/day={day}/hour={hour}/"
    fields: dict[str, PartitionFieldConfig] = Field(default_factory=_default_fields)

    @field_validator("fields")
    @classmethod
    def _all_fields_present(cls, value: dict[str, PartitionFieldConfig]) -> dict[str, PartitionFieldConfig]:
        if set(value) != set(PARTITION_FIELDS):
            raise ValueError(f"projection.fields must define exactly {list(PARTITION_FIELDS)}")
        return value

    @field_validator("template")
    @classmethod
    def _template_ends_with_slash(cls, value: str) -> str:
        # Objects are listed per partition prefix; the prefix must be a directory.
        if not value.endswith("/"):
            raise ValueError("projection.template must end with '/'")
        return value


class ReceiverConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    codec: Codec = Codec.GZIP


class BufferConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    size_bytes: int = Field(default=1024 * 1024, gt=0)
    interval_seconds: float = Field(default=60.0, gt=0)


class RetryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    max_attempts: int = Field(default=3, ge=1)
    backoff_ms: int = Field(default=200, ge=0)
    multiplier: float = Field(default=2.0, ge=1.0)
    max_backoff_ms: int = Field(default=5000, ge=0)


class WriterConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    buffer: BufferConfig = Field(default_factory=BufferConfig)
    compression: Codec = Codec.GZIP
    retry: RetryConfig = Field(default_factory=RetryConfig)
    auto_redrive: bool = True
    object_prefix: str = ""


class FileSystemStorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    root: str


class S3StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bucket: str
    region: str | None = None
    endpoint_url: str | None = None


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["memory", "filesystem", "s3"] = "memory"
    filesystem: FileSystemStorageConfig | None = None
    s3: S3StorageConfig | None = None

    @model_validator(mode="after")
    def _require_section(self) -> StorageConfig:
        # The section for the selected kind is mandatory to avoid silent defaults.
        if self.kind == "filesystem" and self.filesystem is None:
            raise ValueError("storage.filesystem is required when kind is 'filesystem'")
        if self.kind == "s3" and self.s3 is None:
            raise ValueError("storage.s3 is required when kind is 's3'")
        return self


class QueryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    max_parallel_reads: int = Field(default=8, ge=1)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    sink: Literal["stdout", "jsonl", "none"] = "stdout"
    path: str | None = None
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @model_validator(mode="after")
    def _require_path(self) -> LoggingConfig:
        if self.sink == "jsonl" and not self.path:
            raise ValueError("logging.path is required when sink is 'jsonl'")
        return self


class AppConfig(BaseModel):
    # Top-level typed view of configuration.
    model_config = ConfigDict(extra="forbid")
    version: int
    scenario: ScenarioConfig = Field(default_factory=ScenarioConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    receiver: ReceiverConfig = Field(default_factory=ReceiverConfig)
    writer: WriterConfig = Field(default_factory=WriterConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def build_projection_spec(config: AppConfig) -> ProjectionSpec:
    # Built once per process and threaded into both the writer and the query side.
    projection = config.projection
    fields = tuple(
        PartitionField(
            name=name,
            lo=projection.fields[name].range[0],
            hi=projection.fields[name].range[1],
            digits=projection.fields[name].digits,
            type=projection.fields[name].type,
        )
        for name in PARTITION_FIELDS
    )
    return ProjectionSpec(prefix=projection.prefix, template=projection.template, fields=fields)
