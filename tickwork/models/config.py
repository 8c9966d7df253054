from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from tickwork.models.job import JobKind
from tickwork.scheduling.cron import DEFAULT_SEARCH_YEARS, CronExpression
from tickwork.utils.exceptions import ParseError

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseModel):
    """Structured logging settings"""

    level: LogLevel = Field("INFO", description="Minimum log level")
    json_output: bool = Field(True, description="Render JSON instead of console")
    add_timestamp: bool = Field(True, description="Add ISO timestamp to entries")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class SchedulerSettings(BaseModel):
    """Engine settings applied by Scheduler.from_config"""

    cron_search_years: int = Field(
        DEFAULT_SEARCH_YEARS,
        ge=1,
        le=100,
        description="Years searched ahead before a cron job is considered exhausted",
    )
    metrics_enabled: bool = Field(True, description="Update Prometheus metrics")


class JobDefinition(BaseModel):
    """A declared job, validated and previewed by the CLI"""

    name: str = Field(..., min_length=1, max_length=200)
    kind: JobKind
    cron: Optional[str] = Field(None, description="Cron expression (kind=cron)")
    delay_ms: Optional[int] = Field(None, ge=0, description="Delay (kind=once)")
    period_ms: Optional[int] = Field(None, gt=0, description="Period (kind=interval)")

    @model_validator(mode="after")
    def validate_schedule(self) -> "JobDefinition":
        required = {
            JobKind.CRON: "cron",
            JobKind.ONCE: "delay_ms",
            JobKind.INTERVAL: "period_ms",
        }[self.kind]
        if getattr(self, required) is None:
            raise ValueError(f"{self.kind.value} job {self.name!r} requires '{required}'")

        if self.kind is JobKind.CRON:
            try:
                CronExpression(self.cron or "")
            except ParseError as e:
                raise ValueError(str(e)) from e
        return self


class TickworkConfig(BaseModel):
    """Top-level configuration file model"""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    jobs: List[JobDefinition] = Field(default_factory=list)

    @field_validator("jobs")
    @classmethod
    def validate_unique_names(cls, v: List[JobDefinition]) -> List[JobDefinition]:
        seen = set()
        for job in v:
            if job.name in seen:
                raise ValueError(f"Duplicate job name: {job.name!r}")
            seen.add(job.name)
        return v
