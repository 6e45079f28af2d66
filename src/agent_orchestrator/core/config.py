"""Core configuration for the workflow engine and the orchestrator."""

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_orchestrator.core.logging import configure_logging


class WorkflowConfig(BaseSettings):
    """Defaults applied by the step graph interpreter."""

    map_concurrency: int = Field(
        default=5,
        gt=0,
        description="Batch size used by map steps that do not set one",
    )
    retry_step_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay in seconds for retry steps",
    )
    retry_step_backoff: float = Field(
        default=1.0,
        ge=1.0,
        description="Multiplicative backoff factor for retry steps",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_WORKFLOW_",
        env_file=".env",
        extra="ignore",
    )


class EvaluationConfig(BaseSettings):
    """Configuration for the decompose / dispatch / evaluate loop."""

    enabled: bool = Field(
        default=True,
        description="Score aggregated results against task criteria",
    )
    threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum average criterion score for a result to pass",
    )
    max_retries: int = Field(
        default=2,
        ge=1,
        description="Attempts allowed when a task does not set max_attempts",
    )
    default_strategy: Literal["sequential", "parallel", "recursive", "auto"] = Field(
        default="auto",
        description="Decomposition strategy used when analysis does not pick one",
    )
    verbose: bool = Field(
        default=False,
        description="Log orchestration progress at INFO instead of DEBUG",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_EVALUATION_",
        env_file=".env",
        extra="ignore",
    )


class OrchestratorConfig(BaseSettings):
    """Main configuration."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    json_logs: bool = Field(
        default=True,
        description="Emit structured JSON log lines instead of plain text",
    )

    workflow: WorkflowConfig = Field(
        default_factory=WorkflowConfig,
        description="Workflow interpreter configuration",
    )
    evaluation: EvaluationConfig = Field(
        default_factory=EvaluationConfig,
        description="Orchestrator evaluation configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="ORCHESTRATOR_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, json_output=self.json_logs)

        if self.debug:
            logging.getLogger("agent_orchestrator").setLevel(logging.DEBUG)
