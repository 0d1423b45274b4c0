"""Global configuration models

Mirrors the agentcheck.yaml config file.
"""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

DEFAULT_DIRECT_LINE_ENDPOINT = "https://directline.botframework.com/v3/directline"


class TransportSettings(BaseModel):
    """Direct Line connection and retry policy for one agent"""

    endpoint: str = DEFAULT_DIRECT_LINE_ENDPOINT
    secret: str
    bot_id: str = ""
    # static: the secret is the bearer credential
    # exchanged: the secret is traded for a session token first
    auth_mode: Literal["static", "exchanged"] = "static"
    user_id: str = "user"
    reply_timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    backoff_seconds: float = Field(default=4.0, ge=0)
    http_timeout: float | None = None


class JudgeWeights(BaseModel):
    """Weights of the five judge dimensions, expected to sum to 1.0"""

    task_success: float = 0.3
    intent_match: float = 0.2
    factuality: float = 0.2
    helpfulness: float = 0.15
    safety: float = 0.15


class JudgeConfig(BaseModel):
    """Judge LLM endpoint, sampling parameters and verdict policy"""

    api_base: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    top_p: float = 0.9
    max_tokens: int = 800
    timeout: float = 60.0
    pass_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    weights: JudgeWeights = Field(default_factory=JudgeWeights)
    prompt_template: str = ""


class TargetConfig(BaseModel):
    """One agent under test (agent profile)"""

    name: str = ""
    description: str = ""
    environment: str = "production"
    transport: TransportSettings
    judge: JudgeConfig | None = None


class ExecutionConfig(BaseModel):
    """Execution pacing"""

    delay_between_tests_ms: int = Field(default=2000, ge=0)
    max_target_delay_ms: int = Field(default=5000, ge=0)


class ReportConfig(BaseModel):
    """Report and run-store output"""

    output_dir: str = "./results"
    store_dir: str | None = None


class AgentCheckConfig(BaseModel):
    """Root model of agentcheck.yaml"""

    version: str = "1.0"
    targets: dict[str, TargetConfig] = Field(default_factory=dict)
    judge: JudgeConfig = Field(default_factory=JudgeConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    suites_dir: str = "./suites"

    @model_validator(mode="after")
    def _name_targets(self) -> "AgentCheckConfig":
        for key, target in self.targets.items():
            if not target.name:
                target.name = key
        return self
