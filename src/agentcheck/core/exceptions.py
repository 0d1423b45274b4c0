"""Exception hierarchy"""


class AgentCheckError(Exception):
    """Base error for agentcheck"""


class ConfigError(AgentCheckError):
    """Config file could not be loaded or validated"""


class YAMLValidationError(AgentCheckError):
    """A YAML file failed to load or validate"""

    def __init__(self, message: str, file_path: str | None = None):
        super().__init__(message)
        self.file_path = file_path


class SuiteNotFoundError(AgentCheckError):
    """The requested test suite does not exist"""


class APIError(AgentCheckError):
    """Non-success HTTP response or network failure"""

    def __init__(self, message: str, status_code: int | None = None, response_body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TransportError(APIError):
    """Direct Line transport failure"""


class TransportAuthError(TransportError):
    """Credentials rejected by the transport (401/403). Not retried."""


class TransportProtocolError(TransportError):
    """Any other transport failure. Retried by the case runner."""


class RateLimited(AgentCheckError):
    """The agent answered with a rate-limit marker in its transcript"""


class JudgeError(AgentCheckError):
    """Judge LLM call or response parsing failed"""


class Cancelled(AgentCheckError):
    """Cooperative cancellation was requested"""
