"""Config, suite loading and utility tests"""

import asyncio
import os
from pathlib import Path

import pytest

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


class TestTemplate:
    """Environment variable interpolation"""

    def test_interpolate_env_basic(self, monkeypatch):
        from agentcheck.utils.template import interpolate_env

        monkeypatch.setenv("_TEST_VAR", "hello")
        assert interpolate_env("${_TEST_VAR}") == "hello"
        assert interpolate_env("pre-${_TEST_VAR}-post") == "pre-hello-post"

    def test_interpolate_env_missing(self):
        from agentcheck.utils.template import interpolate_env

        with pytest.raises(ValueError, match="environment variable not set"):
            interpolate_env("${_NONEXISTENT_VAR_12345}")

    def test_interpolate_env_default(self):
        from agentcheck.utils.template import interpolate_env

        assert interpolate_env("${_NONEXISTENT_VAR_12345:-fallback}") == "fallback"

    def test_interpolate_dict(self, monkeypatch):
        from agentcheck.utils.template import interpolate_dict

        monkeypatch.setenv("_TEST_KEY", "secret")
        result = interpolate_dict({"transport": {"secret": "${_TEST_KEY}"}, "hosts": ["${_TEST_KEY}"], "timeout": 30})
        assert result["transport"]["secret"] == "secret"
        assert result["hosts"] == ["secret"]
        assert result["timeout"] == 30


class TestYAMLLoader:
    def test_load_yaml_file_not_found(self, tmp_path):
        from agentcheck.core.exceptions import YAMLValidationError
        from agentcheck.utils.yaml_loader import load_yaml

        with pytest.raises(YAMLValidationError, match="file not found"):
            load_yaml(tmp_path / "nonexistent.yaml")

    def test_load_yaml_not_a_mapping(self, tmp_path):
        from agentcheck.core.exceptions import YAMLValidationError
        from agentcheck.utils.yaml_loader import load_yaml

        f = tmp_path / "list.yaml"
        f.write_text("- a\n- b\n")
        with pytest.raises(YAMLValidationError, match="must be a mapping"):
            load_yaml(f)

    def test_load_and_validate(self, tmp_path):
        from agentcheck.schema.config import JudgeConfig
        from agentcheck.utils.yaml_loader import load_and_validate

        f = tmp_path / "judge.yaml"
        f.write_text("api_base: http://localhost\nmodel: test-model\n")
        result = load_and_validate(f, JudgeConfig)
        assert result.api_base == "http://localhost"
        assert result.model == "test-model"
        assert result.pass_threshold == 0.7


class TestConfig:
    """agentcheck.yaml loading"""

    CONFIG = """
targets:
  support_bot:
    transport:
      secret: ${_AC_TEST_SECRET}
      auth_mode: exchanged
judge:
  api_key: ${_AC_TEST_JUDGE_KEY:-none}
suites_dir: suites
"""

    def test_load_with_dotenv(self, tmp_path, monkeypatch):
        from agentcheck.core.config import load_config

        # registers the variable so monkeypatch removes what .env sets
        monkeypatch.setenv("_AC_TEST_SECRET", "placeholder")
        monkeypatch.delenv("_AC_TEST_SECRET")
        (tmp_path / ".env").write_text('# local secrets\nexport _AC_TEST_SECRET="from-dotenv"\n')
        config_file = tmp_path / "agentcheck.yaml"
        config_file.write_text(self.CONFIG)

        config = load_config(config_file)
        target = config.targets["support_bot"]
        assert target.name == "support_bot"
        assert target.transport.secret == "from-dotenv"
        assert target.transport.auth_mode == "exchanged"
        assert target.transport.max_retries == 2
        assert config.judge.api_key == "none"
        assert config.suites_dir == str(tmp_path / "suites")

    def test_environment_wins_over_dotenv(self, tmp_path, monkeypatch):
        from agentcheck.core.config import load_config

        monkeypatch.setenv("_AC_TEST_SECRET", "from-env")
        (tmp_path / ".env").write_text("_AC_TEST_SECRET=from-dotenv\n")
        config_file = tmp_path / "agentcheck.yaml"
        config_file.write_text(self.CONFIG)

        assert load_config(config_file).targets["support_bot"].transport.secret == "from-env"
        assert os.environ["_AC_TEST_SECRET"] == "from-env"

    def test_missing_variable(self, tmp_path, monkeypatch):
        from agentcheck.core.config import load_config
        from agentcheck.core.exceptions import ConfigError

        monkeypatch.delenv("_AC_TEST_SECRET", raising=False)
        config_file = tmp_path / "agentcheck.yaml"
        config_file.write_text(self.CONFIG)

        with pytest.raises(ConfigError, match="_AC_TEST_SECRET"):
            load_config(config_file)

    def test_missing_file(self, tmp_path):
        from agentcheck.core.config import load_config
        from agentcheck.core.exceptions import ConfigError

        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_target(self, tmp_path):
        from agentcheck.core.config import load_config
        from agentcheck.core.exceptions import ConfigError

        config_file = tmp_path / "agentcheck.yaml"
        config_file.write_text("targets:\n  bot:\n    transport:\n      auth_mode: oauth\n")
        with pytest.raises(ConfigError, match="validation failed"):
            load_config(config_file)

    def test_example_config(self):
        from agentcheck.core.config import load_config

        config = load_config(EXAMPLES_DIR / "agentcheck.yaml")
        assert set(config.targets) == {"support_bot", "support_bot_staging"}
        assert config.targets["support_bot_staging"].judge.model == "gpt-4o"


class TestSuites:
    SUITE = """
name: Smoke
cases:
  - id: hello
    name: Greeting
    user_input: [hi]
"""

    def test_example_suite_validates(self):
        from agentcheck.core.suites import load_suite

        suite = load_suite(EXAMPLES_DIR / "suites" / "returns_policy.yaml")
        assert [c.id for c in suite.active_cases] == ["return_window", "refund_followup"]
        assert len(suite.cases[1].user_input) == 2

    def test_find_by_path_stem_and_name(self, tmp_path):
        from agentcheck.core.suites import find_suite

        (tmp_path / "smoke.yaml").write_text(self.SUITE)
        (tmp_path / "notes.txt").write_text("not a suite")

        assert find_suite(str(tmp_path / "smoke.yaml")).name == "Smoke"
        assert find_suite("smoke", tmp_path).name == "Smoke"
        assert find_suite("Smoke", tmp_path).cases[0].id == "hello"

    def test_find_skips_invalid_files(self, tmp_path):
        from agentcheck.core.suites import find_suite

        (tmp_path / "broken.yaml").write_text("name: [unclosed\n")
        (tmp_path / "smoke.yaml").write_text(self.SUITE)
        assert find_suite("Smoke", tmp_path).name == "Smoke"

    def test_not_found(self, tmp_path):
        from agentcheck.core.exceptions import SuiteNotFoundError
        from agentcheck.core.suites import find_suite

        with pytest.raises(SuiteNotFoundError):
            find_suite("nope", tmp_path)

    def test_duplicate_case_ids(self, tmp_path):
        from agentcheck.core.exceptions import YAMLValidationError
        from agentcheck.core.suites import load_suite

        f = tmp_path / "dup.yaml"
        f.write_text(self.SUITE + "  - id: hello\n    name: Again\n    user_input: [hey]\n")
        with pytest.raises(YAMLValidationError, match="duplicate test case id"):
            load_suite(f)

    def test_empty_user_input_rejected(self, tmp_path):
        from agentcheck.core.exceptions import YAMLValidationError
        from agentcheck.core.suites import load_suite

        f = tmp_path / "empty.yaml"
        f.write_text("name: Empty\ncases:\n  - id: a\n    name: A\n    user_input: []\n")
        with pytest.raises(YAMLValidationError):
            load_suite(f)


class TestStats:
    def test_nearest_rank(self):
        from agentcheck.utils.stats import percentile

        values = [100, 200, 300, 400, 500]
        assert percentile(values, 50) == 300
        assert percentile(values, 95) == 500
        assert percentile(values, 100) == 500
        assert percentile([], 95) == 0.0

    def test_summary(self):
        from agentcheck.utils.stats import summarize_latencies

        summary = summarize_latencies([10, 20, 30, 40])
        assert summary.average_ms == 25
        assert summary.median_ms == 30
        assert summary.p95_ms == 40
        assert summarize_latencies([]).p95_ms == 0.0


class TestCancellationToken:
    def test_sleep_completes(self):
        from agentcheck.core.cancellation import CancellationToken

        token = CancellationToken()
        asyncio.run(token.sleep(0.01))
        assert token.cancelled is False

    def test_cancel_interrupts_sleep(self):
        from agentcheck.core.cancellation import CancellationToken
        from agentcheck.core.exceptions import Cancelled

        async def _run():
            token = CancellationToken()
            asyncio.get_running_loop().call_later(0.02, token.cancel, "stop requested")
            await token.sleep(30)

        with pytest.raises(Cancelled, match="stop requested"):
            asyncio.run(asyncio.wait_for(_run(), timeout=5))

    def test_guard_abandons_inflight_call(self):
        from agentcheck.core.cancellation import CancellationToken
        from agentcheck.core.exceptions import Cancelled

        state = {}

        async def slow_call():
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                state["abandoned"] = True
                raise

        async def _run():
            token = CancellationToken()
            asyncio.get_running_loop().call_later(0.02, token.cancel)
            await token.guard(slow_call())

        with pytest.raises(Cancelled):
            asyncio.run(asyncio.wait_for(_run(), timeout=5))
        assert state["abandoned"] is True

    def test_guard_returns_result(self):
        from agentcheck.core.cancellation import CancellationToken

        async def answer():
            return 42

        assert asyncio.run(CancellationToken().guard(answer())) == 42
