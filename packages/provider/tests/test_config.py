"""ProviderConfig + load_provider_config 单元测试

验证环境变量映射、默认值、非法数值回退。
"""

import pytest
from cristos.provider.config import ProviderConfig, load_provider_config
from pydantic import SecretStr, ValidationError

_ENV_VARS = (
    "LITELLM_PROXY_URL",
    "LITELLM_PROXY_KEY",
    "CRISTOS_LLM_MODE",
    "CRISTOS_LLM_MODEL",
    "CRISTOS_LLM_MAX_TOKENS",
    "CRISTOS_LLM_TEMPERATURE",
    "CRISTOS_LLM_TIMEOUT_S",
    "CRISTOS_TRANSCRIPTION_MODEL",
    "CRISTOS_TRANSCRIPTION_LANGUAGE",
    "CRISTOS_TRANSCRIPTION_TIMEOUT_S",
    "CRISTOS_MODEL_MAX_ATTEMPTS",
    "CRISTOS_TRANSCRIPTION_MAX_ATTEMPTS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestProviderConfig:
    """ProviderConfig 数据模型测试"""

    def test_default_values(self):
        """默认值验证"""
        config = ProviderConfig()
        assert config.proxy_base_url == ""
        assert config.proxy_api_key.get_secret_value() == ""
        assert config.llm_mode == "litellm"
        assert config.model == "gpt-4o-mini"
        assert config.timeout_s == 30
        assert config.transcription_language == "en"
        assert config.model_max_attempts == 5
        assert config.transcription_max_attempts == 3

    def test_custom_values(self):
        config = ProviderConfig(
            proxy_base_url="http://proxy:8080",
            proxy_api_key=SecretStr("sk-test"),
            llm_mode="echo",
            timeout_s=60,
        )
        assert config.proxy_base_url == "http://proxy:8080"
        assert config.proxy_api_key.get_secret_value() == "sk-test"
        assert config.llm_mode == "echo"
        assert config.timeout_s == 60

    def test_timeout_min_value(self):
        """超时最小值为 1"""
        with pytest.raises(ValidationError):
            ProviderConfig(timeout_s=0)

    def test_invalid_llm_mode_rejected(self):
        with pytest.raises(ValidationError):
            ProviderConfig(llm_mode="openai")

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValidationError):
            ProviderConfig(model_max_attempts=0)

    def test_llm_config_derived(self):
        config = ProviderConfig(model="gpt-4o", max_tokens=1000, temperature=0.2)
        llm = config.llm_config()
        assert (llm.model, llm.max_tokens, llm.temperature) == ("gpt-4o", 1000, 0.2)

    def test_transcription_config_empty_language_is_none(self):
        """空语言表示让服务端自动识别"""
        config = ProviderConfig(transcription_language="")
        assert config.transcription_config().language is None


class TestLoadProviderConfig:
    """load_provider_config() 环境变量映射测试"""

    def test_default_when_no_env(self):
        config = load_provider_config()
        assert config == ProviderConfig()

    def test_proxy_from_env(self, monkeypatch):
        monkeypatch.setenv("LITELLM_PROXY_URL", "http://proxy:9999")
        monkeypatch.setenv("LITELLM_PROXY_KEY", "sk-secret")

        config = load_provider_config()
        assert config.proxy_base_url == "http://proxy:9999"
        assert config.proxy_api_key.get_secret_value() == "sk-secret"

    def test_mode_and_model_from_env(self, monkeypatch):
        monkeypatch.setenv("CRISTOS_LLM_MODE", "echo")
        monkeypatch.setenv("CRISTOS_LLM_MODEL", "claude-3-5-haiku")
        monkeypatch.setenv("CRISTOS_TRANSCRIPTION_MODEL", "whisper-large")
        monkeypatch.setenv("CRISTOS_TRANSCRIPTION_LANGUAGE", "de")

        config = load_provider_config()
        assert config.llm_mode == "echo"
        assert config.model == "claude-3-5-haiku"
        assert config.transcription_model == "whisper-large"
        assert config.transcription_language == "de"

    def test_numeric_values_from_env(self, monkeypatch):
        monkeypatch.setenv("CRISTOS_LLM_TIMEOUT_S", "60")
        monkeypatch.setenv("CRISTOS_LLM_TEMPERATURE", "0.3")
        monkeypatch.setenv("CRISTOS_MODEL_MAX_ATTEMPTS", "2")

        config = load_provider_config()
        assert config.timeout_s == 60
        assert config.temperature == 0.3
        assert config.model_max_attempts == 2

    def test_invalid_numeric_uses_default(self, monkeypatch):
        """无效数值不阻塞启动，使用默认值"""
        monkeypatch.setenv("CRISTOS_LLM_TIMEOUT_S", "not-a-number")
        monkeypatch.setenv("CRISTOS_TRANSCRIPTION_MAX_ATTEMPTS", "three")

        config = load_provider_config()
        assert config.timeout_s == 30
        assert config.transcription_max_attempts == 3
