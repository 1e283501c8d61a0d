# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from config import AppConfig, ASRConfig, AudioFormat, RecognitionOptions


def test_asr_config_defaults():
    config = ASRConfig(app_key="a", access_key="b")

    assert config.audio == AudioFormat(sample_rate=16000, bit_depth=16, channels=1)
    assert config.request == RecognitionOptions()
    assert config.flush_interval_ms == 200
    assert config.auto_save_history is True
    assert config.max_history_size == 100
    assert config.final_result_timeout_ms == 5000
    assert config.final_result_poll_ms == 100


def test_asr_config_lists_every_violation():
    with pytest.raises(ValueError) as exc_info:
        ASRConfig(app_key="a", access_key="b", flush_interval_ms=0, max_history_size=0)

    message = str(exc_info.value)
    assert "flush_interval_ms" in message
    assert "max_history_size" in message


def test_load_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DOUBAO_APP_KEY", "app")
    monkeypatch.setenv("DOUBAO_ACCESS_KEY", "access")
    monkeypatch.setenv("REWRITE_API_URL", "https://llm.example/v1")
    monkeypatch.setenv("REWRITE_API_KEY", "sk-test")
    monkeypatch.setenv("REWRITE_MODEL", "m")

    app = AppConfig.load_from_env()
    asr = app.asr_config(max_history_size=5)
    rewrite = app.rewrite_config()

    assert (asr.app_key, asr.access_key, asr.max_history_size) == ("app", "access", 5)
    assert rewrite is not None
    assert rewrite.model == "m"
    assert rewrite.temperature == 0.3
    assert rewrite.max_tokens == 4096


def test_missing_credentials(monkeypatch: pytest.MonkeyPatch):
    for name in ("DOUBAO_APP_KEY", "DOUBAO_ACCESS_KEY", "REWRITE_API_URL", "REWRITE_API_KEY", "REWRITE_MODEL"):
        monkeypatch.delenv(name, raising=False)

    app = AppConfig.load_from_env()

    with pytest.raises(ValueError):
        app.asr_config()
    assert app.rewrite_config() is None
