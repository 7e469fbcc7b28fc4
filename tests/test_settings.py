from compass.core.settings import (
    PLACEHOLDER_API_KEY,
    PipelineConfig,
    Settings,
    get_settings,
    is_real_api_key,
)


def test_defaults_match_worker_contract(clean_settings):
    for name in ("CONFIDENCE_THRESHOLD", "EXTRACTION_MODE", "OPENAI_API_KEY", "QUEUE_KEY"):
        clean_settings.delenv(name, raising=False)

    settings = Settings()

    assert settings.confidence_threshold == 0.7
    assert settings.extraction_mode == "row"
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.queue_key == "queue:document-ingest"
    assert settings.queue_timeout_s == 5
    assert settings.extraction_max_text_chars == 12000


def test_environment_overrides_are_read(clean_settings):
    clean_settings.setenv("CONFIDENCE_THRESHOLD", "0.85")
    clean_settings.setenv("EXTRACTION_MODE", "heuristic")
    clean_settings.setenv("WRITE_LEGACY_FIELDS", "false")

    settings = get_settings()

    assert settings.confidence_threshold == 0.85
    assert settings.extraction_mode == "heuristic"
    assert settings.write_legacy_fields is False


def test_get_settings_is_cached(clean_settings):
    assert get_settings() is get_settings()


def test_pipeline_config_from_settings(clean_settings):
    clean_settings.setenv("OPENAI_API_KEY", "sk-live-abcdefgh")
    clean_settings.setenv("WORKER_ACTOR", "worker-7")

    config = PipelineConfig.from_settings(get_settings())

    assert config.openai_api_key == "sk-live-abcdefgh"
    assert config.actor == "worker-7"
    assert config.model_configured is True


def test_placeholder_and_blank_keys_are_not_real():
    assert is_real_api_key(None) is False
    assert is_real_api_key("") is False
    assert is_real_api_key("   ") is False
    assert is_real_api_key(PLACEHOLDER_API_KEY) is False
    assert is_real_api_key("sk-abc") is True
    assert PipelineConfig(openai_api_key=PLACEHOLDER_API_KEY).model_configured is False
