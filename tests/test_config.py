# Tests for Settings and model resolution.

from pathlib import Path

from product_helper.config import (
    ALLOWED_MODELS,
    DEFAULT_CHAT_MODEL,
    Settings,
    get_settings,
    resolve_model,
)


class TestResolveModel:
    def test_allowed_model_passes_through(self):
        for model in ALLOWED_MODELS:
            assert resolve_model(model) == model

    def test_unknown_or_empty_falls_back(self):
        assert resolve_model("gpt-4o") == DEFAULT_CHAT_MODEL
        assert resolve_model("") == DEFAULT_CHAT_MODEL
        assert resolve_model(None) == DEFAULT_CHAT_MODEL


class TestSettings:
    def test_defaults(self, tmp_path, monkeypatch):
        for var in ("ANTHROPIC_API_KEY", "SHORTCUT_API_TOKEN", "GITHUB_TOKEN"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None, data_dir=tmp_path)

        assert settings.anthropic_api_key is None
        assert settings.cache_max_age_days == 7
        assert settings.web_port == 3001
        assert settings.cache_path == tmp_path / "context" / "cache.json"
        assert settings.library_path == tmp_path / "config.json"
        assert set(settings.doc_ids) == {
            "sdlc_sop",
            "story_template",
            "epic_template",
            "objective_template",
        }

    def test_unprefixed_credentials(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
        monkeypatch.setenv("SHORTCUT_API_TOKEN", "sc-env")
        settings = Settings(_env_file=None)
        assert settings.anthropic_api_key == "sk-env"
        assert settings.shortcut_api_token == "sc-env"

    def test_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("PRODUCT_HELPER_WEB_PORT", "9000")
        monkeypatch.setenv("PRODUCT_HELPER_CACHE_FILE", "/tmp/ph-cache.json")
        settings = Settings(_env_file=None)
        assert settings.web_port == 9000
        assert settings.cache_path == Path("/tmp/ph-cache.json")

    def test_get_settings_cached(self):
        first = get_settings()
        assert get_settings() is first
        assert get_settings(force_reload=True) is not first
