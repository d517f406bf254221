"""Unit tests for settings, the YAML loader and the application factories."""

from __future__ import annotations

from pathlib import Path

import pytest

from examly.config.loader import _deep_merge, load_config
from examly.config.settings import Settings
from examly.main import _build_all, _build_llm_provider, create_app


def _settings(tmp_path: Path | None = None, **overrides) -> Settings:
    values = {
        "openai_api_key": "",
        "gemini_api_key": "",
        "anthropic_api_key": "",
        "ollama_base_url": "",
        "youtube_api_key": "",
    }
    if tmp_path is not None:
        values["database_path"] = str(tmp_path / "examly.db")
        values["blob_root"] = str(tmp_path / "blobs")
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_env_vars_are_read(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_PARALLEL_CHAPTERS", "3")
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")
        loaded = Settings(_env_file=None)
        assert loaded.max_parallel_chapters == 3
        assert "gemini" in loaded.get_available_llm_providers()

    def test_provider_priority(self) -> None:
        configured = _settings(
            openai_api_key="o", gemini_api_key="g", anthropic_api_key="a",
            ollama_base_url="http://localhost:11434",
        )
        assert configured.get_available_llm_providers() == ["anthropic", "gemini", "openai", "ollama"]
        assert _settings().get_available_llm_providers() == []


class TestLoader:
    def test_deep_merge_keeps_sibling_keys(self) -> None:
        base = {"llm": {"temperature": 0.3}, "app": {"name": "examly"}}
        _deep_merge(base, {"llm": {"max_tokens": 10}, "logging": {"level": "DEBUG"}})
        assert base == {
            "llm": {"temperature": 0.3, "max_tokens": 10},
            "app": {"name": "examly"},
            "logging": {"level": "DEBUG"},
        }

    def test_yaml_and_settings_are_layered(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "llm:\n  temperature: 0.5\ningestion:\n  timeout_seconds: 1\n", encoding="utf-8"
        )
        config = load_config(
            str(config_file), settings=_settings(openai_api_key="o", ingestion_timeout_seconds=42)
        )
        assert config["llm"]["temperature"] == 0.5
        assert config["llm"]["available_providers"] == ["openai"]
        assert config["ingestion"]["timeout_seconds"] == 42

    def test_missing_file_gives_settings_only(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=_settings())
        assert config["llm"]["available_providers"] == []
        assert "temperature" not in config["llm"]


class TestBuildLlmProvider:
    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({"anthropic_api_key": "a", "gemini_api_key": "g", "openai_api_key": "o"}, "anthropic"),
            ({"gemini_api_key": "g", "openai_api_key": "o"}, "gemini"),
            ({"openai_api_key": "o"}, "openai"),
            ({"ollama_base_url": "http://localhost:11434"}, "ollama"),
        ],
    )
    def test_priority(self, overrides: dict, expected: str) -> None:
        provider = _build_llm_provider(_settings(**overrides))
        assert provider.get_provider_name() == expected

    def test_nothing_configured(self) -> None:
        assert _build_llm_provider(_settings()) is None


class TestBuildAll:
    async def test_components(self, tmp_path: Path) -> None:
        components = _build_all(_settings(tmp_path, openai_api_key="o"))
        try:
            for key in (
                "settings", "http_client", "llm_provider", "store", "blob_store", "video_search", "pipeline",
                "document_service", "material_service", "notification_service", "user_service",
            ):
                assert key in components
            assert components["provider_registry"] == {
                "llm": "openai",
                "video_search": None,
                "blob_store": "local_blob",
                "store": "sqlite_material_store",
            }
        finally:
            await components["http_client"].aclose()


def test_create_app_mounts_api_routes(tmp_path: Path) -> None:
    application = create_app(_settings(tmp_path))
    paths = {route.path for route in application.routes}
    assert "/api/v1/health" in paths
    assert "/api/v1/process" in paths
    assert "/api/v1/materials/{material_id}/share" in paths
    assert application.state.settings.database_path.endswith("examly.db")
