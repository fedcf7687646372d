import uuid

from app.config import Settings
from app.models import TeamSetting
from app.services.embeddings import GeminiEmbeddingProvider, OpenAIEmbeddingProvider
from app.services.team_settings_service import (
    build_embedding_provider,
    build_llm_provider,
    load_ai_configuration,
)

CONFIG = Settings(app_url="https://bots.example.com", app_name="chatrelay", llm_timeout_seconds=7)


def set_values(db, team_id, **values):
    for key, value in values.items():
        db.add(TeamSetting(team_id=team_id, key=key, value=value))
    db.flush()


class TestLoadAIConfiguration:
    def test_defaults(self, db, team_id):
        ai_config = load_ai_configuration(db, team_id, CONFIG)

        assert ai_config.provider == "openrouter"
        assert ai_config.base_url == "https://openrouter.ai/api/v1"
        assert ai_config.model == "google/gemini-flash-1.5-8b"
        assert ai_config.embedding_provider == "openai"
        assert ai_config.embedding_model == "text-embedding-3-small"
        assert ai_config.api_key is None

    def test_embedding_key_falls_back_to_ai_key(self, db, team_id):
        set_values(db, team_id, ai_api_key="shared-key")

        assert load_ai_configuration(db, team_id, CONFIG).embedding_api_key == "shared-key"

    def test_team_values_override(self, db, team_id):
        set_values(db, team_id, ai_model="openai/gpt-4o-mini", embedding_provider="gemini", embedding_api_key="g")

        ai_config = load_ai_configuration(db, team_id, CONFIG)

        assert ai_config.model == "openai/gpt-4o-mini"
        assert ai_config.embedding_provider == "gemini"
        assert ai_config.embedding_model == "text-embedding-004"

    def test_other_teams_settings_ignored(self, db, team_id):
        set_values(db, uuid.uuid4(), ai_api_key="not-mine")
        assert load_ai_configuration(db, team_id, CONFIG).api_key is None


class TestBuildProviders:
    def test_no_key_means_no_backend(self, db, team_id):
        ai_config = load_ai_configuration(db, team_id, CONFIG)
        assert build_llm_provider(ai_config, CONFIG) is None
        assert build_embedding_provider(ai_config, CONFIG) is None

    def test_openrouter_attribution_headers(self, db, team_id):
        set_values(db, team_id, ai_api_key="or-key")

        provider = build_llm_provider(load_ai_configuration(db, team_id, CONFIG), CONFIG)

        assert provider.extra_headers == {"HTTP-Referer": "https://bots.example.com", "X-Title": "chatrelay"}
        assert provider.timeout_seconds == 7

    def test_embedding_provider_selection(self, db, team_id):
        set_values(db, team_id, ai_api_key="k")
        assert isinstance(build_embedding_provider(load_ai_configuration(db, team_id, CONFIG), CONFIG), OpenAIEmbeddingProvider)

        set_values(db, team_id, embedding_provider="gemini")
        assert isinstance(build_embedding_provider(load_ai_configuration(db, team_id, CONFIG), CONFIG), GeminiEmbeddingProvider)
