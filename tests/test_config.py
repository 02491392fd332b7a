from pathlib import Path

import pytest
from pydantic import ValidationError

from scribble.config import SCRIBBLE_DIR, Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    for key in ("SCRIBBLE_EMBEDDING_MODEL", "SCRIBBLE_RRF_K", "SCRIBBLE_DB_PATH", "SCRIBBLE_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    # Keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)


class TestConfig:
    def test_defaults(self):
        config = Config()

        assert config.rrf_k == 60
        assert config.lexical_weight == 0.4
        assert config.vector_weight == 0.6
        assert config.candidate_limit == 50
        assert config.embedding_model is None
        assert config.embedding.dim == 768
        assert config.search_db_path == SCRIBBLE_DIR / "search.db"

    def test_env_overrides(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("SCRIBBLE_RRF_K", "30")
        monkeypatch.setenv("SCRIBBLE_DB_PATH", str(tmp_path / "x.db"))
        monkeypatch.setenv("SCRIBBLE_EMBEDDING_MODEL", "text-embedding-3-small")

        config = Config()

        assert config.rrf_k == 30
        assert config.search_db_path == tmp_path / "x.db"
        assert config.embedding.model == "text-embedding-3-small"

    def test_blank_embedding_model_means_unconfigured(self):
        assert Config(embedding_model="").embedding_model is None

    def test_chat_model(self, monkeypatch):
        assert Config().chat_model is None
        assert Config(chat_model="none").chat_model is None

        monkeypatch.setenv("SCRIBBLE_CHAT_MODEL", "gemini/gemini-2.0-flash")
        assert Config().chat_model == "gemini/gemini-2.0-flash"

    def test_log_level_normalized(self):
        assert Config(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"rrf_k": 0},
            {"candidate_limit": -5},
            {"embedding_dim": 0},
            {"lexical_weight": -0.1},
            {"retrieval_timeout": 0},
            {"log_level": "LOUD"},
        ],
    )
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            Config(**overrides)
