"""Configuration module for vault-rag.

Loads configuration from environment variables with sensible defaults.
An optional YAML file (pointed to by RAG_CONFIG) supplies values that the
environment can still override.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vault_rag.errors import ConfigError

DEFAULT_CHUNK_SIZE = 800
DEFAULT_CHUNK_OVERLAP = 100
DEFAULT_TOP_K = 5
DEFAULT_SNIPPET_MAX_CHARS = 1200
DEFAULT_PORT = 8080


@dataclass
class EmbeddingConfig:
    """OpenAI-compatible embeddings endpoint."""

    api_base: str = ""
    api_key: str | None = None
    model: str = ""
    dimension: int = 0  # 0 = discover from the first response
    batch_size: int = 16
    timeout: float = 60.0


@dataclass
class VectorDBConfig:
    """Qdrant endpoint and collection."""

    url: str = "http://localhost:6333"
    collection: str = "vault_notes"
    timeout: float = 30.0


@dataclass
class TriggerConfig:
    """When a chat message should run a knowledge base lookup."""

    force_prefixes: list[str] = field(default_factory=lambda: ["/rag"])
    skip_prefixes: list[str] = field(default_factory=lambda: ["/norag"])
    auto: bool = False
    auto_keywords: list[str] = field(default_factory=list)


@dataclass
class Config:
    """Application configuration."""

    vault_path: str
    workspace: Path
    enabled: bool = True
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    top_k: int = DEFAULT_TOP_K
    min_similarity: float = 0.0
    snippet_max_chars: int = DEFAULT_SNIPPET_MAX_CHARS
    port: int = DEFAULT_PORT
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_db: VectorDBConfig = field(default_factory=VectorDBConfig)
    trigger: TriggerConfig = field(default_factory=TriggerConfig)

    @property
    def manifest_path(self) -> Path:
        """Location of the persisted index manifest."""
        return self.workspace / "rag" / "index_state.json"

    @classmethod
    def from_env(cls, config_file: Path | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            config_file: Optional YAML file. Defaults to the RAG_CONFIG env var.
        """
        if config_file is None and os.getenv("RAG_CONFIG"):
            config_file = Path(os.environ["RAG_CONFIG"]).expanduser()
        data = load_config_file(config_file) if config_file else {}
        emb = _section(data, "embedding")
        vdb = _section(data, "vector_db")
        trig = _section(data, "trigger")

        default_workspace = str(Path.home() / ".vault-rag")
        workspace = Path(
            str(_pick("RAG_WORKSPACE", data.get("workspace"), default_workspace))
        ).expanduser()

        port = _as_int("RAG_PORT", _pick("RAG_PORT", data.get("port"), DEFAULT_PORT))
        if not 1 <= port <= 65535:
            raise ConfigError(f"Port must be between 1 and 65535, got {port}")

        # The vault path is validated when indexing starts, not here
        vault_path = str(_pick("RAG_VAULT_PATH", data.get("vault_path"), "")).strip()

        embedding = EmbeddingConfig(
            api_base=str(_pick("RAG_EMBEDDING_API_BASE", emb.get("api_base"), "")),
            api_key=_pick("RAG_EMBEDDING_API_KEY", emb.get("api_key"), None) or None,
            model=str(_pick("RAG_EMBEDDING_MODEL", emb.get("model"), "")),
            dimension=_as_int(
                "RAG_EMBEDDING_DIMENSION",
                _pick("RAG_EMBEDDING_DIMENSION", emb.get("dimension"), 0),
            ),
            batch_size=_as_int(
                "RAG_EMBEDDING_BATCH_SIZE",
                _pick("RAG_EMBEDDING_BATCH_SIZE", emb.get("batch_size"), 16),
            ),
            timeout=_as_float(
                "RAG_EMBEDDING_TIMEOUT",
                _pick("RAG_EMBEDDING_TIMEOUT", emb.get("timeout"), 60.0),
            ),
        )

        vector_db = VectorDBConfig(
            url=str(_pick("RAG_QDRANT_URL", vdb.get("url"), "http://localhost:6333")),
            collection=str(
                _pick("RAG_QDRANT_COLLECTION", vdb.get("collection"), "vault_notes")
            ),
            timeout=_as_float(
                "RAG_QDRANT_TIMEOUT", _pick("RAG_QDRANT_TIMEOUT", vdb.get("timeout"), 30.0)
            ),
        )

        trigger = TriggerConfig(
            force_prefixes=_as_list(
                _pick("RAG_FORCE_PREFIXES", trig.get("force_prefixes"), ["/rag"])
            ),
            skip_prefixes=_as_list(
                _pick("RAG_SKIP_PREFIXES", trig.get("skip_prefixes"), ["/norag"])
            ),
            auto=_as_bool(_pick("RAG_AUTO_TRIGGER", trig.get("auto"), False)),
            auto_keywords=_as_list(
                _pick("RAG_AUTO_KEYWORDS", trig.get("auto_keywords"), [])
            ),
        )

        return cls(
            vault_path=vault_path,
            workspace=workspace,
            enabled=_as_bool(_pick("RAG_ENABLED", data.get("enabled"), True)),
            chunk_size=_as_int(
                "RAG_CHUNK_SIZE",
                _pick("RAG_CHUNK_SIZE", data.get("chunk_size"), DEFAULT_CHUNK_SIZE),
            ),
            chunk_overlap=_as_int(
                "RAG_CHUNK_OVERLAP",
                _pick("RAG_CHUNK_OVERLAP", data.get("chunk_overlap"), DEFAULT_CHUNK_OVERLAP),
            ),
            include_patterns=_as_list(
                _pick("RAG_INCLUDE", data.get("include_patterns"), [])
            ),
            exclude_patterns=_as_list(
                _pick("RAG_EXCLUDE", data.get("exclude_patterns"), [])
            ),
            top_k=_as_int("RAG_TOP_K", _pick("RAG_TOP_K", data.get("top_k"), DEFAULT_TOP_K)),
            min_similarity=_as_float(
                "RAG_MIN_SIMILARITY",
                _pick("RAG_MIN_SIMILARITY", data.get("min_similarity"), 0.0),
            ),
            snippet_max_chars=_as_int(
                "RAG_SNIPPET_MAX_CHARS",
                _pick(
                    "RAG_SNIPPET_MAX_CHARS",
                    data.get("snippet_max_chars"),
                    DEFAULT_SNIPPET_MAX_CHARS,
                ),
            ),
            port=port,
            embedding=embedding,
            vector_db=vector_db,
            trigger=trigger,
        )


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file into a dict."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return raw


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping")
    return value


def _pick(env_name: str, file_value: Any, default: Any) -> Any:
    """Environment beats file, file beats default."""
    env_value = os.getenv(env_name)
    if env_value is not None:
        return env_value
    if file_value is not None:
        return file_value
    return default


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {name} value '{value}': expected an integer") from e


def _as_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {name} value '{value}': expected a number") from e


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ConfigError(f"Expected a list or comma-separated string, got {value!r}")
