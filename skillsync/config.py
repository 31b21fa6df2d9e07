"""
skillsync client configuration.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

_ENV_PREFIX = "SKILLSYNC_"


def _default_claude_dir() -> Path:
    return Path.home() / ".claude"


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "claude-skill-sync"


@dataclass(frozen=True, kw_only=True)
class SkillSyncConfig:
    """
    Attributes:
        api_url: Base URL of the sync server.
        timeout: Request timeout in seconds.
        user_agent: User-Agent header value.
        claude_dir: Root of the local skill tree (commands/, skills/, agents/).
        config_dir: Directory holding credentials.json and sync-index.json.
        max_concurrent_transfers: Maximum number of skills pushed or pulled at once.
        version_list_limit: Default number of versions returned by log queries.
        otp_rate_limit: Maximum OTP requests per account inside one window.
        otp_rate_window: Length of the OTP rate-limit window in seconds.
        cache_size: Maximum number of decrypted-payload entries kept in memory.
    """

    api_url: str = "https://api.claudeskill.io"
    timeout: float = 30.0
    user_agent: str = "skillsync-python/0.1"
    claude_dir: Path = field(default_factory=_default_claude_dir)
    config_dir: Path = field(default_factory=_default_config_dir)
    max_concurrent_transfers: int = 8
    version_list_limit: int = 50
    otp_rate_limit: int = 3
    otp_rate_window: float = 600.0
    cache_size: int = 256

    def __post_init__(self) -> None:
        if not self.api_url.startswith(("http://", "https://")):
            msg = "api_url must be an http(s) URL"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        if self.max_concurrent_transfers <= 0:
            msg = "max_concurrent_transfers must be positive"
            raise ValueError(msg)
        if self.version_list_limit <= 0:
            msg = "version_list_limit must be positive"
            raise ValueError(msg)
        if self.otp_rate_limit <= 0:
            msg = "otp_rate_limit must be positive"
            raise ValueError(msg)
        if self.otp_rate_window <= 0:
            msg = "otp_rate_window must be positive"
            raise ValueError(msg)
        if self.cache_size <= 0:
            msg = "cache_size must be positive"
            raise ValueError(msg)

    @property
    def credentials_path(self) -> Path:
        return self.config_dir / "credentials.json"

    @property
    def sync_index_path(self) -> Path:
        return self.config_dir / "sync-index.json"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Self:
        """
        Build a config from ``SKILLSYNC_*`` environment variables.

        Unset variables keep their defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        if url := env.get(f"{_ENV_PREFIX}API_URL"):
            overrides["api_url"] = url.rstrip("/")
        if timeout := env.get(f"{_ENV_PREFIX}TIMEOUT"):
            overrides["timeout"] = float(timeout)
        if claude_dir := env.get(f"{_ENV_PREFIX}CLAUDE_DIR"):
            overrides["claude_dir"] = Path(claude_dir).expanduser()
        if config_dir := env.get(f"{_ENV_PREFIX}CONFIG_DIR"):
            overrides["config_dir"] = Path(config_dir).expanduser()
        if concurrency := env.get(f"{_ENV_PREFIX}MAX_CONCURRENT_TRANSFERS"):
            overrides["max_concurrent_transfers"] = int(concurrency)
        return cls(**overrides)
