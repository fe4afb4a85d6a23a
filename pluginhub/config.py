"""Configuration for pluginhub with validation."""

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict
import structlog
import toml

log = structlog.get_logger()

INSTALL_LOCATIONS = ("active", "all", "selected")


class HubConfig(BaseModel):
    """Main configuration for pluginhub with validation."""

    model_config = ConfigDict(validate_assignment=True)

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".pluginhub")
    index_path: Optional[Path] = None  # Computed from data_dir if None

    # Vaults
    vault_path: Optional[Path] = None  # Active vault; None = no active vault
    config_dir: str = ".obsidian"
    install_location: str = "all"
    extra_vault_paths: list[Path] = Field(default_factory=list)
    parent_vault_directories: list[Path] = Field(default_factory=list)

    # GitHub
    github_token: str = ""

    # Endpoints
    archive_url: str = (
        "https://raw.githubusercontent.com/obsidianmd/obsidian-releases/master/community-plugins.json"
    )
    github_api_url: str = "https://api.github.com"
    github_raw_url: str = "https://raw.githubusercontent.com"
    forum_url: str = "https://forum.obsidian.md"

    # Networking
    http_timeout: float = Field(gt=0, default=30.0)
    archive_cache_ttl: float = Field(ge=0, default=300.0)

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")
    log_file: Optional[Path] = None

    @field_validator('install_location')
    @classmethod
    def check_install_location(cls, v):
        if v not in INSTALL_LOCATIONS:
            raise ValueError(f"install_location must be one of: {', '.join(INSTALL_LOCATIONS)}")
        return v

    @field_validator('github_token')
    @classmethod
    def strip_token(cls, v):
        return (v or "").strip()

    @field_validator('extra_vault_paths', 'parent_vault_directories', mode='before')
    @classmethod
    def drop_blank_paths(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.splitlines()
        return [p for p in v if str(p).strip()]

    @field_validator('archive_url', 'github_api_url', 'github_raw_url', 'forum_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    def model_post_init(self, __context):
        """Set computed values after initialization."""
        self.data_dir = Path(self.data_dir).expanduser()

        if self.index_path is None:
            self.index_path = self.data_dir / "index.json"

        if self.vault_path is not None:
            self.vault_path = Path(self.vault_path).expanduser()

    @property
    def install_to_active(self) -> bool:
        return self.install_location in ("active", "all")

    @property
    def use_parent_directories(self) -> bool:
        return self.install_location == "all"

    @property
    def use_selected_vaults(self) -> bool:
        return self.install_location in ("all", "selected")

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'HubConfig':
        """Load configuration from TOML file.

        Search order if path not provided:
        1. ./pluginhub.toml (project-specific)
        2. ~/.pluginhub/config.toml (user default)

        Args:
            path: Optional explicit config file path

        Returns:
            HubConfig instance
        """
        if path is None:
            candidates = [
                Path("pluginhub.toml"),
                Path("~/.pluginhub/config.toml").expanduser()
            ]
            for candidate in candidates:
                if candidate.exists():
                    path = str(candidate)
                    log.info("config_found", path=path)
                    break

        if path and Path(path).exists():
            try:
                data = toml.load(path)
                log.info("config_loaded", path=path)
                return cls(**data)
            except Exception as e:
                log.error("config_load_failed", path=path, error=str(e))
                return cls()

        log.info("config_using_defaults")
        return cls()

    def save(self, path: str):
        """Save configuration to TOML file.

        Args:
            path: File path to save to
        """
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            data = self.model_dump(mode='json', exclude_none=True)
            toml.dump(data, f)
        log.info("config_saved", path=path)


def validate_config(config: HubConfig) -> list[str]:
    """Validate configuration and return warnings.

    Args:
        config: Config to validate

    Returns:
        List of warning messages
    """
    warnings = []

    if config.install_to_active and config.vault_path is None:
        warnings.append(
            f"install_location is '{config.install_location}' but no vault_path is set"
        )
    elif config.vault_path is not None and not (config.vault_path / config.config_dir).is_dir():
        warnings.append(
            f"Active vault {config.vault_path} has no {config.config_dir} directory"
        )

    if config.use_selected_vaults:
        for vault in config.extra_vault_paths:
            if not Path(vault).expanduser().is_dir():
                warnings.append(f"Extra vault path does not exist: {vault}")

    if config.use_parent_directories:
        for parent in config.parent_vault_directories:
            if not Path(parent).expanduser().is_dir():
                warnings.append(f"Parent vault directory does not exist: {parent}")

    if not config.github_token:
        warnings.append("No GitHub token configured; API searches are limited to 60 requests/hour")

    return warnings
