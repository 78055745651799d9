"""Settings for a mirroring run.

Values come from an optional YAML file and are overridden by command-line
flags. The YAML layout is::

    github:
      url: https://api.github.com
      user: octocat
      token: ghp_...
      org: acme            # omit to mirror the user's own repositories
      ssh_host: github.com
    mirror:
      output_dir: ./backups
      max_concurrency: 4
      git_timeout: 600
      page_size: 50
"""

from datetime import date
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr

from .crawler.github_client import DEFAULT_API_URL, DEFAULT_PAGE_SIZE
from .crawler.repo_manager import DEFAULT_CLONE_URL_TEMPLATE

MAX_CONCURRENCY = 64
DEFAULT_CONCURRENCY = 4


def default_output_dir(today: date | None = None) -> Path:
    """Dated subdirectory of the current working directory."""
    return Path.cwd() / (today or date.today()).isoformat()


class MirrorSettings(BaseModel):
    """Validated settings for one run."""

    identity: str = Field(min_length=1)
    secret: SecretStr
    organisation: str | None = None
    api_url: str = DEFAULT_API_URL
    ssh_host: str = "github.com"
    clone_url_template: str = DEFAULT_CLONE_URL_TEMPLATE
    output_dir: Path = Field(default_factory=default_output_dir)
    max_concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=0, le=MAX_CONCURRENCY)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=100)
    git_timeout: float | None = Field(default=None, gt=0)


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Could not parse {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data


def settings_from_config(config: dict, overrides: dict | None = None) -> MirrorSettings:
    """Build settings from a loaded config dict plus CLI overrides.

    Overrides whose value is None are ignored so unset flags fall back to the
    file and then to the model defaults.
    """
    gh_config = config.get("github") or {}
    mirror_config = config.get("mirror") or {}

    values = {
        "identity": gh_config.get("user"),
        "secret": gh_config.get("token"),
        "organisation": gh_config.get("org"),
        "api_url": gh_config.get("url"),
        "ssh_host": gh_config.get("ssh_host"),
        "clone_url_template": gh_config.get("clone_url_template"),
        "output_dir": mirror_config.get("output_dir"),
        "max_concurrency": mirror_config.get("max_concurrency"),
        "page_size": mirror_config.get("page_size"),
        "git_timeout": mirror_config.get("git_timeout"),
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    return MirrorSettings(**{k: v for k, v in values.items() if v is not None})
