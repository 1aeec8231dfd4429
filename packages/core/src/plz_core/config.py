import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "api_url": "https://plz.review",
    "review_host": "plz.review",  # used in trailers, review URLs and review branch names
    "remote": "origin",
    "trunk": None,  # None = use the repository's default branch on GitHub
    "publish_delay": 2.0,  # seconds between publishing consecutive stack entries
}


def load_config(config_path: str = ".plz.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .plz.yml in the current directory
      3. CLI argument overrides
      4. PLZ_API_URL from the environment
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    api_url = os.environ.get("PLZ_API_URL")
    if api_url:
        config["api_url"] = api_url
    config["api_url"] = config["api_url"].rstrip("/")

    return config
