import json
import os
from pathlib import Path

from gagoforge.constants import API_URL_ENV, CONFIG_FILE
from gagoforge.models.user import UserConfig


def load_config(path: Path = CONFIG_FILE) -> UserConfig:
    config = UserConfig()
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            config = UserConfig.from_dict(data)
        except (json.JSONDecodeError, KeyError, AttributeError):
            config = UserConfig()
    override = os.environ.get(API_URL_ENV)
    if override:
        config.preferences.api_base_url = override
    return config


def save_config(config: UserConfig, path: Path = CONFIG_FILE) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(config.to_dict(), indent=2),
        encoding="utf-8",
    )


def editor_command(config: UserConfig) -> str:
    return (
        config.preferences.editor
        or os.environ.get("VISUAL")
        or os.environ.get("EDITOR")
        or "vi"
    )
