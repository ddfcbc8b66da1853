"""Config management commands."""

import sys
from pathlib import Path
from typing import Any

import cyclopts
import yaml
from pydantic import ValidationError

from yandex_auth.cli.console import get_console

app = cyclopts.App(name="config", help="Manage yauth configuration")

TEMPLATE = """\
# Yandex sign-in demo configuration
# Register an application at https://oauth.yandex.ru/client/new

yandex:
  app_id: ""
  app_secret: ""
  # callback_path: /signin-yandex  # Register <site>/signin-yandex as the callback URL
  # backchannel_timeout: 60
  # authentication_mode: passive

data_protection:
  secret: ""  # Shared by all workers; empty = per-process key

cookie:
  secret: ""
  # secure: true  # Enable behind https

# logging:
#   level: "INFO"
"""

DEFAULT_CONFIG_NAME = "yauth.yaml"

SECRET_FIELDS = {"app_secret", "secret"}


def _flatten(data: dict[str, Any], prefix: str = "") -> list[dict[str, str]]:
    rows = []
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            rows.extend(_flatten(value, f"{name}."))
            continue
        if key in SECRET_FIELDS:
            value = "********" if value else "(unset)"
        rows.append({"setting": name, "value": "" if value is None else str(value)})
    return rows


@app.command
def init(path: Path = Path(DEFAULT_CONFIG_NAME)) -> None:
    """Create a new config file from template.

    Args:
        path: Path for the config file. Defaults to ./yauth.yaml
    """
    console = get_console()
    if path.exists():
        console.error(f"{path} already exists (refusing to overwrite)")
        sys.exit(1)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(TEMPLATE)
    console.success(f"Created config at {path}")
    console.info(f"Fill in the Yandex credentials, then run: yauth server serve --config {path}")


@app.command
def validate(path: Path = Path(DEFAULT_CONFIG_NAME)) -> None:
    """Validate a config file.

    Args:
        path: Path to the config file. Defaults to ./yauth.yaml
    """
    from yandex_auth.config import Config

    console = get_console()
    if not path.exists():
        console.error(f"{path} not found")
        sys.exit(1)

    try:
        Config.model_validate(yaml.safe_load(path.read_text()) or {})
    except (yaml.YAMLError, ValidationError) as e:
        console.error(f"{path} is invalid: {e}")
        sys.exit(1)
    console.success(f"{path} is valid")


@app.command
def show() -> None:
    """Show current effective config, secrets masked."""
    from yandex_auth.config import Config

    rows = _flatten(Config().model_dump(mode="json"))
    get_console().table(rows, [("setting", "Setting"), ("value", "Value")], title="yauth config")
