"""Run the demo server."""

import os
from pathlib import Path

import cyclopts
import uvicorn

from yandex_auth.cli.console import get_console

app = cyclopts.App(name="server", help="Demo server commands")


@app.command
def serve(
    host: str | None = None,
    port: int | None = None,
    config: Path | None = None,
    reload: bool = False,
) -> None:
    """Serve the demo application in the foreground.

    Args:
        host: Host to bind to. Defaults to server.host from the config.
        port: Port to listen on. Defaults to server.port from the config.
        config: YAML config file, exported as YAUTH_CONFIG_FILE.
        reload: Restart on code changes (development only).
    """
    from yandex_auth.config import Config

    console = get_console()
    if config is not None:
        if not config.exists():
            console.error(f"Config file not found: {config}")
            raise SystemExit(1)
        os.environ["YAUTH_CONFIG_FILE"] = str(config.resolve())

    settings = Config()
    if not settings.yandex.app_id or not settings.yandex.app_secret:
        console.error(
            "Yandex app_id and app_secret are not configured",
            hint="Set YAUTH_YANDEX__APP_ID and YAUTH_YANDEX__APP_SECRET or use --config",
        )
        raise SystemExit(1)

    host = host or settings.server.host
    port = port or settings.server.port
    console.success(f"Serving on http://{host}:{port}")
    uvicorn.run(
        "yandex_auth.application.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )
