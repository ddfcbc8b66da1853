"""Main CLI application using Cyclopts."""

import cyclopts

from yandex_auth.cli.commands import config, server

app = cyclopts.App(
    name="yauth",
    help="Yandex sign-in demo - CLI",
)

app.command(server.app, name="server")
app.command(config.app, name="config")
