"""``flask auth ...`` administration commands."""

from __future__ import annotations

from flask import Flask

from .auth import auth_cli


def init_app(app: Flask) -> None:
    """Attach the ``auth`` command group to ``app.cli``."""
    app.cli.add_command(auth_cli)
