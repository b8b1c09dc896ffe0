"""HTTP surface: every endpoint lives under ``<API_BASE_PREFIX>/auth``."""

from __future__ import annotations

from flask import Blueprint, Flask


def _join(*parts: str) -> str:
    return "/" + "/".join(p.strip("/") for p in parts if p.strip("/"))


def init_app(app: Flask) -> None:
    """Mount the health, credential and Google blueprints.

    Resulting routes: ``/api/auth/health``, ``/api/auth/{register,login,
    refresh,logout,me}`` and ``/api/auth/google{,/callback}``.
    """
    from auth_api.api.auth import bp as auth_bp
    from auth_api.api.health import bp as health_bp
    from auth_api.api.oauth import bp as oauth_bp

    auth_root = _join(app.config.get("API_BASE_PREFIX", "/api"), "auth")
    mounts: list[tuple[Blueprint, str]] = [
        (health_bp, ""),
        (auth_bp, ""),
        (oauth_bp, "google"),
    ]
    for blueprint, sub in mounts:
        app.register_blueprint(blueprint, url_prefix=_join(auth_root, sub))


__all__ = ["init_app"]
