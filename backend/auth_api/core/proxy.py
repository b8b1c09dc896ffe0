"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` for trusted hops.

    Parameters
    ----------
    app: flask.Flask
        Application whose WSGI pipeline should respect upstream proxy headers.

    Notes
    -----
    The service is reachable directly or through the frontend rewrite of
    ``/api/auth/*``. ``TRUSTED_PROXY_HOPS`` says how many ``X-Forwarded-*``
    hops to trust: ``0`` by default, ``1`` in production. ``0`` disables the
    middleware so client supplied headers never influence the session's
    recorded IP.
    """
    hops = int(app.config.get("TRUSTED_PROXY_HOPS", 0))
    if hops > 0:
        app.wsgi_app = ProxyFix(  # type: ignore[method-assign]
            app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops
        )
