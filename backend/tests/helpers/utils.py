"""Assertion helpers shared by the test modules."""

from __future__ import annotations

from contextlib import contextmanager


@contextmanager
def not_raises(exception: type[BaseException]):
    """Fail the test if ``exception`` escapes the block.

    Reads better than a bare call when the point of a test is that an
    operation is tolerated (logging out twice, revoking an unknown session).
    """
    try:
        yield
    except exception as exc:  # pragma: no cover
        raise AssertionError(f"Unexpected {exception.__name__}: {exc}") from exc
