"""
courier CLI — ``courier fetch`` and ``courier config``.

Entry point: ``courier = courier.cli.app:app``.
"""

from courier.cli.app import app

__all__ = ["app"]
