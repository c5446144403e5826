"""Container entrypoint.

    python main.py          # PORT / HOST from the environment
    uvicorn main:app        # when uvicorn owns the socket instead
"""
from __future__ import annotations

from helloci.app import app
from helloci.server import serve

__all__ = ["app"]


if __name__ == "__main__":
    raise SystemExit(serve())
