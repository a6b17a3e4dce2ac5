from __future__ import annotations

from devicedash.models.config import AppSettings

__all__ = ["AppSettings"]
