"""Auth domain models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CurrentUser:
    user_id: int
    email: str
    username: str
