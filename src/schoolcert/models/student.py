"""Student entity (read-only view of the student store)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Student:
    id: int
    name: str
    email: str
    wallet_address: str | None = None
    class_name: str | None = None
    section_name: str | None = None
    roll: int | None = None
