"""Repositories for schoolcert."""

from schoolcert.repositories.student import StudentRepository

__all__ = ["StudentRepository"]
