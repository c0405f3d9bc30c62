"""Student repository (read-only view of the school's student store).

The ``users`` / ``user_profiles`` tables are owned by the school
management service; this module only reads them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from schoolcert.models.student import Student

if TYPE_CHECKING:
    from schoolcert.db.database import Database

_FIND_STUDENT_DETAIL = """
    SELECT
        u.id,
        u.name,
        u.email,
        p.wallet_address,
        p.class_name,
        p.section_name,
        p.roll
    FROM users u
    LEFT JOIN user_profiles p ON u.id = p.user_id
    WHERE u.id = %s
"""


class StudentRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def _row_to_entity(self, row: dict) -> Student:
        return Student(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            wallet_address=row.get("wallet_address") or None,
            class_name=row.get("class_name"),
            section_name=row.get("section_name"),
            roll=row.get("roll"),
        )

    def find_student_detail(self, student_id: int | str) -> Student | None:
        """Return the student with *student_id*, or ``None``.

        Ids that are not positive integers cannot exist and return
        ``None`` without touching the database.
        """
        try:
            sid = int(str(student_id).strip())
        except ValueError:
            return None
        if sid <= 0:
            return None

        row = self._db.fetch_one(_FIND_STUDENT_DETAIL, (sid,))
        return self._row_to_entity(row) if row is not None else None
