# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Read-only access to the operator directory (``users``)."""
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine


class UserRepository:
    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def find_by_credentials(self, matricule: str, password: str) -> Optional[Dict[str, Any]]:
        """Badge compared with every space removed, secret compared trimmed."""
        async with self._engine.connect() as conn:
            row = (await conn.execute(
                text("""
                    SELECT matricule, first_name, last_name, role
                    FROM users
                    WHERE REPLACE(TRIM(matricule), ' ', '') = :matricule
                      AND TRIM(password) = :password
                """),
                {"matricule": matricule.replace(" ", ""), "password": password.strip()},
            )).mappings().first()
        return dict(row) if row else None
