# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Badge + secret check against the operator directory."""
from urgent.core.errors import Unauthorized
from urgent.core.logging import get_logger
from urgent.models.domain import Operator, clean
from urgent.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class CredentialVerifier:
    def __init__(self, users: UserRepository):
        self._users = users

    async def verify(self, matricule: str, password: str,
                     failure_message: str = "Invalid matricule or password.") -> Operator:
        row = await self._users.find_by_credentials(str(matricule).strip(), str(password).strip())
        if row is None:
            # Wrong badge and wrong secret look the same to the caller.
            logger.warning("Credential check failed matricule=%s", str(matricule).strip())
            raise Unauthorized(failure_message)
        return Operator(
            matricule=clean(row["matricule"]),
            first_name=clean(row["first_name"]),
            last_name=clean(row["last_name"]),
            role=clean(row["role"]),
        )
