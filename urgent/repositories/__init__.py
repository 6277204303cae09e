# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package, re-exports the data-access classes."""
from urgent.repositories.urgent_repository import UrgentRepository
from urgent.repositories.user_repository import UserRepository

__all__ = ["UrgentRepository", "UserRepository"]
