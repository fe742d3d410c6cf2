"""Florist repositories package."""

from modules.florists.repositories.django_repository import FloristDjangoRepository
from modules.florists.repositories.interfaces import IFloristRepository

__all__ = ["IFloristRepository", "FloristDjangoRepository"]
