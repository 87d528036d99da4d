"""
Base repository class for storage access.

Provides a common abstraction layer for all repositories, encapsulating
storage-backend access and providing shared utilities for data operations.
"""

from typing import Any, TypeVar, Generic


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for storage operations:
    - Storage backend access via self._backend
    - Generic type parameter for model type hints

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class UserStore(BaseRepository[UserRecord]):
            async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
                rows = await self._backend.load_all()
                ...
    """

    def __init__(self, backend: Any) -> None:
        """
        Initialize the repository with a storage backend.

        Args:
            backend: Storage backend instance for persistence operations.
        """
        self._backend = backend
