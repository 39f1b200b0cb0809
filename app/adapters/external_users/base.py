from abc import ABC, abstractmethod
from typing import Any


class AbstractExternalUsersClient(ABC):
    """Interface for clients that fetch the external users listing."""

    @abstractmethod
    async def fetch_users(self) -> Any:
        """Fetch the raw decoded JSON payload of the external listing.

        Raises:
            ExternalServiceError: If the call fails or the body is not JSON.
        """
        ...
