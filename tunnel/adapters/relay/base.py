from abc import ABC, abstractmethod

from tunnel.schemas.tunnel import FetchResult


class AbstractRelay(ABC):
    """Interface for clients that fetch a URL on behalf of a caller."""

    @abstractmethod
    async def fetch(self, target_url: str) -> FetchResult:
        """Fetch ``target_url`` once and describe the outcome.

        Args:
            target_url: URL supplied by the caller, not validated beforehand.

        Returns:
            FetchResult: Upstream body and status, or the 500 envelope when
            the fetch failed. Implementations never raise for fetch failures.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the relay."""
        return None
