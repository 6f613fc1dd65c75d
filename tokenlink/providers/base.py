from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class PoolSearchProvider(Provider):
    """Provider for DEX pool and token search data.

    Every method is best-effort: transport errors, non-2xx responses and
    malformed bodies come back as ``None`` instead of raising.
    """

    @abstractmethod
    async def search_pools(self, query: str, network: str) -> Optional[Dict[str, Any]]:
        """Search pools matching a ticker, address or phrase on one network"""
        pass

    @abstractmethod
    async def search_tokens(self, query: str, network: str) -> Optional[Dict[str, Any]]:
        """Search tokens matching a ticker, address or phrase on one network"""
        pass

    @abstractmethod
    async def fetch_pools_for_token(self, address: str, network: str) -> Optional[Dict[str, Any]]:
        """List the pools of one token"""
        pass

    @abstractmethod
    async def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        max_retries: Optional[int] = None,
    ) -> Optional[Dict[str, Any]]:
        """GET an API path relative to the provider base URL; `max_retries` overrides the configured retry count"""
        pass

    async def close(self) -> None:
        """Release network resources held by the provider"""
        return None
