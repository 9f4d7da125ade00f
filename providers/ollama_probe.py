"""
Ollama availability probe.

Tries the configured base URL and its localhost/127.0.0.1 twin, and remembers
whichever answered last so later calls go straight to a working address.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

HEALTH_PATH = "/api/tags"


def candidate_urls(base_url: str) -> List[str]:
    """
    Build the ordered, de-duplicated candidate list for a base URL.

    localhost can resolve to ::1 first while Ollama only listens on IPv4,
    so the explicit IPv4 form is always tried too.
    """
    base_url = base_url.rstrip("/")
    urls = [
        base_url,
        base_url.replace("localhost", "127.0.0.1"),
        base_url.replace("127.0.0.1", "localhost"),
    ]
    return list(dict.fromkeys(urls))


class OllamaProbe:
    """
    Reachability check with a cached "last known good" base URL.

    The cached URL lives on this instance, so its lifetime is the lifetime of
    whoever owns the probe (normally the provider resolver).
    """

    def __init__(self, base_url: str, timeout: float = 3.0):
        self.configured_url = base_url.rstrip("/")
        self.base_url = self.configured_url
        self.timeout = timeout
        self.client: Optional[httpx.AsyncClient] = None

    def default_candidates(self) -> List[str]:
        """Cached URL and its twin first, then the configured URL and its twin."""
        urls = candidate_urls(self.base_url) + candidate_urls(self.configured_url)
        return list(dict.fromkeys(urls))

    async def _ensure_client(self):
        """Ensure async client is initialized"""
        if not self.client:
            self.client = httpx.AsyncClient()

    async def aclose(self):
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _check(self, url: str, timeout: float) -> bool:
        try:
            logger.debug(f"Checking if Ollama is running at {url}...")
            # httpx applies the timeout per phase; wait_for bounds the whole request
            response = await asyncio.wait_for(
                self.client.get(f"{url}{HEALTH_PATH}", timeout=timeout),
                timeout=timeout,
            )
            return 200 <= response.status_code < 300
        except asyncio.TimeoutError:
            logger.info(f"Ollama check at {url} timed out after {timeout}s")
            return False
        except httpx.InvalidURL as e:
            logger.warning(f"Invalid Ollama URL {url}: {e}")
            return False
        except httpx.HTTPError as e:
            logger.info(f"Ollama check error at {url}: {e}")
            message = str(e)
            if "::1" in message and ("refused" in message.lower() or "ECONNREFUSED" in message):
                logger.info("Detected IPv6 connection attempt. Will try IPv4 address next.")
            return False

    async def probe(
        self,
        candidates: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """
        Return the first candidate URL that answers, or None.

        Args:
            candidates: URLs to try in order (default: default_candidates())
            timeout: Per-candidate timeout in seconds (default: self.timeout)

        Returns:
            The reachable URL, which also becomes self.base_url, or None.
            Never raises for network failures.
        """
        await self._ensure_client()
        timeout = self.timeout if timeout is None else timeout
        candidates = list(candidates) if candidates else self.default_candidates()

        for url in candidates:
            url = url.rstrip("/")
            if await self._check(url, timeout):
                logger.info(f"✅ Successfully connected to Ollama at {url}")
                if url != self.base_url:
                    logger.info(f"Updating Ollama API URL from {self.base_url} to {url}")
                    self.base_url = url
                return url

        logger.warning(f"❌ Could not connect to Ollama on any URL: {candidates}")
        return None
