"""
Presence check of model families in the public Ollama library
"""

import logging
from typing import Dict, Iterable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://ollama.com"


class RegistryClient:
    """Answers only whether a family is listed; no metadata is fetched"""

    def __init__(self, base_url: str = DEFAULT_REGISTRY_URL, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def check(self, family: str) -> bool:
        try:
            response = httpx.get(f"{self.base_url}/api/tags/{family}", timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.warning(f"Registry check for {family} failed: {e}")
            return False
        return response.status_code == 200 and bool(response.text.strip())

    def check_all(self, families: Iterable[str]) -> Dict[str, bool]:
        return {family: self.check(family) for family in families}
