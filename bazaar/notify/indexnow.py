"""IndexNow submissions so search engines pick up newly approved listings."""

import logging
from typing import List, Optional

import httpx

from bazaar import metrics
from bazaar.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# IndexNow rejects batches larger than this
MAX_URLS_PER_SUBMISSION = 10000


class IndexNowClient:
    """Push listing URLs to the IndexNow endpoint. Failures never propagate."""

    def __init__(
        self,
        config: Settings = default_settings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.config.indexnow_enabled and self.config.indexnow_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.indexnow_timeout_seconds)
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def listing_url(self, product_id: str) -> str:
        return f"{self.config.public_site_url.rstrip('/')}/product/{product_id}"

    async def submit(self, urls: List[str]) -> bool:
        """
        Submit URLs for indexing.

        Only URLs on our own host are sent.

        Returns:
            True if the endpoint accepted the batch, False otherwise
        """
        if not self.enabled:
            return False

        host = self.config.indexnow_host
        urls = [url for url in urls if host in url][:MAX_URLS_PER_SUBMISSION]
        if not urls:
            logger.debug("No IndexNow URLs for our host; skipping")
            return False

        payload = {
            "host": host,
            "key": self.config.indexnow_key,
            "keyLocation": f"https://{host}/{self.config.indexnow_key}.txt",
            "urlList": urls,
        }

        try:
            client = await self._get_client()
            response = await client.post(
                self.config.indexnow_endpoint,
                json=payload,
                headers={"Content-Type": "application/json; charset=utf-8"},
            )
            if response.status_code in (200, 202):
                metrics.indexnow_submissions_total.labels(status="success").inc()
                logger.info(f"Submitted {len(urls)} URL(s) to IndexNow, status: {response.status_code}")
                return True

            metrics.indexnow_submissions_total.labels(status="rejected").inc()
            logger.warning(f"IndexNow returned {response.status_code}: {response.text[:200]}")
            return False

        except Exception as e:
            metrics.indexnow_submissions_total.labels(status="error").inc()
            logger.warning(f"IndexNow submission failed: {e}")
            return False

    async def submit_listing(self, product_id: str) -> bool:
        return await self.submit([self.listing_url(product_id)])
