"""Monetizzy link shortener client"""
import logging
from typing import Optional

import httpx

from .errors import GatewayAuthError, GatewayError, GatewayTimeoutError

logger = logging.getLogger(__name__)

# Constants
MONETIZZY_SHORTEN_URL = "https://api.monetizzy.com/api/shorten/link"
MONETIZZY_DOMAIN = "ufly.monetizzy.com"
MONETIZZY_LINK_TYPE = 4
DEFAULT_TIMEOUT = 10.0


class MonetizzyGateway:
    """Shortens links through the Monetizzy API.

    One request per call and no retries: a retried POST can create two
    short links for the same /gerar request.
    """

    def __init__(
        self,
        token: str,
        api_url: str = MONETIZZY_SHORTEN_URL,
        domain: str = MONETIZZY_DOMAIN,
        link_type: int = MONETIZZY_LINK_TYPE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.api_url = api_url
        self.domain = domain
        self.link_type = link_type
        self.timeout = timeout
        self._transport = transport

    async def shorten(self, link: str) -> str:
        """Return the shortened URL for *link*"""
        payload = {"link": link, "domain": self.domain, "type": self.link_type}
        headers = {"Authorization": f"Bearer {self.token}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.api_url, json=payload, headers=headers)
            except httpx.TimeoutException as e:
                logger.warning(f"Monetizzy timed out after {self.timeout}s for {link}")
                raise GatewayTimeoutError() from e
            except httpx.HTTPError as e:
                logger.error(f"Monetizzy request failed: {e!r}")
                raise GatewayError() from e

        if response.status_code == 401:
            logger.warning("Monetizzy rejected the bearer token")
            raise GatewayAuthError()
        if not response.is_success:
            logger.error(f"Monetizzy returned HTTP {response.status_code}: {response.text[:200]}")
            raise GatewayError(f"Erro na API Monetizzy (HTTP {response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Monetizzy returned a non-JSON body: {response.text[:200]}")
            raise GatewayError("Erro ao gerar link") from e

        short_link = data.get("shortened_url") if isinstance(data, dict) else None
        if not isinstance(short_link, str) or not short_link.strip():
            logger.error(f"Monetizzy response has no shortened_url: {data!r}")
            raise GatewayError("Erro ao gerar link")

        logger.info(f"Monetizzy shortened {link} -> {short_link}")
        return short_link
