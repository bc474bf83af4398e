"""
Laravel Forge REST client implementing the DeploymentPlatform contract.

Covers the four calls the deployment step needs: list servers, create a
site, request a Let's Encrypt certificate and trigger a deployment.
"""

import logging
from typing import Any, Optional

import requests

from ..errors import DeploymentError
from ..models.deployment_models import Server, Site, SiteInput
from ..utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

FORGE_API_URL = "https://forge.laravel.com/api/v1"


class ForgeAPIClient:
    """Laravel Forge API client (Bearer token auth)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = FORGE_API_URL,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })
        # Forge allows 60 requests per minute
        self._rate_limiter = RateLimiter(requests_per_second=1.0, burst_size=10)

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Make a rate-limited request and return the decoded JSON body."""
        kwargs.setdefault("timeout", (5, 30))
        self._rate_limiter.acquire_sync()

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise DeploymentError(f"Forge request {method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise DeploymentError(
                f"Forge API returned {response.status_code} for {method} {path}: {response.text[:300]}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()

    def list_servers(self) -> list[Server]:
        data = self._request("GET", "/servers")
        return [
            Server(id=str(s["id"]), name=s.get("name", ""), ip_address=s.get("ip_address") or "")
            for s in data.get("servers", [])
        ]

    def create_site(self, server_id: str, data: SiteInput) -> Site:
        """
        Create a site on `server_id` and attach its repository.

        Args:
            server_id: Target server
            data: Site settings; `repository` is an `owner/repo` slug

        Returns:
            The created site

        Raises:
            DeploymentError: If Forge rejects the request
        """
        payload = data.model_dump(exclude_none=True)
        payload.update({"composer": True, "node": True})

        body = self._request("POST", f"/servers/{server_id}/sites", json=payload)
        site = body.get("site") or {}
        if "id" not in site:
            raise DeploymentError(f"Forge did not return a site for {data.domain}")

        logger.info(f"Created Forge site {site['id']} for {data.domain}", extra={"resource_id": site["id"]})
        return Site(id=str(site["id"]), domain=site.get("name", data.domain), server_id=str(server_id))

    def enable_tls(self, site: Site) -> None:
        self._request(
            "POST",
            f"/servers/{site.server_id}/sites/{site.id}/certificates/letsencrypt",
            json={"domains": [site.domain]},
        )

    def deploy(self, site: Site) -> None:
        self._request("POST", f"/servers/{site.server_id}/sites/{site.id}/deployment/deploy")
