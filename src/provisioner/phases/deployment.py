"""
Optional Deployment Phase.

Creates a site on the deployment platform for the published repository,
then requests a TLS certificate and triggers a first deployment. TLS and
deploy failures are logged; site creation failures are fatal only when the
configuration marks deployment as required.
"""

import logging
from typing import Optional

from ..clients.git_remote import repository_slug
from ..clients.protocols import DeploymentPlatform
from ..errors import DeploymentError
from ..models.deployment_models import Server, Site, SiteInput
from ..utils.config_loader import DeployConfig
from ..utils.resilient_caller import ResilientCaller

logger = logging.getLogger(__name__)


class DeploymentStep:
    """Site creation, TLS and first deploy for one application."""

    def __init__(
        self,
        platform: DeploymentPlatform,
        caller: ResilientCaller,
        config: DeployConfig,
        app_name: str,
    ):
        self.platform = platform
        self.caller = caller
        self.config = config
        self.app_name = app_name

    def run(self, repo_url: Optional[str], branch: str = "main") -> Optional[Site]:
        """
        Create and deploy the site.

        Args:
            repo_url: Published repository (any form normalize_remote_url accepts)
            branch: Branch to deploy

        Returns:
            The created site, or None if site creation failed and is not required

        Raises:
            Exception: The site creation error when `deploy.required` is set
        """
        try:
            site = self._create_site(repo_url, branch)
        except Exception as e:
            if self.config.required:
                logger.error(f"Site creation failed: {e}")
                raise
            logger.warning(f"Site creation failed, continuing without deployment: {e}")
            return None

        try:
            self.caller.call(lambda: self.platform.enable_tls(site))
            logger.info(f"TLS certificate requested for {site.domain}", extra={"resource_id": site.id})
        except Exception as e:
            logger.warning(f"TLS setup failed for {site.domain} (enable it manually): {e}")

        try:
            self.caller.call(lambda: self.platform.deploy(site))
            logger.info(f"Deployment triggered for {site.domain}", extra={"resource_id": site.id})
        except Exception as e:
            logger.warning(f"Deployment failed for {site.domain} (deploy manually): {e}")

        return site

    def _create_site(self, repo_url: Optional[str], branch: str) -> Site:
        if not repo_url:
            raise DeploymentError("A repository URL is required to create a site")

        server = self._select_server()
        data = SiteInput(
            domain=self.config.domain or f"{self.app_name}.com",
            repository=repository_slug(repo_url),
            branch=branch,
            project_type=self.config.project_type,
            php_version=self.config.php_version,
            database=self.config.database,
            database_name=self.config.database_name or self.app_name.replace("-", "_"),
        )

        logger.info(f"Creating site {data.domain} on server {server.name}")
        return self.caller.call(lambda: self.platform.create_site(server.id, data))

    def _select_server(self) -> Server:
        servers = self.caller.call(self.platform.list_servers)
        if not servers:
            raise DeploymentError("No servers found on the deployment platform")

        if self.config.server_id is None:
            return servers[0]

        for server in servers:
            if server.id == str(self.config.server_id):
                return server
        raise DeploymentError(f"Server {self.config.server_id} not found")
