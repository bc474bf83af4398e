"""Deployment platform data models."""

from typing import Optional

from pydantic import BaseModel


class Server(BaseModel):
    """Provisioned server on the deployment platform."""

    id: str
    name: str
    ip_address: str = ""


class SiteInput(BaseModel):
    """Payload for creating a site."""

    domain: str
    repository: str
    branch: str = "main"
    project_type: str = "laravel"
    directory: str = "/public"
    php_version: str = "php81"
    database: Optional[str] = None
    database_name: Optional[str] = None


class Site(BaseModel):
    """Site created on a server."""

    id: str
    domain: str
    server_id: str
