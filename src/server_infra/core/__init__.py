"""Server infrastructure core modules."""

from server_infra.core.settings import DeploymentSettings, get_settings

__all__ = [
    "DeploymentSettings",
    "get_settings",
]
