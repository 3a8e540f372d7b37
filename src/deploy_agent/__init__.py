"""Deploy Agent - host-resident agent for container-stack deployments."""

__version__ = "0.1.0"

from deploy_agent.core.config import Settings, load_settings

__all__ = ["Settings", "load_settings", "__version__"]
