from nusascan.core.config import get_config
from nusascan.core.logging import setup_logging

__all__ = ["get_config", "setup_logging"]
