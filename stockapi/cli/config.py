import os
from dataclasses import dataclass
from typing import Optional


API_BASE_ENV = "API_BASE_URL"
DEFAULT_API_BASE = "http://localhost:3000"


@dataclass
class ClientSettings:
    base_url: str
    timeout: float = 30.0


def get_client_settings(base_url: Optional[str] = None) -> ClientSettings:
    """Resolve the API base URL from the override, then ``API_BASE_URL``, then the local default."""

    resolved = base_url or os.getenv(API_BASE_ENV) or DEFAULT_API_BASE
    return ClientSettings(base_url=resolved.rstrip("/"))
