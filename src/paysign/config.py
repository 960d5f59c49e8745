import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .errors import ConfigError

load_dotenv()

DEFAULT_ENV = os.getenv("PAYSIGN_DEFAULT_ENV", "local")
HTTP_TIMEOUT_SEC = float(os.getenv("PAYSIGN_HTTP_TIMEOUT_SEC", "30"))
FRESHNESS_WINDOW_SEC = int(os.getenv("PAYSIGN_FRESHNESS_WINDOW_SEC", "1800"))

# Sandbox (partner-side verifier used for local end-to-end runs)
SANDBOX_CLIENT_KEYS = os.getenv("SANDBOX_CLIENT_KEYS", "config/clients.json")
SANDBOX_TOKEN_TTL_SEC = int(os.getenv("SANDBOX_TOKEN_TTL_SEC", "900"))

# Sent only for the local environment so the partner's IP allow-list accepts us
LOCAL_FORWARDED_FOR = "104.28.213.125"


class Environment(BaseModel):
    key: str
    name: str
    base_url: str
    partner_id: str
    private_key: str = ""
    merchant_id: str = ""

    def public_view(self) -> Dict[str, str]:
        return {
            "partnerId": self.partner_id,
            "merchantId": self.merchant_id,
            "environment": self.name,
        }


# key -> (env prefix, display name, default base url, default partner id, default merchant id)
_PROFILES = {
    "local": ("LOCAL", "local", "http://localhost:3001/api", "ABG", "A4QZ"),
    "dev": ("DEV", "development", "https://disb2c-dev.xpay378.uk/api", "A00", "A001"),
    "stg": ("STG", "staging", "https://disb2c-stg.xpay378.uk/api", "A01", "A001"),
    "prd": ("PRD", "production", "https://disb2c.xpay378.uk/api", "A01", ""),
}

# Client-side options (UI selection only, never carries secrets)
ENVIRONMENT_OPTIONS = {
    "local": {"name": "Local", "baseUrl": _PROFILES["local"][2]},
    "dev": {"name": "Development", "baseUrl": _PROFILES["dev"][2]},
    "stg": {"name": "Staging", "baseUrl": _PROFILES["stg"][2]},
    "prd": {"name": "Production", "baseUrl": _PROFILES["prd"][2]},
}


def get_environment_config(environment_key: str) -> Optional[Environment]:
    """Resolve a named environment from the process environment.

    Read on every call so rotated keys and test overrides are picked up.
    """
    profile = _PROFILES.get(environment_key)
    if profile is None:
        return None
    prefix, name, base_url, partner_id, merchant_id = profile
    return Environment(
        key=environment_key,
        name=name,
        base_url=os.getenv(f"{prefix}_BASE_URL", base_url),
        partner_id=os.getenv(f"{prefix}_PARTNER_ID", partner_id),
        private_key=os.getenv(f"{prefix}_PRIVATE_KEY", ""),
        merchant_id=os.getenv(f"{prefix}_MERCHANT_ID", merchant_id),
    )


def require_environment(environment_key: str) -> Environment:
    env = get_environment_config(environment_key)
    if env is None:
        raise ConfigError(f"unknown environment: {environment_key!r}")
    return env
