"""
Runtime configuration.

Values come from the process environment, after an optional .env file in
the working directory has been loaded. MONGODB_URI and DB_NAME are
required; everything else has a default.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

WRITE_SCOPE = "write:library"
DEFAULT_ROLE_CLAIM = "https://example.com/roles"
REQUIRED_VARS = ("MONGODB_URI", "DB_NAME")


class MissingConfiguration(RuntimeError):
    def __init__(self, missing: List[str]):
        super().__init__(f"Missing env var(s): {', '.join(missing)}")
        self.missing = missing


@dataclass
class Settings:
    mongodb_uri: str
    db_name: str
    port: int = 8080
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    auth_audience: Optional[str] = None
    auth_issuer_base_url: Optional[str] = None
    auth_disabled: bool = False
    auth_role_claim: str = DEFAULT_ROLE_CLAIM
    write_scope: str = WRITE_SCOPE

    @property
    def auth_configured(self) -> bool:
        return bool(self.auth_audience and self.auth_issuer_base_url)


def _issuer_from(env: Mapping[str, str]) -> Optional[str]:
    if env.get("AUTH0_ISSUER_BASE_URL"):
        return env["AUTH0_ISSUER_BASE_URL"]
    if env.get("AUTH0_DOMAIN"):
        return f"https://{env['AUTH0_DOMAIN']}"
    return None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    if env is None:
        load_dotenv()
        env = os.environ

    missing = [key for key in REQUIRED_VARS if not env.get(key)]
    if missing:
        raise MissingConfiguration(missing)

    origins = [o.strip() for o in env.get("CORS_ORIGINS", "*").split(",") if o.strip()]

    return Settings(
        mongodb_uri=env["MONGODB_URI"],
        db_name=env["DB_NAME"],
        port=int(env.get("PORT") or 8080),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        cors_origins=origins or ["*"],
        auth_audience=env.get("AUTH0_AUDIENCE") or None,
        auth_issuer_base_url=_issuer_from(env),
        auth_disabled=str(env.get("AUTH_DISABLE", "")).lower() == "true",
        auth_role_claim=env.get("AUTH_ROLE_CLAIM") or DEFAULT_ROLE_CLAIM,
    )
