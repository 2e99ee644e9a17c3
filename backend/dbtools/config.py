"""
Connection Settings
Loads Supabase credentials from the environment (.env) and builds clients
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel
from supabase import Client, ClientOptions, create_client

from .errors import ConfigError

logger = logging.getLogger(__name__)

# First non-empty variable wins
URL_VARS = ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL", "VITE_SUPABASE_URL")
ANON_KEY_VARS = ("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY")
SERVICE_KEY_VARS = ("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY")
SQL_RPC_VAR = "SUPABASE_SQL_RPC"
DEFAULT_SQL_RPC = "exec_sql"


class SupabaseSettings(BaseModel):
    """Credentials for one Supabase project"""

    url: str = ""
    anon_key: str = ""
    service_role_key: str = ""
    sql_rpc: str = DEFAULT_SQL_RPC

    def validate_public(self):
        """Raise ConfigError listing every missing public setting"""
        errors = []
        if not self.url:
            errors.append(f"{URL_VARS[0]} is required")
        if not self.anon_key:
            errors.append(f"{ANON_KEY_VARS[0]} is required")
        if errors:
            raise ConfigError("Supabase configuration errors:\n" + "\n".join(errors))

    @property
    def has_service_role(self) -> bool:
        return bool(self.service_role_key)


def _first_env(names) -> str:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return ""


def load_settings(env_file: Optional[Union[str, Path]] = None) -> SupabaseSettings:
    """
    Read settings from the process environment after loading a .env file

    Args:
        env_file: Explicit .env path (default: .env searched from the cwd)

    Returns:
        SupabaseSettings (not validated; see init_supabase)
    """
    if env_file is not None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise ConfigError(f"Env file not found: {env_path}")
        load_dotenv(env_path)
        logger.debug(f"Loaded environment from {env_path}")
    else:
        load_dotenv()

    return SupabaseSettings(
        url=_first_env(URL_VARS),
        anon_key=_first_env(ANON_KEY_VARS),
        service_role_key=_first_env(SERVICE_KEY_VARS),
        sql_rpc=os.getenv(SQL_RPC_VAR, "").strip() or DEFAULT_SQL_RPC,
    )


def init_supabase(settings: Optional[SupabaseSettings] = None, service_role: bool = False) -> Client:
    """
    Build a Supabase client

    The public client uses the anonymous key and is subject to row-level
    security. The service-role client bypasses RLS and refuses to start
    without its key.

    Args:
        settings: Loaded settings (loaded from the environment if None)
        service_role: Use the privileged service-role key

    Returns:
        Connected supabase Client
    """
    settings = settings or load_settings()
    settings.validate_public()

    if service_role:
        if not settings.has_service_role:
            raise ConfigError(
                "Supabase service role key is not defined. "
                f"Set {SERVICE_KEY_VARS[0]} (server-side use only)."
            )
        options = ClientOptions(auto_refresh_token=False, persist_session=False)
        logger.info(f"Creating service-role client for {settings.url}")
        return create_client(settings.url, settings.service_role_key, options=options)

    logger.info(f"Creating anon client for {settings.url}")
    return create_client(settings.url, settings.anon_key)
