"""
Supabase client for dialogue session persistence

The host stores each session as one row of the dialogue_sessions table
(see socratic_flow_engine.session_manager). Persistence is optional: when
the connection variables are missing, sessions live in memory.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from supabase import Client, create_client

# backend/.env first, then the repository root
load_dotenv()
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), '.env'))

URL_VAR = "SUPABASE_URL"
KEY_VAR = "SUPABASE_SERVICE_KEY"

_client: Optional[Client] = None


def supabase_configured() -> bool:
    """True when both connection variables are set."""
    return bool(os.getenv(URL_VAR) and os.getenv(KEY_VAR))


def get_supabase_client() -> Client:
    """
    Shared client built from SUPABASE_URL and SUPABASE_SERVICE_KEY.

    The service role key is used because the host writes session rows
    directly, without end-user auth.

    Raises:
        ValueError: If either variable is missing
    """
    global _client

    if _client is None:
        if not supabase_configured():
            raise ValueError(f"{URL_VAR} and {KEY_VAR} must be set to persist sessions in Supabase")
        _client = create_client(os.getenv(URL_VAR), os.getenv(KEY_VAR))

    return _client
