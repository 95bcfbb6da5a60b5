# utils/supabase_client.py
"""
Supabase client for the hosted auth service.

Auth state lives inside the client, so every Streamlit session gets its
own instance (kept in st.session_state). Database reads and writes do
not go through this client; they use the SQLAlchemy engine in utils.db.
"""

import logging
from supabase import create_client, Client

from .config import config
from .document_tracker.errors import AuthError

logger = logging.getLogger(__name__)

SESSION_KEY_CLIENT = '_supabase_client'


def create_supabase_client() -> Client:
    """Create a new client from configuration."""
    supabase_config = config.get_supabase_config()
    if not supabase_config.is_configured():
        raise AuthError("Sign-in is unavailable: the auth service is not configured")
    logger.info("🔑 Creating Supabase auth client")
    return create_client(supabase_config.url, supabase_config.anon_key)


def get_supabase() -> Client:
    """The current session's client, created on first use."""
    import streamlit as st

    if SESSION_KEY_CLIENT not in st.session_state:
        st.session_state[SESSION_KEY_CLIENT] = create_supabase_client()
    return st.session_state[SESSION_KEY_CLIENT]


def reset_supabase():
    import streamlit as st

    st.session_state.pop(SESSION_KEY_CLIENT, None)
