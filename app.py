# app.py
"""
Customer Document Tracker - Main Entry Point

Version: 1.0.0
"""

import streamlit as st
from utils.auth import AuthManager
from utils.db import check_db_connection
from utils.document_tracker.fragments import (
    live_updates_fragment, render_build_footer, show_only_table, teardown_views,
)
from utils.document_tracker.validators import password_strength
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Customer Document Tracker"
APP_ICON = "📁"
APP_VERSION = "1.0.0"

st.set_page_config(
    page_title=APP_NAME,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

# ==================== CUSTOM CSS ====================

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
        color: #1f77b4;
    }

    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }

    .welcome-box {
        background: linear-gradient(135deg, #1f77b4 0%, #2196f3 100%);
        color: white;
        padding: 2rem;
        border-radius: 0.75rem;
        margin-bottom: 2rem;
    }

    .welcome-title {
        font-size: 1.75rem;
        font-weight: 600;
        margin-bottom: 0.5rem;
    }

    .info-card {
        background: #f8f9fa;
        padding: 1.5rem;
        border-radius: 0.5rem;
        border-left: 4px solid #1f77b4;
        margin-bottom: 1rem;
    }

    .footer {
        text-align: center;
        color: #888;
        padding: 1rem;
        margin-top: 3rem;
        border-top: 1px solid #eee;
        font-size: 0.9rem;
    }
</style>
""", unsafe_allow_html=True)

# ==================== INITIALIZATION ====================

auth = AuthManager()

# ==================== HELPER FUNCTIONS ====================

def _show_field_errors(result: dict):
    errors = result.get("errors") or {}
    if not errors:
        st.error(result.get("error", "Something went wrong"))
        return
    for field, message in errors.items():
        st.error(f"{field.replace('_', ' ').capitalize()}: {message}")


def _login_tab():
    with st.form("login_form", clear_on_submit=False):
        st.markdown("#### 🔐 Sign in")
        email = st.text_input("Email", placeholder="you@company.com", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        submit = st.form_submit_button("🔑 Sign in", type="primary", use_container_width=True)

    if submit:
        with st.spinner("Signing in..."):
            success, result = auth.sign_in(email, password)
        if success:
            st.success("✅ Signed in")
            st.rerun()
        else:
            _show_field_errors(result)


def _register_tab():
    st.markdown("#### 📝 Create account")
    full_name = st.text_input("Full name", key="register_full_name")
    email = st.text_input("Email", key="register_email")
    password = st.text_input("Password", type="password", key="register_password")
    if password:
        strength = password_strength(password)
        st.progress(strength.score / 5, text=f"Password strength: {strength.label}")
        for line in strength.feedback:
            st.caption(f"• {line}")
    confirm = st.text_input("Confirm password", type="password", key="register_confirm")

    if st.button("Create account", type="primary", use_container_width=True, key="register_submit"):
        with st.spinner("Creating account..."):
            success, result = auth.sign_up(full_name, email, password, confirm)
        if success:
            st.success(result["message"])
        else:
            _show_field_errors(result)


def _reset_tab():
    with st.form("reset_form"):
        st.markdown("#### 🔁 Forgot password")
        email = st.text_input("Email", key="reset_email")
        submit = st.form_submit_button("Send reset link", use_container_width=True)

    if submit:
        success, result = auth.send_password_reset(email)
        if success:
            st.success(result["message"])
        else:
            _show_field_errors(result)


def show_login_page():
    """Display the sign-in / registration / reset screens"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Customer documents, trends and targets at a glance</p>', unsafe_allow_html=True)

    # Check database connection
    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        st.info("Please check your network connection or contact support.")
        return

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        tab_login, tab_register, tab_reset = st.tabs(["Sign in", "Register", "Forgot password"])
        with tab_login:
            _login_tab()
        with tab_register:
            _register_tab()
        with tab_reset:
            _reset_tab()

    render_build_footer()


def show_main_app():
    """Display the main application after login"""

    # Sidebar
    with st.sidebar:
        st.markdown(f"### 👤 {auth.get_user_display_name()}")

        if auth.is_admin():
            st.success("🔓 Administrator")
        else:
            st.info("👤 User")

        st.caption(auth.get_user_email() or "")
        st.markdown("---")

        # Logout
        if st.button("🚪 Logout", use_container_width=True):
            teardown_views()
            auth.logout()
            st.rerun()

    auth.show_session_controls()
    show_only_table()

    # Main content - Welcome
    st.markdown(f"""
    <div class="welcome-box">
        <div class="welcome-title">Welcome, {auth.get_user_display_name()}! 👋</div>
        <div>Select a page from the sidebar menu to get started.</div>
    </div>
    """, unsafe_allow_html=True)

    st.markdown("### 📊 Pages")
    st.markdown("""
    <div class="info-card">
        <strong>📊 Dashboard</strong><br>
        <span style="color: #666;">Document counts per customer, trends against targets, live updates.</span>
    </div>
    <div class="info-card">
        <strong>👤 Profile</strong><br>
        <span style="color: #666;">Account details and password change.</span>
    </div>
    """, unsafe_allow_html=True)

    if auth.is_admin():
        st.markdown("""
        <div class="info-card">
            <strong>🗂️ Customer Management</strong> · <strong>⚙️ Settings</strong><br>
            <span style="color: #666;">Edit customers, targets, automation and user roles (administrators).</span>
        </div>
        """, unsafe_allow_html=True)

        st.markdown("---")
        with st.expander("🔧 System Status (Admin Only)"):
            from utils.db import get_connection_pool_status, reset_db_engine
            pool_status = get_connection_pool_status()

            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("DB Status", pool_status.get("status", "OK"))
            with col2:
                st.metric("Connections Used", pool_status.get("checked_out", 0))
            with col3:
                st.metric("Available", pool_status.get("checked_in", 0))

            if st.session_state.get('debug_mode'):
                st.json(pool_status)

            if st.button("🔄 Reconnect database", key="reset_db_engine"):
                reset_db_engine()
                st.rerun()

    live_updates_fragment(None, [], [], on_tick=auth.session_tick)

    render_build_footer()


# ==================== MAIN ====================

def main():
    """Main application entry point"""
    if not auth.check_session():
        show_login_page()
    else:
        auth.refresh_session_if_due()
        show_main_app()


if __name__ == "__main__":
    main()
