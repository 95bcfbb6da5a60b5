# utils/document_tracker/fragments.py
"""
Streamlit Fragments for the Customer Document Tracker.

Contains:
- session helpers: per-session coordinator, listener, tables, browser,
  stats snapshot; show_only_table pauses tables that are off screen
- live_updates_fragment: pumps change notifications on a timer
- render_dismissible_warning: load-failure banner with a Dismiss button
- render_metric_cards: customer count + trend cards
- customer_table_fragment: sortable, searchable, paginated customer table
- render_export_buttons: CSV / Excel download of the filtered rows
- document_browser_dialog: per-customer documents
- settings_form_fragment / automation_fragment / user_roles_fragment
- password_change_form, render_build_footer

Collaborators (queries, coordinator, current user) are passed in; this
module does not import utils.auth.

VERSION: 1.0.0
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence
import httpx
import pandas as pd
import streamlit as st

from ..config import config
from .badges import badge_resolver
from .charts import metric_card_chart
from .constants import (
    COLORS, CUSTOMER_EDITABLE_FIELDS, DATETIME_DISPLAY_FORMAT, DEFAULT_BADGE_COLOR,
    DOCUMENT_DATE_FORMAT, DOCUMENT_TYPES, PAGE_SIZE_OPTIONS, SESSION_KEY_COORDINATOR,
    SESSION_KEY_DOCUMENT_BROWSER, SESSION_KEY_LISTENER, SESSION_KEY_METRICS, SESSION_KEY_SETTINGS_STATE,
    STATS_UPDATE_EVENT,
)
from .document_browser import DocumentBrowser
from .export import CustomerExport, export_frame
from .errors import (
    AuthorizationError, SettingsMissingError, WebhookError, WriteError,
)
from .metrics import StatsSnapshot
from .models import (
    ActorRef, AppSettings, ColumnSpec, MetricCard, SettingsState, SortDirection,
)
from .notifications import ChangeCoordinator, ChangeNotificationListener
from .table_engine import CustomerTable
from .validators import FormValidator, password_strength
from .webhook import error_message, trigger_automation

logger = logging.getLogger(__name__)


# =============================================================================
# SESSION HELPERS
# =============================================================================

def get_coordinator() -> ChangeCoordinator:
    if SESSION_KEY_COORDINATOR not in st.session_state:
        st.session_state[SESSION_KEY_COORDINATOR] = ChangeCoordinator()
    return st.session_state[SESSION_KEY_COORDINATOR]


def get_listener(coordinator: ChangeCoordinator) -> Optional[ChangeNotificationListener]:
    """Start the session's change listener once; None when realtime is disabled."""
    if not config.is_feature_enabled("REALTIME"):
        return None
    if SESSION_KEY_LISTENER not in st.session_state:
        listener = ChangeNotificationListener(coordinator)
        listener.start()
        st.session_state[SESSION_KEY_LISTENER] = listener
    return st.session_state[SESSION_KEY_LISTENER]


def get_customer_table(session_key: str, **kwargs) -> CustomerTable:
    if session_key not in st.session_state:
        kwargs.setdefault('debounce_ms', config.get_app_setting("REFRESH_DEBOUNCE_MS", 1000))
        st.session_state[session_key] = CustomerTable(**kwargs)
    return st.session_state[session_key]


def get_document_browser() -> DocumentBrowser:
    if SESSION_KEY_DOCUMENT_BROWSER not in st.session_state:
        from zoneinfo import ZoneInfo
        tz = ZoneInfo(config.get_app_setting("TIMEZONE", "Europe/Amsterdam"))
        st.session_state[SESSION_KEY_DOCUMENT_BROWSER] = DocumentBrowser(tz=tz)
    return st.session_state[SESSION_KEY_DOCUMENT_BROWSER]


def get_stats_snapshot() -> StatsSnapshot:
    if SESSION_KEY_METRICS not in st.session_state:
        st.session_state[SESSION_KEY_METRICS] = StatsSnapshot()
    return st.session_state[SESSION_KEY_METRICS]


def show_only_table(active: Optional[CustomerTable] = None,
                    fetch: Optional[Callable[[], pd.DataFrame]] = None):
    """Pause every session table except the one this page renders."""
    for value in list(st.session_state.values()):
        if isinstance(value, CustomerTable) and value is not active:
            value.pause()
    if active is not None and fetch is not None:
        active.resume(fetch)


def bind_table_to_changes(
table: CustomerTable, coordinator: ChangeCoordinator,
                          fetch: Callable[[], pd.DataFrame], session_key: str):
    """Subscribe the table to change events once per session."""
    handles_key = f"{session_key}_subscriptions"
    if handles_key in st.session_state:
        return
    st.session_state[handles_key] = coordinator.subscribe_view(
        lambda event: table.handle_external_change(fetch)
    )


def teardown_views():
    """Unsubscribe every view and close the listener (on sign-out)."""
    coordinator = st.session_state.get(SESSION_KEY_COORDINATOR)
    for key in list(st.session_state.keys()):
        value = st.session_state[key]
        if isinstance(key, str) and key.endswith('_subscriptions') and coordinator is not None:
            coordinator.unsubscribe_all(value)
            del st.session_state[key]
        elif isinstance(value, CustomerTable):
            value.unmount()
    listener = st.session_state.pop(SESSION_KEY_LISTENER, None)
    if listener is not None:
        listener.stop()


def load_settings_state(queries) -> SettingsState:
    """Load the settings row into a tagged state; backend errors become MISSING too."""
    try:
        state = SettingsState.loaded(queries.load_settings())
    except SettingsMissingError as e:
        state = SettingsState.missing(str(e))
    except Exception as e:
        state = SettingsState.missing(f"Settings could not be loaded: {e}")
    st.session_state[SESSION_KEY_SETTINGS_STATE] = state
    return state


def require_settings(queries) -> AppSettings:
    """Stop the page with a blocking error when the settings row is unavailable."""
    state = load_settings_state(queries)
    if not state.is_loaded:
        st.error(
            f"🚫 **Critical configuration missing.** {state.error}\n\n"
            "The application cannot work correctly until an administrator restores the settings record."
        )
        st.stop()
    return state.settings


# =============================================================================
# LIVE UPDATES
# =============================================================================

def live_updates_fragment(listener: Optional[ChangeNotificationListener],
                          tables: Sequence[CustomerTable],
                          fetches: Sequence[Callable[[], pd.DataFrame]],
                          on_tick: Optional[Callable[[], bool]] = None):
    """
    Poll notifications every REALTIME_POLL_SECONDS and rerun the page on change.

    on_tick runs on the same timer (session refresh); a True result reruns
    the page as well.
    """
    poll_seconds = config.get_app_setting("REALTIME_POLL_SECONDS", 5)

    @st.fragment(run_every=poll_seconds)
    def _tick():
        revisions = [t.revision for t in tables]
        delivered = listener.pump() if listener is not None else 0
        for table, fetch in zip(tables, fetches):
            table.flush_pending(fetch)
        rerun = on_tick() if on_tick is not None else False
        if rerun or delivered or [t.revision for t in tables] != revisions:
            st.rerun()

    _tick()


def render_dismissible_warning(message: str, key: str, on_dismiss: Callable[[], None]):
    """Load-failure banner; the data already on screen stays."""
    col_msg, col_dismiss = st.columns([6, 1])
    with col_msg:
        st.warning(f"⚠️ {message} Showing the last loaded data.")
    with col_dismiss:
        st.button("Dismiss", key=key, on_click=on_dismiss)



# =============================================================================
# METRIC CARDS
# =============================================================================

def render_metric_cards(cards: List[MetricCard], customer_count: int):
    """Customer count card followed by one card per trend metric."""
    columns = st.columns(len(cards) + 1)

    with columns[0]:
        st.metric("👥 Customers", f"{customer_count:,}")

    for col, card in zip(columns[1:], cards):
        with col:
            st.metric(
                card.label,
                f"{card.value:,}",
                delta=f"{card.change:+.2f}%",
                delta_color="inverse",
            )
            if card.target is None:
                st.caption("🎯 No target set")
            else:
                icon = "✅" if card.on_target else "⚠️"
                st.caption(f"🎯 Target {card.target:,} · {icon} {card.status_label}")
            st.altair_chart(metric_card_chart(card), use_container_width=True)
            if card.is_placeholder:
                st.caption("No history yet (placeholder)")


# =============================================================================
# CUSTOMER TABLE
# =============================================================================

def _format_timestamp(value) -> str:
    if value is None or pd.isna(value):
        return ''
    return pd.Timestamp(value).strftime(DATETIME_DISPLAY_FORMAT)


def _display_frame(rows: pd.DataFrame, columns: Sequence[ColumnSpec]) -> pd.DataFrame:
    """Page rows with actor refs resolved to badge labels and dates formatted."""
    badges = badge_resolver.badges_for(rows['last_updated_by']) if 'last_updated_by' in rows else {}
    display = pd.DataFrame(index=rows.index)
    for spec in columns:
        if spec.key not in rows.columns:
            continue
        if spec.key == 'last_updated_by':
            display[spec.label] = rows[spec.key].map(
                lambda a: badges[a.value].label if isinstance(a, ActorRef) and a.value in badges else ''
            )
        elif spec.key == 'cs_last_update':
            display[spec.label] = rows[spec.key].map(_format_timestamp)
        else:
            display[spec.label] = rows[spec.key]
    return display.reset_index(drop=True)


def _badge_styles(rows: pd.DataFrame):
    """Background colours for the 'By' column, aligned with the page rows."""
    badges = badge_resolver.badges_for(rows['last_updated_by'])
    colors = [
        badges[a.value].color if isinstance(a, ActorRef) and a.value in badges else DEFAULT_BADGE_COLOR
        for a in rows['last_updated_by']
    ]
    return [f"background-color: {c}" if c else '' for c in colors]


def _sort_header(table: CustomerTable, columns: Sequence[ColumnSpec], key_prefix: str):
    header_cols = st.columns(len(columns))
    for col, spec in zip(header_cols, columns):
        arrow = ''
        if table.sort_config.key == spec.key:
            arrow = ' ▲' if table.sort_config.direction is SortDirection.ASC else ' ▼'
        with col:
            st.button(
                f"{spec.label}{arrow}",
                key=f"{key_prefix}_sort_{spec.key}",
                on_click=table.sort,
                args=(spec.key,),
                use_container_width=True,
            )


def _table_footer(table: CustomerTable, key_prefix: str):
    start, end, total = table.page_range()
    col_size, col_info, col_prev, col_page, col_next = st.columns([1.2, 2, 0.6, 1, 0.6])

    size_key = f"{key_prefix}_page_size"
    with col_size:
        st.selectbox(
            "Rows per page",
            PAGE_SIZE_OPTIONS,
            index=PAGE_SIZE_OPTIONS.index(table.page_size) if table.page_size in PAGE_SIZE_OPTIONS else 0,
            key=size_key,
            on_change=lambda: table.paginate(page_size=st.session_state[size_key]),
        )
    with col_info:
        st.caption(f"Showing {start}-{end} of {total:,} customers")
    with col_prev:
        st.button("◀", key=f"{key_prefix}_prev", on_click=table.previous_page,
                  disabled=table.is_first_page)
    with col_page:
        st.caption(f"Page {table.page_index + 1} of {max(table.page_count, 1)}")
    with col_next:
        st.button("▶", key=f"{key_prefix}_next", on_click=table.next_page,
                  disabled=table.is_last_page)


@st.fragment
def customer_table_fragment(
    table: CustomerTable,
    columns: Sequence[ColumnSpec],
    key_prefix: str,
    on_documents: Optional[Callable[[str], None]] = None,
    on_mark_updated: Optional[Callable[[str], None]] = None,
    on_edit: Optional[Callable[[Dict], None]] = None,
    search_placeholder: str = "Search by customer # or name...",
):
    """
    Customer table: search box, sortable header, page slice, row actions.

    Row actions are shown for the selected row; each callback gets the
    customer id (or the full row for on_edit).
    """
    if table.error:
        render_dismissible_warning(table.error, f"{key_prefix}_dismiss", table.dismiss_error)

    search_key = f"{key_prefix}_search"
    st.text_input(
        "Search",
        key=search_key,
        placeholder=search_placeholder,
        label_visibility="collapsed",
        on_change=lambda: table.set_search_text(st.session_state[search_key]),
    )

    _sort_header(table, columns, key_prefix)

    page_rows = table.page_rows()
    if page_rows.empty:
        st.info("No customers found" if table.search_text.strip() else "No customers yet")
        _table_footer(table, key_prefix)
        return

    display = _display_frame(page_rows, columns)
    styled = display
    if 'last_updated_by' in page_rows.columns:
        label = next(s.label for s in columns if s.key == 'last_updated_by')
        if label in display.columns:
            styles = _badge_styles(page_rows)
            styled = display.style.apply(lambda _: styles, subset=[label], axis=0)

    event = st.dataframe(
        styled,
        hide_index=True,
        use_container_width=True,
        on_select="rerun",
        selection_mode="single-row",
        key=f"{key_prefix}_grid_{table.revision}_{table.page_index}",
    )

    _table_footer(table, key_prefix)

    selected = event.selection.rows if event and event.selection else []
    if not selected:
        st.caption("Select a row for actions")
        return

    row = page_rows.iloc[selected[0]]
    customer_id = str(row['id'])
    st.markdown(f"**Selected:** {customer_id} · {row.get('customer_name') or ''}")
    action_cols = st.columns(4)
    if on_documents is not None:
        with action_cols[0]:
            if st.button("📄 Documents", key=f"{key_prefix}_docs"):
                on_documents(customer_id)
    if on_mark_updated is not None:
        with action_cols[1]:
            if st.button("✅ Mark updated", key=f"{key_prefix}_mark"):
                on_mark_updated(customer_id)
    if on_edit is not None:
        with action_cols[2]:
            if st.button("✏️ Edit", key=f"{key_prefix}_edit"):
                on_edit(row.to_dict())


def render_export_buttons(table: CustomerTable, columns: Sequence[ColumnSpec], filename: str,
                          key_prefix: str):
    """CSV and Excel downloads of every row matching the current search."""
    if table.visible.empty:
        return
    data = export_frame(table.visible, columns)
    stamp = datetime.now().strftime('%Y%m%d_%H%M')
    col_csv, col_xlsx, _ = st.columns([1, 1, 4])
    with col_csv:
        st.download_button(
            label="📥 Export CSV",
            data=CustomerExport.to_csv(data),
            file_name=f"{filename}_{stamp}.csv",
            mime="text/csv",
            key=f"{key_prefix}_export_csv",
        )
    with col_xlsx:
        st.download_button(
            label="📥 Export Excel",
            data=CustomerExport.to_excel(data),
            file_name=f"{filename}_{stamp}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            key=f"{key_prefix}_export_xlsx",
        )


def mark_customer_updated(queries, coordinator: ChangeCoordinator, customer_id: str,
                          actor_id: Optional[str]):
    """Stamp the customer as handled by the current user and notify every view."""
    try:
        queries.mark_customer_updated(customer_id, actor_id)
    except WriteError as e:
        st.error(f"❌ {e}")
        return
    coordinator.broadcast(STATS_UPDATE_EVENT, {'customer_id': customer_id})
    st.toast(f"Customer {customer_id} marked as updated", icon="✅")


# =============================================================================
# DOCUMENT BROWSER
# =============================================================================

def _document_widget_keys(browser: DocumentBrowser) -> Dict[str, str]:
    # Widget state is per customer so a newly opened customer starts unfiltered
    return {name: f"_dt_docs_{name}_{browser.customer_id}" for name in ('from', 'to', 'types', 'search')}


def _clear_document_filters(browser: DocumentBrowser):
    browser.reset_filters()
    for key in _document_widget_keys(browser).values():
        st.session_state.pop(key, None)


@st.dialog("📄 Customer documents", width="large")
def document_browser_dialog(browser: DocumentBrowser, queries):
    """Filters, one server page of documents and paging for the open customer."""
    keys = _document_widget_keys(browser)
    col_from, col_to, col_types = st.columns([1, 1, 2])
    with col_from:
        date_from = st.date_input("From", value=browser.filters.date_from, key=keys['from'])
    with col_to:
        date_to = st.date_input("To", value=browser.filters.date_to, key=keys['to'])
    with col_types:
        types = st.multiselect(
            "Type", DOCUMENT_TYPES,
            default=sorted(browser.filters.document_types),
            key=keys['types'],
        )
    browser.set_date_range(date_from, date_to)
    browser.set_document_types(types)

    name_search = st.text_input(
        "Search on this page", value=browser.filters.name_search,
        placeholder="Document name...", key=keys['search'],
    )
    browser.set_name_search(name_search)
    st.button("Clear filters", key="_dt_docs_clear", on_click=_clear_document_filters, args=(browser,))

    if browser.needs_fetch:
        with st.spinner("Loading documents..."):
            browser.fetch(queries)

    if browser.error:
        render_dismissible_warning(browser.error, "_dt_docs_dismiss", browser.dismiss_error)

    st.markdown(f"**{browser.title}**")

    documents = browser.visible_documents()
    if documents.empty:
        st.info("No documents found")
    else:
        display = documents.copy()
        display['created_at'] = display['created_at'].map(
            lambda v: '' if pd.isna(v) else pd.Timestamp(v).tz_convert(browser.tz).strftime(DOCUMENT_DATE_FORMAT)
        )
        st.dataframe(
            display[['document_name', 'document_type', 'created_at', 'document_path']],
            hide_index=True,
            use_container_width=True,
            column_config={
                'document_name': st.column_config.TextColumn('Document', width='large'),
                'document_type': st.column_config.TextColumn('Type', width='small'),
                'created_at': st.column_config.TextColumn('Created', width='medium'),
                'document_path': st.column_config.LinkColumn('Open', display_text='Open'),
            },
        )

    col_prev, col_info, col_next, col_close = st.columns([1, 2, 1, 1])
    with col_prev:
        if st.button("◀ Previous", disabled=browser.page == 0, key="_dt_docs_prev"):
            browser.set_page(browser.page - 1)
            st.rerun(scope="fragment")
    with col_info:
        st.caption(f"Page {browser.page + 1} of {max(browser.page_count, 1)} · {browser.total:,} documents")
    with col_next:
        if st.button("Next ▶", disabled=browser.page >= browser.page_count - 1, key="_dt_docs_next"):
            browser.set_page(browser.page + 1)
            st.rerun(scope="fragment")
    with col_close:
        if st.button("Close", key="_dt_docs_close"):
            browser.close()
            st.rerun()


def open_documents(browser: DocumentBrowser, queries, customer_id: str):
    if browser.open(customer_id):
        for key in _document_widget_keys(browser).values():
            st.session_state.pop(key, None)
    document_browser_dialog(browser, queries)


# =============================================================================
# CUSTOMER EDIT (management)
# =============================================================================

def customer_edit_form(customer: Dict, queries, coordinator: ChangeCoordinator,
                       actor_id: Optional[str], key_prefix: str = "_dt_edit"):
    """Edit the mutable fields of one customer."""
    validator = FormValidator()
    customer_id = str(customer['id'])

    def _text(value) -> str:
        return '' if value is None or (not isinstance(value, str) and pd.isna(value)) else str(value)

    with st.form(f"{key_prefix}_{customer_id}"):
        st.markdown(f"#### ✏️ Edit customer {customer_id}")
        values = {
            'customer_name': st.text_input("Customer name", _text(customer.get('customer_name'))),
            'administration_name': st.text_input("Administration", _text(customer.get('administration_name'))),
            'administration_mail': st.text_input("Administration mail", _text(customer.get('administration_mail'))),
            'source': st.text_input("Source", _text(customer.get('source'))),
            'source_root': st.text_input("Source root", _text(customer.get('source_root'))),
            'is_active': st.checkbox("Active", bool(customer.get('is_active'))),
        }
        submitted = st.form_submit_button("💾 Save", type="primary")

    if not submitted:
        return

    errors = validator.validate_customer(values)
    if errors:
        for field, message in errors.items():
            st.error(f"{field.replace('_', ' ').capitalize()}: {message}")
        return

    fields = {k: (v.strip() or None) if isinstance(v, str) else v
              for k, v in values.items() if k in CUSTOMER_EDITABLE_FIELDS}
    try:
        queries.update_customer(customer_id, fields, actor_id=actor_id)
    except WriteError as e:
        st.error(f"❌ {e}")
        return

    coordinator.broadcast(STATS_UPDATE_EVENT, {'customer_id': customer_id})
    st.success(f"✅ Customer {customer_id} saved")


# =============================================================================
# SETTINGS
# =============================================================================

def settings_form_fragment(settings: AppSettings, queries, coordinator: ChangeCoordinator):
    """Targets, history window, top-N and automation endpoint."""
    validator = FormValidator()

    def _value(v) -> str:
        return '' if v is None else str(v)

    with st.form("_dt_settings_form"):
        st.markdown("#### 🎯 Targets")
        col1, col2, col3 = st.columns(3)
        with col1:
            target_all = st.text_input("Total documents", _value(settings.target_all),
                                       help="Leave empty for no target")
        with col2:
            target_top = st.text_input("Top-N total", _value(settings.target_top),
                                       help="Leave empty for no target")
        with col3:
            target_invoice = st.text_input("Invoices in process", _value(settings.target_invoice),
                                           help="Leave empty for no target")

        st.markdown("#### 📈 Display")
        col4, col5 = st.columns(2)
        with col4:
            history_limit = st.text_input("History window (5-50 snapshots)", _value(settings.history_limit))
        with col5:
            topx = st.text_input("Top-N size", _value(settings.topx))

        st.markdown("#### 🔗 Automation")
        automation_url = st.text_input("Automation endpoint URL", _value(settings.automation_url),
                                       placeholder="https://...")

        submitted = st.form_submit_button("💾 Save settings", type="primary")

    if not submitted:
        return

    cleaned, errors = validator.validate_settings({
        'target_all': target_all,
        'target_top': target_top,
        'target_invoice': target_invoice,
        'history_limit': history_limit,
        'topx': topx,
        'automation_url': automation_url,
    })
    if errors:
        for field, message in errors.items():
            st.error(f"{field.replace('_', ' ').capitalize()}: {message}")
        return

    try:
        queries.update_settings(cleaned)
    except WriteError as e:
        st.error(f"❌ {e}")
        return

    coordinator.broadcast(STATS_UPDATE_EVENT)
    st.success("✅ Settings saved")


def automation_fragment(settings: AppSettings, user_email: Optional[str]):
    """Last run timestamp and the manual trigger button."""
    last_run = settings.last_update_run
    st.caption(f"Last run: {_format_timestamp(last_run) if last_run else 'never'}")

    if st.button("▶️ Run automation now", type="primary", key="_dt_run_automation"):
        timeout = config.get_app_setting("WEBHOOK_TIMEOUT_SECONDS", 10)
        try:
            with st.spinner("Triggering automation..."):
                trigger_automation(
                    user_email, settings, config.get_secret('automation_webhook'), timeout=timeout
                )
        except (WebhookError, AuthorizationError, httpx.HTTPError) as e:
            logger.error(f"Automation trigger failed: {e}")
            st.error(f"❌ {error_message(e)}")
            return
        st.success("✅ Automation started")


def user_roles_fragment(queries, current_user_id: Optional[str]):
    """Users with their role and a promote / demote toggle."""
    users = queries.load_users_with_roles(current_user_id)
    if not users:
        st.info("No users to show")
        return

    for user in users:
        col_email, col_name, col_role, col_action = st.columns([3, 3, 1, 2])
        with col_email:
            st.write(user.email)
        with col_name:
            st.write(user.full_name or '')
        with col_role:
            color = COLORS['admin_badge'] if user.is_admin else COLORS['user_badge']
            st.markdown(f"<span style='color:{color};font-weight:600'>{user.role}</span>",
                        unsafe_allow_html=True)
        with col_action:
            target_role = 'user' if user.is_admin else 'admin'
            label = "⬇️ Make user" if user.is_admin else "⬆️ Make admin"
            if st.button(label, key=f"_dt_role_{user.id}", disabled=user.id == current_user_id):
                try:
                    queries.set_user_role(current_user_id, user.id, target_role)
                except (AuthorizationError, WriteError) as e:
                    st.error(f"❌ {e}")
                    return
                st.toast(f"{user.email} is now {target_role}", icon="✅")
                st.rerun()


# =============================================================================
# PROFILE
# =============================================================================

def password_change_form(update_password: Callable[[str, str], tuple]):
    """New password + confirmation with live strength feedback."""
    new_password = st.text_input("New password", type="password", key="_dt_new_password")
    if new_password:
        strength = password_strength(new_password)
        st.progress(strength.score / 5, text=f"Password strength: {strength.label}")
        for line in strength.feedback:
            st.caption(f"• {line}")
    confirm = st.text_input("Confirm new password", type="password", key="_dt_confirm_password")

    if st.button("🔒 Update password", type="primary", key="_dt_update_password"):
        success, result = update_password(new_password, confirm)
        if success:
            st.success(result['message'])
        else:
            for field, message in (result.get('errors') or {}).items():
                st.error(f"{field.replace('_', ' ').capitalize()}: {message}")
            if not result.get('errors'):
                st.error(result['error'])


# =============================================================================
# FOOTER
# =============================================================================

def render_build_footer():
    build = config.get_build_info()
    built = f" · built {build.build_time}" if build.build_time else ''
    st.markdown(
        f'<div class="footer">Customer Document Tracker · {build.branch}@{build.short_commit}{built}</div>',
        unsafe_allow_html=True,
    )
