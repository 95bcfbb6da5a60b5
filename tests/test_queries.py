# tests/test_queries.py
from unittest.mock import MagicMock

import pandas as pd
import pytest

from utils.document_tracker import queries as queries_module
from utils.document_tracker.errors import AuthorizationError, SettingsMissingError, WriteError
from utils.document_tracker.models import ActorRef, AppSettings
from utils.document_tracker.queries import (
    DocumentTrackerQueries,
    normalize_customers,
    normalize_stats_history,
)

ADMIN_ID = '8c5a4f1e-2b7d-4c59-9a1e-0d3b5f6a7c81'


@pytest.fixture
def engine():
    engine = MagicMock()
    conn = MagicMock()
    conn.execute.return_value.rowcount = 1
    engine.begin.return_value.__enter__.return_value = conn
    engine.connect.return_value.__enter__.return_value = conn
    engine.conn = conn
    return engine


@pytest.fixture
def queries(engine):
    return DocumentTrackerQueries(engine=engine)


@pytest.fixture
def read_sql(monkeypatch):
    """Replace pd.read_sql inside the gateway; set .return_value / .side_effect per test."""
    fake = MagicMock(return_value=pd.DataFrame())
    monkeypatch.setattr(queries_module.pd, 'read_sql', fake)
    return fake


def sql_of(call):
    return str(call.args[0])


# =============================================================================
# NORMALIZATION
# =============================================================================

class TestNormalizeCustomers:

    def test_total_is_recomputed_from_counters(self):
        raw = pd.DataFrame([{
            'id': 5, 'customer_name': 'Acme',
            'cs_documents_total': 999,
            'cs_documents_in_process': 3, 'cs_documents_other': '4', 'cs_documents_inbox': 7,
        }])
        row = normalize_customers(raw).iloc[0]
        assert row['cs_documents_total'] == 7
        assert row['id'] == '5'

    def test_missing_counters_default_to_zero(self):
        row = normalize_customers(pd.DataFrame([{'id': '1'}])).iloc[0]
        assert row['cs_documents_total'] == 0
        assert not row['is_active']

    def test_last_updated_by_is_tagged(self):
        raw = pd.DataFrame([
            {'id': '1', 'last_updated_by': ADMIN_ID.upper()},
            {'id': '2', 'last_updated_by': 'Jane Doe'},
            {'id': '3', 'last_updated_by': '  '},
            {'id': '4', 'last_updated_by': None},
        ])
        refs = normalize_customers(raw)['last_updated_by'].tolist()
        assert refs[0] == ActorRef(ActorRef.ACTOR_ID, ADMIN_ID)
        assert refs[1] == ActorRef(ActorRef.LEGACY_NAME, 'Jane Doe')
        assert refs[2] is None and refs[3] is None

    def test_empty_input(self):
        df = normalize_customers(pd.DataFrame())
        assert df.empty
        assert 'cs_documents_total' in df.columns


def test_stats_history_is_returned_oldest_first():
    raw = pd.DataFrame({
        'id': [3, 2, 1],
        'total': [30, 20, 10],
        'total_top': [3, 2, 1],
        'total_in_process': [1, 1, 1],
        'created_at': ['2024-01-03', '2024-01-02', '2024-01-01'],
    })
    assert normalize_stats_history(raw)['total'].tolist() == [10, 20, 30]


# =============================================================================
# READS
# =============================================================================

class TestReads:

    def test_active_customers_filter(self, queries, read_sql):
        read_sql.return_value = pd.DataFrame([{'id': 1, 'cs_documents_in_process': 1}])
        df = queries.load_active_customers()
        assert 'is_active = true' in sql_of(read_sql.call_args)
        assert df['cs_documents_total'].tolist() == [1]

    def test_all_customers_has_no_filter(self, queries, read_sql):
        queries.load_all_customers()
        assert 'WHERE' not in sql_of(read_sql.call_args)

    def test_read_failure_returns_empty(self, queries, read_sql):
        read_sql.side_effect = RuntimeError("timeout")
        assert queries.load_active_customers().empty
        assert queries.load_stats_history().empty
        assert queries.load_latest_stats() is None
        assert queries.count_active_customers() == 0
        assert queries.get_customer('1') is None

    def test_strict_read_failure_raises(self, queries, read_sql):
        read_sql.side_effect = RuntimeError("timeout")
        with pytest.raises(RuntimeError):
            queries.load_active_customers(strict=True)
        with pytest.raises(RuntimeError):
            queries.load_all_customers(strict=True)
        with pytest.raises(RuntimeError):
            queries.load_latest_stats(strict=True)
        with pytest.raises(RuntimeError):
            queries.load_stats_history(strict=True)

    def test_stats_history_limit_and_order(self, queries, read_sql):
        read_sql.return_value = pd.DataFrame({
            'id': [2, 1], 'total': [5, 0], 'total_top': [0, 0], 'total_in_process': [0, 0],
            'created_at': ['2024-01-02', '2024-01-01'],
        })
        df = queries.load_stats_history(limit=12)
        assert read_sql.call_args.kwargs['params'] == {'limit': 12}
        assert 'ORDER BY created_at DESC' in sql_of(read_sql.call_args)
        assert df['total'].tolist() == [0, 5]

    def test_customer_name(self, queries, read_sql):
        read_sql.return_value = pd.DataFrame([{'id': '7', 'customer_name': 'Zeeman'}])
        assert queries.get_customer_name('7') == 'Zeeman'


# =============================================================================
# SETTINGS
# =============================================================================

class TestSettings:

    def test_missing_row_raises(self, queries, read_sql):
        read_sql.return_value = pd.DataFrame()
        with pytest.raises(SettingsMissingError):
            queries.load_settings()

    def test_backend_error_propagates(self, queries, read_sql):
        read_sql.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            queries.load_settings()

    def test_row_is_mapped(self, queries, read_sql):
        read_sql.return_value = pd.DataFrame([{
            'id': 1, 'target_all': 100, 'target_invoice': None, 'target_top': 50.0,
            'history_limit': 20, 'topx': 15, 'last_update_run': '2024-02-01T10:00:00Z',
            'automation_url': 'https://hooks.example.com/run',
        }])
        settings = queries.load_settings()
        assert isinstance(settings, AppSettings)
        assert settings.target_all == 100
        assert settings.target_invoice is None
        assert settings.target_top == 50
        assert settings.last_update_run.year == 2024
        assert settings.automation_url == 'https://hooks.example.com/run'

    def test_update_maps_automation_url_column(self, queries, engine):
        queries.update_settings({'automation_url': 'https://x.example.com', 'bogus': 1})
        stmt, params = engine.conn.execute.call_args.args
        assert 'wh_run = :wh_run' in str(stmt)
        assert params == {'wh_run': 'https://x.example.com', 'settings_id': 1}

    def test_update_without_row_raises(self, queries, engine):
        engine.conn.execute.return_value.rowcount = 0
        with pytest.raises(WriteError):
            queries.update_settings({'topx': 10})


# =============================================================================
# WRITES
# =============================================================================

class TestCustomerWrites:

    def test_only_editable_fields_are_written(self, queries, engine):
        queries.update_customer('5', {'customer_name': 'New', 'cs_documents_total': 99})
        stmt, params = engine.conn.execute.call_args.args
        assert 'cs_documents_total' not in str(stmt)
        assert params == {'customer_name': 'New', 'customer_id': '5'}

    def test_mark_updated_stamps_actor(self, queries, engine):
        queries.mark_customer_updated('5', ADMIN_ID)
        stmt, params = engine.conn.execute.call_args.args
        assert 'last_updated_by = :actor_id' in str(stmt)
        assert params['actor_id'] == ADMIN_ID

    def test_backend_failure_raises_write_error(self, queries, engine):
        engine.conn.execute.side_effect = RuntimeError("constraint")
        with pytest.raises(WriteError) as exc:
            queries.update_customer('5', {'customer_name': 'x'})
        assert 'update customer 5' in str(exc.value)

    def test_unknown_customer_raises(self, queries, engine):
        engine.conn.execute.return_value.rowcount = 0
        with pytest.raises(WriteError):
            queries.update_customer('404', {'customer_name': 'x'})


# =============================================================================
# DOCUMENTS
# =============================================================================

def test_load_documents_pages_and_counts(queries, engine, read_sql):
    engine.conn.execute.return_value.scalar.return_value = 51
    read_sql.return_value = pd.DataFrame([{
        'id': 1, 'customer_id': 5, 'document_name': 'a.pdf', 'document_path': 'https://x/a.pdf',
        'document_type': 'invoice', 'created_at': '2024-01-05T10:00:00Z',
    }])
    df, total = queries.load_documents('5', page=2, page_size=25, document_types=['invoice'])
    assert total == 51
    assert df['customer_id'].tolist() == ['5']
    params = read_sql.call_args.kwargs['params']
    assert params['offset'] == 50 and params['limit'] == 25
    assert params['document_types'] == ['invoice']
    assert 'ORDER BY created_at DESC' in sql_of(read_sql.call_args)


def test_load_documents_failure_returns_empty(queries, engine):
    engine.connect.side_effect = RuntimeError("down")
    df, total = queries.load_documents('5')
    assert df.empty and total == 0


def test_strict_load_documents_failure_raises(queries, engine):
    engine.connect.side_effect = RuntimeError("down")
    with pytest.raises(RuntimeError):
        queries.load_documents('5', strict=True)


# =============================================================================
# ROLES
# =============================================================================

class TestRoles:

    def test_non_admin_gets_empty_user_list(self, queries, read_sql):
        read_sql.return_value = pd.DataFrame()
        assert queries.load_users_with_roles('someone') == []
        assert read_sql.call_count == 1

    def test_admin_gets_users(self, queries, read_sql):
        read_sql.side_effect = [
            pd.DataFrame([{'ok': 1}]),
            pd.DataFrame([
                {'id': ADMIN_ID, 'email': 'a@example.com', 'full_name': 'Ann', 'role': 'admin'},
                {'id': 'u2', 'email': 'b@example.com', 'full_name': None, 'role': 'user'},
            ]),
        ]
        users = queries.load_users_with_roles(ADMIN_ID)
        assert [u.is_admin for u in users] == [True, False]
        assert users[1].full_name is None

    def test_set_role_requires_admin(self, queries, read_sql):
        read_sql.return_value = pd.DataFrame()
        with pytest.raises(AuthorizationError):
            queries.set_user_role('someone', 'u2', 'admin')

    def test_unknown_role(self, queries):
        with pytest.raises(ValueError):
            queries.set_user_role(ADMIN_ID, 'u2', 'owner')

    def test_demote_deletes_admin_row(self, queries, engine, read_sql):
        read_sql.return_value = pd.DataFrame([{'ok': 1}])
        queries.set_user_role(ADMIN_ID, 'u2', 'user')
        statements = [str(c.args[0]) for c in engine.conn.execute.call_args_list]
        assert statements[0].startswith('DELETE FROM user_roles')
        assert 'INSERT INTO user_roles' in statements[1]

    def test_has_role_failure_is_false(self, queries, read_sql):
        read_sql.side_effect = RuntimeError("down")
        assert queries.has_role(ADMIN_ID, 'admin') is False
        assert queries.has_role(None, 'admin') is False


def test_profile_badges_match_id_or_name(queries, read_sql):
    read_sql.return_value = pd.DataFrame([
        {'id': ADMIN_ID, 'full_name': 'Ann', 'badge_color': '#ff0000'},
    ])
    df = queries.load_profile_badges([ADMIN_ID, 'Ann', 'Nobody'])
    assert sorted(df['key']) == sorted([ADMIN_ID, 'Ann'])
    assert set(df['badge_color']) == {'#ff0000'}
