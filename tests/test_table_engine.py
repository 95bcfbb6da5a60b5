# tests/test_table_engine.py
import math
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest

from utils.document_tracker.constants import CUSTOMER_COLUMNS
from utils.document_tracker.models import ColumnKind, ColumnSpec, SortConfig, SortDirection
from utils.document_tracker.table_engine import (
    CustomerTable,
    RefreshDebouncer,
    filter_rows,
    frames_equal,
    page_count,
    sort_rows,
)


def ids(df):
    return df['id'].tolist()


@pytest.fixture
def table(clock):
    return CustomerTable(debounce_ms=1000, clock=clock)


# =============================================================================
# SORT
# =============================================================================

class TestSort:

    def test_descending_by_total_then_search(self, table, customers):
        table.load(customers)
        table.sort('cs_documents_total')
        table.sort('cs_documents_total')
        assert table.sort_config == SortConfig('cs_documents_total', SortDirection.DESC)
        assert ids(table.visible) == ['2', '9', '5']

        table.paginate(page_size=1)
        table.next_page()
        assert table.page_index == 1

        table.set_search_text('9')
        assert ids(table.visible) == ['9']
        assert table.page_index == 0

    def test_same_column_twice_reverses(self, table, customers):
        table.load(customers)
        table.sort('customer_name')
        first = ids(table.visible)
        table.sort('customer_name')
        assert ids(table.visible) == list(reversed(first))
        table.sort('customer_name')
        assert ids(table.visible) == first

    def test_new_column_starts_ascending(self, table, customers):
        table.load(customers)
        table.sort('customer_name')
        table.sort('customer_name')
        table.sort('cs_documents_total')
        assert table.sort_config.direction is SortDirection.ASC
        assert ids(table.visible) == ['5', '9', '2']

    def test_unknown_column_raises(self, table, customers):
        table.load(customers)
        with pytest.raises(KeyError):
            table.sort('no_such_column')

    def test_missing_values_last_ascending_first_descending(self):
        df = pd.DataFrame({'id': ['a', 'b', 'c'], 'n': [3, None, 1]})
        columns = {'n': ColumnSpec('n', 'N', ColumnKind.NUMBER)}
        assert ids(sort_rows(df, SortConfig('n', SortDirection.ASC), columns)) == ['c', 'a', 'b']
        assert ids(sort_rows(df, SortConfig('n', SortDirection.DESC), columns)) == ['b', 'a', 'c']

    def test_number_column_with_text_falls_back_after_numbers(self):
        df = pd.DataFrame({'id': ['a', 'b', 'c'], 'n': [10, 'n/a', 2]}, dtype=object)
        columns = {'n': ColumnSpec('n', 'N', ColumnKind.NUMBER)}
        assert ids(sort_rows(df, SortConfig('n'), columns)) == ['c', 'a', 'b']

    def test_string_compare_ignores_case_and_accents(self):
        df = pd.DataFrame({'id': ['1', '2', '3'], 'name': ['zeta', 'Émile', 'adam']})
        columns = {'name': ColumnSpec('name', 'Name', ColumnKind.STRING)}
        assert ids(sort_rows(df, SortConfig('name'), columns)) == ['3', '2', '1']

    def test_date_column_sorts_chronologically(self):
        df = pd.DataFrame({
            'id': ['1', '2', '3'],
            'ts': pd.to_datetime(['2024-03-01', '2023-12-31', '2024-01-15'], utc=True),
        })
        columns = {'ts': ColumnSpec('ts', 'When', ColumnKind.DATE)}
        assert ids(sort_rows(df, SortConfig('ts'), columns)) == ['2', '3', '1']

    def test_sort_is_stable(self):
        df = pd.DataFrame({'id': ['a', 'b', 'c', 'd'], 'n': [1, 2, 1, 2]})
        columns = {'n': ColumnSpec('n', 'N', ColumnKind.NUMBER)}
        assert ids(sort_rows(df, SortConfig('n'), columns)) == ['a', 'c', 'b', 'd']

    def test_no_sort_key_keeps_order(self, customers):
        assert sort_rows(customers, SortConfig(None), {}) is customers


# =============================================================================
# FILTER
# =============================================================================

class TestFilter:

    def test_blank_text_returns_same_frame(self, customers):
        assert filter_rows(customers, '   ', ('id', 'customer_name')) is customers

    def test_matches_id_or_name_case_insensitive(self, customers):
        result = filter_rows(customers, 'ACME', ('id', 'customer_name'))
        assert ids(result) == ['2']

    def test_result_is_subset_and_every_row_matches(self, customers):
        result = filter_rows(customers, 'e', ('id', 'customer_name'))
        assert set(ids(result)) <= set(ids(customers))
        for _, row in result.iterrows():
            assert 'e' in row['id'].lower() or 'e' in row['customer_name'].lower()

    def test_null_fields_never_match(self):
        df = pd.DataFrame({'id': ['1', '2'], 'customer_name': [None, 'None']})
        assert ids(filter_rows(df, 'none', ('customer_name',))) == ['2']


# =============================================================================
# PAGINATION
# =============================================================================

class TestPagination:

    @pytest.mark.parametrize('total,size', [(0, 10), (1, 10), (10, 10), (23, 10), (101, 25)])
    def test_page_count_is_ceiling(self, make_customers, clock, total, size):
        table = CustomerTable(page_size=size, clock=clock)
        table.load(make_customers([(str(i), f"Customer {i}", i, 0) for i in range(total)]))
        assert table.page_count == math.ceil(total / size)
        if total:
            table.paginate(page_index=table.page_count - 1)
            expected = total % size or size
            assert len(table.page_rows()) == expected

    def test_page_size_change_resets_to_first_page(self, make_customers, clock):
        table = CustomerTable(page_size=10, clock=clock)
        table.load(make_customers([(str(i), 'x', 1, 0) for i in range(30)]))
        table.paginate(page_index=2)
        table.paginate(page_size=25)
        assert table.page_index == 0
        assert table.page_size == 25

    def test_page_index_is_clamped(self, make_customers, clock):
        table = CustomerTable(page_size=10, clock=clock)
        table.load(make_customers([(str(i), 'x', 1, 0) for i in range(15)]))
        table.paginate(page_index=99)
        assert table.page_index == 1
        assert table.is_last_page
        table.paginate(page_index=-3)
        assert table.is_first_page

    def test_page_range(self, make_customers, clock):
        table = CustomerTable(page_size=10, clock=clock)
        table.load(make_customers([(str(i), 'x', 1, 0) for i in range(15)]))
        table.next_page()
        assert table.page_range() == (11, 15, 15)

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            page_count(10, 0)


# =============================================================================
# LOAD / DEDUP
# =============================================================================

class TestLoad:

    def test_identical_reload_keeps_projection(self, table, customers):
        assert table.load(customers) is True
        visible, revision = table.visible, table.revision

        assert table.load(customers.copy()) is False
        assert table.visible is visible
        assert table.revision == revision

    def test_changed_rows_rebuild(self, table, customers):
        table.load(customers)
        revision = table.revision
        changed = customers.copy()
        changed.loc[0, 'customer_name'] = 'Renamed'
        assert table.load(changed) is True
        assert table.revision == revision + 1

    def test_frames_equal_handles_nan(self):
        left = pd.DataFrame({'a': [1.0, np.nan]})
        assert frames_equal(left, left.copy())
        assert not frames_equal(left, pd.DataFrame({'a': [1.0, 2.0]}))
        assert frames_equal(None, None)
        assert not frames_equal(left, None)


# =============================================================================
# REFRESH COORDINATION
# =============================================================================

class TestRefresh:

    def test_stale_fetch_is_discarded(self, table, customers, make_customers):
        older = table.begin_fetch()
        newer = table.begin_fetch()
        assert table.complete_fetch(newer, customers) is True
        stale = make_customers([('1', 'Old', 0, 0)])
        assert table.complete_fetch(older, stale) is False
        assert ids(table.customers) == ids(customers)

    def test_unmount_blocks_in_flight_result(self, table, customers):
        generation = table.begin_fetch()
        assert table.is_mounted
        table.unmount()
        assert not table.is_mounted
        assert table.complete_fetch(generation, customers) is False
        assert table.customers is None
        assert table.handle_external_change(lambda: customers) is False

    def test_failed_refresh_keeps_rows_and_sets_error(self, table, customers):
        table.refresh(lambda: customers)

        def boom():
            raise RuntimeError("backend down")

        assert table.refresh(boom) is False
        assert table.error
        assert ids(table.customers) == ids(customers)
        assert table.loading is False
        table.dismiss_error()
        assert table.error is None

    def test_burst_is_debounced_then_flushed(self, table, clock, customers):
        calls = []

        def fetch():
            calls.append(clock())
            return customers

        table.handle_external_change(fetch)
        clock.advance(0.2)
        table.handle_external_change(fetch)
        clock.advance(0.2)
        table.handle_external_change(fetch)
        assert len(calls) == 1
        assert table.refresh_pending

        clock.advance(0.3)
        assert table.flush_pending(fetch) is False
        clock.advance(0.5)
        table.flush_pending(fetch)
        assert len(calls) == 2
        assert not table.refresh_pending

    def test_debouncer_allows_after_interval(self, clock):
        debouncer = RefreshDebouncer(500, clock)
        assert debouncer.request() is True
        clock.advance(0.1)
        assert debouncer.request() is False
        assert debouncer.pending
        clock.advance(0.5)
        assert debouncer.due() is True
        assert debouncer.due() is False

    def test_paused_table_skips_refreshes_until_resumed(self, table, clock, customers):
        calls = []

        def fetch():
            calls.append(clock())
            return customers

        table.refresh(fetch)
        table.pause()
        assert table.is_paused
        clock.advance(5)
        assert table.handle_external_change(fetch) is False
        clock.advance(5)
        assert table.flush_pending(fetch) is False
        assert len(calls) == 1

        table.resume(fetch)
        assert len(calls) == 2
        assert not table.is_paused
        assert table.resume(fetch) is False
        assert len(calls) == 2

    def test_resume_without_missed_changes_does_not_fetch(self, table, customers):
        table.refresh(lambda: customers)
        table.pause()
        fetch = MagicMock(return_value=customers)
        assert table.resume(fetch) is False
        fetch.assert_not_called()



def test_default_columns_declare_kinds():
    kinds = {c.key: c.kind for c in CUSTOMER_COLUMNS}
    assert kinds['cs_documents_total'] is ColumnKind.NUMBER
    assert kinds['cs_last_update'] is ColumnKind.DATE
