"""
Tests for the local JSON blob store and table store
"""
import os
import pytest
from crm_data_layer import LocalBlobStore, LocalDataStore, StoreError


@pytest.mark.unit
class TestLocalBlobStore:
    """Tests for string-keyed blob storage"""

    def test_get_missing_key(self, tmp_path):
        assert LocalBlobStore(str(tmp_path)).get_item('pins') is None

    def test_set_and_get(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        store.set_item('pins', '[1, 2]')
        assert store.get_item('pins') == '[1, 2]'
        assert os.path.exists(tmp_path / 'pins.json')
        assert not os.path.exists(tmp_path / 'pins.json.tmp')

    def test_remove(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        store.set_item('pins', '[]')
        store.remove_item('pins')
        store.remove_item('pins')
        assert store.get_item('pins') is None

    @pytest.mark.parametrize('key', ['', '../etc/passwd', 'a/b', 'pins.json'])
    def test_invalid_keys_rejected(self, tmp_path, key):
        with pytest.raises(StoreError):
            LocalBlobStore(str(tmp_path)).get_item(key)

    def test_backup_moves_file_aside(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        store.set_item('pins', 'garbage')
        backup_path = store.backup_item('pins')
        assert os.path.exists(backup_path)
        assert store.get_item('pins') is None


@pytest.mark.unit
class TestLocalDataStore:
    """Tests for the table interface over JSON files"""

    def test_insert_assigns_id_and_created_at(self, local_store):
        row = local_store.insert('clients', {'name': 'Acme'})
        assert row['id']
        assert row['created_at']
        assert local_store.get('clients', row['id']) == row

    def test_duplicate_id_rejected(self, local_store):
        local_store.insert('clients', {'id': 'c1', 'name': 'Acme'})
        with pytest.raises(StoreError):
            local_store.insert('clients', {'id': 'c1', 'name': 'Other'})

    def test_select_filters_orders_and_limits(self, local_store):
        local_store.insert('jobs', {'title': 'b', 'status': 'pending', 'scheduled_date': '2026-02-01'})
        local_store.insert('jobs', {'title': 'a', 'status': 'pending', 'scheduled_date': '2026-01-01'})
        local_store.insert('jobs', {'title': 'c', 'status': 'completed', 'scheduled_date': '2026-03-01'})
        local_store.insert('jobs', {'title': 'd', 'status': 'pending'})

        rows = local_store.select('jobs', {'status': 'pending'}, order_by='scheduled_date')
        assert [r['title'] for r in rows] == ['a', 'b', 'd']

        rows = local_store.select('jobs', order_by='scheduled_date', descending=True, limit=2)
        assert [r['title'] for r in rows] == ['c', 'b']

    def test_nulls_sort_last_when_descending(self, local_store):
        local_store.insert('jobs', {'title': 'none'})
        local_store.insert('jobs', {'title': 'dated', 'scheduled_date': '2026-01-01'})
        rows = local_store.select('jobs', order_by='scheduled_date', descending=True)
        assert [r['title'] for r in rows] == ['dated', 'none']

    def test_update_never_changes_id(self, local_store):
        row = local_store.insert('clients', {'name': 'Acme'})
        updated = local_store.update('clients', row['id'], {'id': 'other', 'name': 'Acme Co'})
        assert updated['id'] == row['id']
        assert updated['name'] == 'Acme Co'

    def test_update_missing_row(self, local_store):
        assert local_store.update('clients', 'missing', {'name': 'x'}) is None

    def test_upsert(self, local_store):
        created = local_store.upsert('pins', {'id': 'p1', 'address': 'a'})
        replaced = local_store.upsert('pins', {'id': 'p1', 'address': 'b'})
        assert created['address'] == 'a'
        assert replaced['address'] == 'b'
        assert len(local_store.select('pins')) == 1

    def test_delete_and_clear(self, local_store):
        row = local_store.insert('notes', {'title': 'n'})
        local_store.insert('notes', {'title': 'm'})
        assert local_store.delete('notes', row['id']) is True
        assert local_store.delete('notes', row['id']) is False
        assert local_store.clear('notes') == 1
        assert local_store.select('notes') == []

    def test_corrupted_table_is_backed_up(self, tmp_path):
        """Test that unreadable JSON is moved aside and treated as empty"""
        blob_store = LocalBlobStore(str(tmp_path))
        blob_store.set_item('pins', '{not json')
        store = LocalDataStore(blob_store)

        assert store.select('pins') == []
        assert any(name.startswith('pins.json.backup.') for name in os.listdir(tmp_path))

    def test_non_list_table_is_ignored(self, tmp_path):
        blob_store = LocalBlobStore(str(tmp_path))
        blob_store.set_item('pins', '{"id": "x"}')
        assert LocalDataStore(blob_store).select('pins') == []

    def test_ping(self, local_store):
        assert local_store.ping() is True
