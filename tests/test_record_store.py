import json

import pytest
from sqlalchemy import create_engine

from utils.sales_pipeline.models import RECORD_TYPES
from utils.sales_pipeline.record_store import (
    LocalCacheStore,
    MalformedResponseError,
    SqlRecordStore,
    StoreError,
    create_record_store,
    parse_payload,
)


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def test_parse_payload(store_payload):
    accounts, deals, reps = parse_payload(store_payload)

    assert [a.id for a in accounts] == ['a1', 'a2', 'a3']
    assert len(deals) == 6
    assert [r.name for r in reps] == ['Alice', 'Bob', 'Carol']


def test_parse_payload_accepts_json_text_and_legacy_keys(store_payload):
    legacy = {
        'contacts': store_payload['accounts'],
        'deals': store_payload['deals'],
        'salesReps': store_payload['representatives'],
    }

    accounts, deals, reps = parse_payload(json.dumps(legacy))

    assert len(accounts) == 3
    assert len(reps) == 3


def test_missing_collections_read_as_empty():
    assert parse_payload({}) == ([], [], [])


@pytest.mark.parametrize('payload', [
    '{not json',
    ['accounts'],
    {'accounts': 'oops'},
    {'deals': [42]},
    {'accounts': [{'id': 'a1', 'name': '', 'company': 'Acme'}]},
])
def test_malformed_payload(payload):
    with pytest.raises(MalformedResponseError):
        parse_payload(payload)


@pytest.mark.parametrize('field, value', [
    ('probability', 'high'),
    ('productAmount', 'inf'),
])
def test_unreadable_deal_numbers_make_payload_malformed(store_payload, field, value):
    deals = [dict(store_payload['deals'][0], **{field: value})] + store_payload['deals'][1:]

    with pytest.raises(MalformedResponseError):
        parse_payload(dict(store_payload, deals=deals))


def test_unexpected_record_error_is_malformed(monkeypatch, store_payload):
    class BrokenDeal:
        @classmethod
        def from_record(cls, record):
            raise KeyError('contactId')

    monkeypatch.setitem(RECORD_TYPES, 'deals', BrokenDeal)

    with pytest.raises(MalformedResponseError):
        parse_payload(store_payload)


# =============================================================================
# LOCAL CACHE STORE
# =============================================================================

def test_cache_seeds_sample_data_on_first_fetch(tmp_path, tiny_sample):
    store = LocalCacheStore(tmp_path, 3, sample_factory=tiny_sample)

    data = store.fetch_all()

    assert [a['id'] for a in data['accounts']] == ['sample-a']
    assert store.path.name == 'pipeline_crm_data_v3.json'
    assert store.path.exists()


def test_cache_replace_collection_persists(tmp_path, tiny_sample, store_payload):
    store = LocalCacheStore(tmp_path, 3, sample_factory=tiny_sample)

    store.replace_collection('deals', store_payload['deals'])

    reopened = LocalCacheStore(tmp_path, 3, sample_factory=tiny_sample)
    data = reopened.fetch_all()
    assert len(data['deals']) == 6
    assert [a['id'] for a in data['accounts']] == ['sample-a']


def test_corrupt_cache_is_reseeded(tmp_path, tiny_sample):
    store = LocalCacheStore(tmp_path, 3, sample_factory=tiny_sample)
    store.path.write_text('{broken', encoding='utf-8')

    data = store.fetch_all()

    assert [d['id'] for d in data['deals']] == ['sample-d']


def test_version_bump_drops_old_cache(tmp_path, tiny_sample, store_payload):
    old = LocalCacheStore(tmp_path, 3, sample_factory=tiny_sample)
    old.replace_collection('accounts', store_payload['accounts'])

    new = LocalCacheStore(tmp_path, 4, sample_factory=tiny_sample)
    data = new.fetch_all()

    assert not old.path.exists()
    assert [a['id'] for a in data['accounts']] == ['sample-a']


def test_reset_clears_cache(tmp_path, tiny_sample, store_payload):
    store = LocalCacheStore(tmp_path, 3, sample_factory=tiny_sample)
    store.replace_collection('accounts', store_payload['accounts'])

    store.reset()

    assert not store.path.exists()
    assert [a['id'] for a in store.fetch_all()['accounts']] == ['sample-a']


def test_cache_rejects_unknown_kind(tmp_path, tiny_sample):
    store = LocalCacheStore(tmp_path, 3, sample_factory=tiny_sample)

    with pytest.raises(ValueError):
        store.replace_collection('contacts', [])


# =============================================================================
# SQL STORE
# =============================================================================

@pytest.fixture
def sql_store(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'records.db'}")
    yield SqlRecordStore(engine=engine)
    engine.dispose()


def test_sql_store_starts_empty(sql_store):
    assert sql_store.fetch_all() == {'accounts': [], 'deals': [], 'representatives': []}


def test_sql_store_round_trip_keeps_order(sql_store, store_payload):
    for kind in ('accounts', 'deals', 'representatives'):
        sql_store.replace_collection(kind, store_payload[kind])

    data = sql_store.fetch_all()

    assert data == store_payload


def test_sql_store_replace_overwrites_collection(sql_store, store_payload):
    sql_store.replace_collection('deals', store_payload['deals'])
    sql_store.replace_collection('deals', store_payload['deals'][:2])

    assert [d['id'] for d in sql_store.fetch_all()['deals']] == ['d1', 'd2']


def test_sql_store_replace_with_empty_collection(sql_store, store_payload):
    sql_store.replace_collection('accounts', store_payload['accounts'])
    sql_store.replace_collection('accounts', [])

    assert sql_store.fetch_all()['accounts'] == []


def test_sql_store_transport_failure(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'records.db'}")
    store = SqlRecordStore(engine=engine)

    with pytest.raises(StoreError):
        store.fetch_all()
    with pytest.raises(StoreError):
        store.replace_collection('accounts', [])


# =============================================================================
# FACTORY
# =============================================================================

class _Config:
    def __init__(self, remote, cache_dir):
        self.remote = remote
        self.cache_dir = cache_dir

    def is_remote_configured(self):
        return self.remote

    def get_app_setting(self, key, default=None):
        return {'LOCAL_CACHE_DIR': self.cache_dir, 'CACHE_VERSION': 7}.get(key, default)


def test_factory_picks_local_cache_without_database(tmp_path):
    store = create_record_store(_Config(False, str(tmp_path)))

    assert isinstance(store, LocalCacheStore)
    assert store.cache_key == 'pipeline_crm_data_v7'


def test_factory_picks_sql_store_with_database(tmp_path):
    assert isinstance(create_record_store(_Config(True, str(tmp_path))), SqlRecordStore)
