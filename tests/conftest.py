import threading
from datetime import date
from types import SimpleNamespace

import pytest

from utils.sales_pipeline.models import Account, Deal, Representative
from utils.sales_pipeline.record_store import RecordStore, StoreError
from utils.sales_pipeline.sample_data import SampleDataset
from utils.sales_pipeline.state import PipelineState

REFERENCE = date(2024, 5, 15)


def make_account(account_id, owner=None, team=None, owner_id=None, grade='B', target=0, **fields):
    return Account(
        id=account_id,
        name=fields.pop('name', f"Contact {account_id}"),
        company=fields.pop('company', f"Company {account_id}"),
        owner=owner,
        team=team,
        owner_id=owner_id,
        grade=grade,
        target_amount=target,
        **fields,
    )


def make_deal(deal_id, account_id, status, value, close=REFERENCE, owner=None, team=None, owner_id=None, **fields):
    return Deal(
        id=deal_id,
        contact_id=account_id,
        status=status,
        expected_close_date=close,
        title=fields.pop('title', f"Deal {deal_id}"),
        product_amount=value,
        goods_amount=fields.pop('goods_amount', 0),
        owner=owner,
        team=team,
        owner_id=owner_id,
        **fields,
    )


@pytest.fixture
def reference():
    return REFERENCE


@pytest.fixture
def representatives():
    return [
        Representative(id='r1', name='Alice', email='alice@test.com', team='Team A', role='manager'),
        Representative(id='r2', name='Bob', email='bob@test.com', team='Team A'),
        Representative(id='r3', name='Carol', email='carol@test.com', team='Team B'),
    ]


@pytest.fixture
def accounts():
    return [
        make_account('a1', 'Alice', 'Team A', 'r1', grade='S', target=1_200_000),
        make_account('a2', 'Bob', 'Team A', 'r2', grade='A', target=600_000),
        make_account('a3', 'Carol', 'Team B', 'r3', grade='Unrated', target=300_000),
    ]


@pytest.fixture
def deals():
    return [
        # May 2024 (reference month)
        make_deal('d1', 'a1', 'Sales', 100, owner='Alice', team='Team A', owner_id='r1'),
        make_deal('d2', 'a1', 'Confirmed', 200, owner='Alice', team='Team A', owner_id='r1'),
        make_deal('d3', 'a2', 'Expected', 300, owner='Bob', team='Team A', owner_id='r2'),
        # Same quarter, other month
        make_deal('d4', 'a3', 'Undecided', 400, close=date(2024, 4, 2), owner='Carol', team='Team B', owner_id='r3'),
        # Same year, other quarter
        make_deal('d5', 'a2', 'Sales', 500, close=date(2024, 11, 30), owner='Bob', team='Team A', owner_id='r2'),
        # Previous year
        make_deal('d6', 'a1', 'Sales', 600, close=date(2023, 5, 15), owner='Alice', team='Team A', owner_id='r1'),
    ]


@pytest.fixture
def state(accounts, deals, representatives):
    return PipelineState(accounts, deals, representatives)


@pytest.fixture
def tiny_sample():
    """Sample factory returning a small fixed dataset."""
    account = make_account('sample-a', 'Alice', 'Team A', 'r1', grade='S', target=1_000)
    deal = make_deal('sample-d', 'sample-a', 'Sales', 10, owner='Alice', team='Team A', owner_id='r1')
    rep = Representative(id='r1', name='Alice', email='alice@test.com', team='Team A')

    def factory():
        return SampleDataset([account], [deal], [rep])

    return factory


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeStore(RecordStore):
    """In-memory record store with switchable failures."""

    name = 'fake'

    def __init__(self, payload=None, fail_fetch=None, fail_on_kind=None):
        self.payload = payload if payload is not None else {}
        self.fail_fetch = fail_fetch
        self.fail_on_kind = fail_on_kind
        self.writes = []
        self.fetch_count = 0
        self.fetch_gate = None

    def fetch_all(self):
        self.fetch_count += 1
        if self.fetch_gate is not None:
            self.fetch_gate.wait(timeout=5)
        if self.fail_fetch is not None:
            raise self.fail_fetch
        return self.payload

    def replace_collection(self, kind, records):
        if kind == self.fail_on_kind:
            raise StoreError(f"write refused for {kind}")
        self.writes.append(kind)
        self.payload = dict(self.payload, **{kind: list(records)})


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def store_payload(accounts, deals, representatives):
    return {
        'accounts': [a.to_record() for a in accounts],
        'deals': [d.to_record() for d in deals],
        'representatives': [r.to_record() for r in representatives],
    }


@pytest.fixture
def gate():
    return threading.Event()


class FakeNotifier:
    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send(self, recipient, subject, body):
        self.sent.append((recipient, subject, body))
        return self.ok, "sent" if self.ok else "smtp down"


@pytest.fixture
def fake_notifier():
    return FakeNotifier()


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_openai_client(content=None, error=None):
    """Object shaped like openai.OpenAI: client.chat.completions.create(...)"""
    completions = FakeCompletions(content, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))
