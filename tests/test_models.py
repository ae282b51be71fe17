from datetime import date

import pytest

from utils.sales_pipeline.models import Account, Deal, Representative, ValidationError, generate_id


def test_deal_value_is_product_plus_goods():
    deal = Deal(id='d1', contact_id='a1', status='Sales', expected_close_date='2024-05-01',
                product_amount=700, goods_amount=300)

    assert deal.value == 1_000
    assert deal.expected_close_date == date(2024, 5, 1)


def test_deal_stage_and_probability_follow_status():
    won = Deal(id='d1', contact_id='a1', status='Sales', expected_close_date=date(2024, 1, 1))
    lead = Deal(id='d2', contact_id='a1', status='Undecided', expected_close_date=date(2024, 1, 1))

    assert won.stage == 'Won'
    assert won.probability == 100
    assert lead.stage == 'Lead'
    assert lead.probability == 20


@pytest.mark.parametrize('fields', [
    {'status': 'Lost'},
    {'contact_id': ''},
    {'product_amount': -1},
    {'expected_close_date': 'not a date'},
    {'probability': 150},
    {'probability': 'high'},
    {'probability': float('inf')},
])
def test_invalid_deal_is_rejected(fields):
    base = dict(id='d1', contact_id='a1', status='Sales', expected_close_date='2024-05-01')
    base.update(fields)

    with pytest.raises(ValidationError):
        Deal(**base)


def test_deal_probability_is_stored_as_int():
    deal = Deal(id='d1', contact_id='a1', status='Expected', expected_close_date=date(2024, 1, 1), probability='50')

    assert deal.probability == 50


@pytest.mark.parametrize('field, value', [
    ('probability', 'high'),
    ('productAmount', 'inf'),
    ('goodsAmount', '-inf'),
])
def test_deal_from_record_rejects_unreadable_numbers(field, value):
    record = {'id': 'd1', 'contactId': 'a1', 'status': 'Sales', 'expectedCloseDate': '2024-05-01'}
    record[field] = value

    with pytest.raises(ValidationError):
        Deal.from_record(record)


def test_deal_from_record_accepts_legacy_status_labels():
    deal = Deal.from_record({
        'id': 'd1', 'contactId': 'a1', 'status': '확정',
        'expectedCloseDate': '2024-03-10', 'productAmount': '1500', 'goodsAmount': 500,
    })

    assert deal.status == 'Confirmed'
    assert deal.value == 2_000


def test_deal_from_record_uses_breakdown_over_stored_value():
    deal = Deal.from_record({
        'id': 'd1', 'contactId': 'a1', 'status': 'Expected', 'value': 999,
        'expectedCloseDate': '2024-03-10', 'productAmount': 100, 'goodsAmount': 50,
    })

    assert deal.value == 150


def test_deal_without_status_falls_back_to_won_stage():
    deal = Deal.from_record({
        'id': 'd1', 'contactId': 'a1', 'stage': '계약 성사 (Closed Won)',
        'expectedCloseDate': '2024-03-10',
    })

    assert deal.status == 'Sales'


def test_deal_without_status_or_stage_is_rejected():
    with pytest.raises(ValidationError):
        Deal.from_record({'id': 'd1', 'contactId': 'a1', 'expectedCloseDate': '2024-03-10'})


def test_deal_for_account_inherits_ownership():
    account = Account(id='a1', name='Kim', company='Acme', owner='Alice', team='Team A', owner_id='r1')

    deal = Deal.for_account(account, status='Expected', expected_close_date=date(2024, 6, 1))

    assert deal.contact_id == 'a1'
    assert (deal.owner, deal.team, deal.owner_id) == ('Alice', 'Team A', 'r1')
    assert deal.title == 'Acme deal'
    assert deal.id.startswith('d')


def test_account_requires_name_and_company():
    with pytest.raises(ValidationError):
        Account(id='a1', name='', company='Acme')
    with pytest.raises(ValidationError):
        Account(id='a1', name='Kim', company='')


def test_account_rejects_invalid_email_and_grade():
    with pytest.raises(ValidationError):
        Account(id='a1', name='Kim', company='Acme', email='not-an-email')
    with pytest.raises(ValidationError):
        Account(id='a1', name='Kim', company='Acme', grade='Z')


def test_account_notes_round_trip_as_encoded_list():
    account = Account(id='a1', name='Kim', company='Acme', notes=('first',)).add_note('second')

    record = account.to_record()
    restored = Account.from_record(record)

    assert record['notes'] == '["first", "second"]'
    assert restored.notes == ('first', 'second')


def test_account_add_note_rejects_blank_text():
    account = Account(id='a1', name='Kim', company='Acme')

    with pytest.raises(ValidationError):
        account.add_note('   ')


def test_account_from_record_reads_owner_id_and_defaults():
    account = Account.from_record({
        'id': 'a1', 'name': 'Kim', 'company': 'Acme', 'ownerId': 'r1',
        'targetAmount': '5000000', 'notes': 'single note',
    })

    assert account.owner_id == 'r1'
    assert account.target_amount == 5_000_000
    assert account.grade == 'Unrated'
    assert account.type == 'Company'
    assert account.notes == ('single note',)


def test_representative_requires_valid_email_and_role():
    with pytest.raises(ValidationError):
        Representative(id='r1', name='Alice', email='')
    with pytest.raises(ValidationError):
        Representative(id='r1', name='Alice', email='alice')
    with pytest.raises(ValidationError):
        Representative(id='r1', name='Alice', email='alice@test.com', role='ceo')


def test_generate_id_is_unique_and_prefixed():
    ids = {generate_id('c') for _ in range(50)}

    assert len(ids) == 50
    assert all(i.startswith('c') for i in ids)
