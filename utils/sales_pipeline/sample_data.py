# utils/sales_pipeline/sample_data.py
"""
Built-in first-run dataset.

Every representative gets 8-12 accounts, every account 3-6 deals spread
across the current year, so each scope and chart has data to show.
Generation is seeded and therefore reproducible.
"""

from datetime import date
import random
from typing import List, NamedTuple, Optional

from .constants import (
    CHART_GRADES,
    DEAL_STATUSES,
    KIND_ACCOUNTS,
    KIND_DEALS,
    KIND_REPRESENTATIVES,
)
from .models import Account, Deal, Representative


class SampleDataset(NamedTuple):
    accounts: List[Account]
    deals: List[Deal]
    representatives: List[Representative]

    def to_records(self):
        """Plain store records keyed by collection kind."""
        return {
            KIND_ACCOUNTS: [a.to_record() for a in self.accounts],
            KIND_DEALS: [d.to_record() for d in self.deals],
            KIND_REPRESENTATIVES: [r.to_record() for r in self.representatives],
        }


SAMPLE_REPRESENTATIVES = [
    Representative(id='s1', name='Gildong Hong', team='Sales Team 1', department='Sales Division',
                   role='manager', email='hong@example.com', phone='010-1234-5678'),
    Representative(id='s2', name='Minjun Kim', team='Sales Team 2', department='Sales Division',
                   role='staff', email='kim@example.com', phone='010-2345-6789'),
    Representative(id='s3', name='Sujin Lee', team='Sales Team 1', department='Sales Division',
                   role='staff', email='lee@example.com', phone='010-3456-7890'),
    Representative(id='s4', name='Jiho Park', team='Executive Office', department='Sales Division',
                   role='director', email='park@example.com', phone='010-4567-8901'),
    Representative(id='s5', name='Seoyeon Choi', team='Sales Team 2', department='Sales Division',
                   role='staff', email='choi@example.com', phone='010-5678-9012'),
]

LOCATIONS = [
    'Gangnam-gu, Seoul', 'Jongno-gu, Seoul', 'Seongnam, Gyeonggi', 'Yuseong-gu, Daejeon',
    'Haeundae-gu, Busan', 'Songdo, Incheon', 'Cheongju, Chungbuk', 'Sejong', 'Buk-gu, Gwangju',
]

BASE_COMPANIES = [
    'TechCorp', 'Innovate Inc', 'Mirae Industries', 'Korea University', 'Seoul Tech University',
    'KAIST', 'ETRI Research Institute', 'KISTI Institute', 'Software Industry Association',
    'ICT Promotion Institute', 'Samsung Electronics', 'LG Electronics', 'Hyundai Motor',
    'SK Hynix', 'Naver', 'Kakao', 'POSCO', 'Hanwha Systems', 'LIG Nex1', 'KAI',
    'Seoul National University', 'Yonsei University', 'Pusan National University',
    'Machinery Research Institute', 'Chemical Research Institute', 'Doosan Robotics',
    'Hyundai Rotem', 'KT', 'LG Uplus', 'SK Telecom', 'NCSoft', 'Netmarble', 'Krafton',
    'Pearl Abyss', 'Kakao Bank', 'Toss', 'Coupang', 'Woowa Brothers', 'Zigbang', 'Daangn',
]

CONTACT_ROLES = ['Team Lead', 'Senior Manager', 'Director']

SAMPLE_SEED = 11


def _account_type(company: str) -> str:
    if 'University' in company:
        return 'University'
    if 'Institute' in company:
        return 'Institute'
    if 'Association' in company:
        return 'Association'
    return 'Company'


def build_sample_dataset(seed: int = SAMPLE_SEED, today: Optional[date] = None) -> SampleDataset:
    """
    Generate the sample accounts, deals and representatives.

    Args:
        seed: Random seed (same seed and year give the same dataset)
        today: Reference date; deals are dated in its year
    """
    rng = random.Random(seed)
    today = today or date.today()
    year = today.year

    accounts: List[Account] = []
    deals: List[Deal] = []
    idx = 0
    deal_no = 1

    for rep in SAMPLE_REPRESENTATIVES:
        for _ in range(rng.randint(8, 12)):
            base = BASE_COMPANIES[idx % len(BASE_COMPANIES)]
            cycle = idx // len(BASE_COMPANIES)
            company = f"{base} {cycle + 1}" if cycle else base
            kind = _account_type(company)

            account = Account(
                id=f"c{idx + 1}",
                name=f"Contact {idx + 1}",
                company=company,
                email=f"contact{idx + 1}@{'company.com' if kind == 'Company' else 'org.kr'}",
                phone=f"010-{1000 + idx}-{2000 + idx}",
                address=LOCATIONS[idx % len(LOCATIONS)],
                role=CONTACT_ROLES[idx % len(CONTACT_ROLES)],
                department=rep.team,
                type=kind,
                grade=CHART_GRADES[idx % len(CHART_GRADES)],
                target_amount=rng.randint(10, 59) * 10_000_000,
                notes=(f"Discuss {year} business plan", "Budget increase reported recently"),
                owner=rep.name,
                team=rep.team,
                owner_id=rep.id,
                last_contacted=date(year, today.month, idx % 28 + 1),
            )
            accounts.append(account)

            for _ in range(rng.randint(3, 6)):
                month = rng.randint(1, 12)
                value = rng.randint(5, 24) * 5_000_000
                product = round(value * (0.7 + rng.random() * 0.2))
                deals.append(Deal.for_account(
                    account,
                    id=f"d{deal_no}",
                    title=f"{company} equipment supply ({month:02d})",
                    status=rng.choice(DEAL_STATUSES),
                    expected_close_date=date(year, month, rng.randint(1, 28)),
                    product_amount=product,
                    goods_amount=value - product,
                    item_details=f"Servers x{rng.randint(1, 5)}, licenses x{rng.randint(1, 10)}",
                    department=rep.department,
                ))
                deal_no += 1

            idx += 1

    return SampleDataset(accounts, deals, list(SAMPLE_REPRESENTATIVES))
