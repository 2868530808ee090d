"""
Seed data generator -- fills the query history with realistic demo entries.

Generates, per organization:
  - a few users, each with a legacy batch of saved queries
  - a mix of Prometheus / Loki / SQL style query documents
  - ~20 % of records marked starred

Everything goes through the migration importer, so the seeded data exercises
the same code path as a real legacy import.
Run:  python -m pipelines.seed.seed_history
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta

from faker import Faker

from src.db.connection import get_engine
from src.db.schema import ensure_tables
from src.history.models import LegacyQuery, RequestContext
from src.history.service import QueryHistoryService

fake = Faker()
Faker.seed(42)
random.seed(42)

# ── Tunables ─────────────────────────────────────────────
NUM_ORGS = 2
USERS_PER_ORG = 3
QUERIES_PER_USER = 150
STAR_RATE = 0.2

DATASOURCES = {
    "P1809F7CD0C75ACF3": "prometheus",
    "P8E80F9AEF21F6940": "loki",
    "PE1C5CBDA0504A6A3": "postgres",
}
METRICS = ["http_requests_total", "node_cpu_seconds_total", "go_goroutines", "process_resident_memory_bytes"]
APPS = ["checkout", "payments", "search", "auth", "inventory"]
TABLES = ["orders", "users", "sessions", "invoices"]

DATE_END = datetime(2025, 12, 31)
HISTORY_DAYS = 90


def _rand_ts() -> int:
    ts = DATE_END - timedelta(
        days=random.randint(0, HISTORY_DAYS),
        seconds=random.randint(0, 86_399),
    )
    return int(ts.timestamp())


def _expr(kind: str) -> str:
    if kind == "prometheus":
        return f'sum(rate({random.choice(METRICS)}{{app="{random.choice(APPS)}"}}[5m]))'
    if kind == "loki":
        return f'{{app="{random.choice(APPS)}"}} |= "{fake.word()}"'
    return f"SELECT * FROM {random.choice(TABLES)} WHERE created_at > now() - interval '1 day' LIMIT 100"


# ── Generators ───────────────────────────────────────────

def gen_legacy_batch() -> list[LegacyQuery]:
    records = []
    for _ in range(QUERIES_PER_USER):
        ds_uid, kind = random.choice(list(DATASOURCES.items()))
        records.append(LegacyQuery(
            datasource_uid=ds_uid,
            queries=[{
                "refId": "A",
                "expr": _expr(kind),
                "datasource": {"type": kind, "uid": ds_uid},
            }],
            created_at=_rand_ts(),
            comment=fake.sentence(nb_words=4) if random.random() < 0.3 else "",
            starred=random.random() < STAR_RATE,
        ))
    return records


# ── Main ─────────────────────────────────────────────────

def main():
    print("═══ Query History Seed ═══")
    engine = get_engine()
    ensure_tables(engine)
    service = QueryHistoryService(engine)

    imported = starred = 0
    for org_id in range(1, NUM_ORGS + 1):
        for user_id in range(1, USERS_PER_ORG + 1):
            result = service.migrate(RequestContext(org_id=org_id, user_id=user_id), gen_legacy_batch())
            imported += result.imported_count
            starred += result.starred_count
            print(f"  ✓ org {org_id} / user {user_id}: {result.imported_count} queries")

    print(f"\nDone -- seeded {imported:,} entries ({starred:,} starred).")


if __name__ == "__main__":
    main()
