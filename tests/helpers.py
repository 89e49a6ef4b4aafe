"""Fábricas de registros e dublês compartilhados pelos testes"""

from datetime import datetime, timedelta
from typing import Dict, List, Any

from services.remote_store import RemoteStore

# Segunda-feira
FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0)


def days_ago(days: int, now: datetime = FIXED_NOW) -> str:
    return (now - timedelta(days=days)).strftime("%Y-%m-%d")


def make_check(date: str, **overrides) -> Dict[str, Any]:
    check = {
        'date': date,
        'operationStatus': 'green',
        'contentStatus': 'fulfilled',
        'commercialAlignment': 'aligned',
        'hasBottleneck': False,
        'tomorrowTrend': 'same',
    }
    check.update(overrides)
    return check


def make_plan(week_start: str, **overrides) -> Dict[str, Any]:
    plan = {
        'weekStart': week_start,
        'centerOfWeek': 'Lançamento',
        'projects': [],
        'content': {'theme': 'Bastidores', 'purpose': 'grow'},
        'commercial': {'focusClear': True, 'hasActiveActions': True},
    }
    plan.update(overrides)
    return plan


def make_metric(metric_id: str = 'm-leads', name: str = 'Leads novos', **overrides) -> Dict[str, Any]:
    metric = {
        'id': metric_id,
        'name': name,
        'category': 'Operação',
        'frequency': 'daily',
        'direction': 'higher_better',
        'unit': 'leads',
        'sourceNote': 'CRM',
        'guardrails': {'green': {'min': 10}, 'yellow': {'min': 5}, 'red': {}},
        'playbook': {'actionIfYellow': 'Revisar CTAs', 'actionIfRed': 'Avisar comercial'},
        'isActive': True,
        'createdAt': '2026-10-01T00:00:00Z',
    }
    metric.update(overrides)
    return metric


def make_entry(metric_id: str, date: str, value: float = 1, status: str = 'red', **overrides) -> Dict[str, Any]:
    entry = {
        'metricId': metric_id,
        'date': date,
        'value': value,
        'status': status,
        'updatedAt': '2026-10-19T12:00:00Z',
    }
    entry.update(overrides)
    return entry


class FakeRemoteStore(RemoteStore):
    """Banco remoto em memória com injeção de falhas por tabela.

    failures[table] = quantas chamadas seguidas falham (None = todas).
    """

    def __init__(self):
        self.tables: Dict[str, Dict[tuple, Dict[str, Any]]] = {}
        self.failures: Dict[str, Any] = {}
        self.calls: List[tuple] = []
        self.closed = False

    def _maybe_fail(self, table: str):
        if table not in self.failures:
            return
        remaining = self.failures[table]
        if remaining is None:
            raise ConnectionError(f"remote unavailable: {table}")
        if remaining > 0:
            self.failures[table] = remaining - 1
            raise ConnectionError(f"remote unavailable: {table}")

    async def upsert(self, table, rows, conflict_columns):
        self.calls.append(('upsert', table, len(rows)))
        self._maybe_fail(table)
        target = self.tables.setdefault(table, {})
        for row in rows:
            target[tuple(row[c] for c in conflict_columns)] = dict(row)

    async def select(self, table, user_id, columns):
        self.calls.append(('select', table, user_id))
        self._maybe_fail(table)
        return [
            {c: row.get(c) for c in columns}
            for row in self.tables.get(table, {}).values()
            if row.get('user_id') == user_id
        ]

    async def close(self):
        self.closed = True
