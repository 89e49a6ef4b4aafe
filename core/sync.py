#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Motor de sincronização
Reconciliação do armazenamento local com o banco remoto, por usuário e por coleção

Política: upsert pela chave natural composta, vence a última escrita, sem
rastreamento de causalidade. Cada coleção é enviada e recebida de forma
independente, com retry e backoff exponencial; uma coleção que esgota as
tentativas é registrada como crítica e não interrompe as demais.

Versão: 1.0.0
Data: 2026-10-19
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Callable, Awaitable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.models import SyncDirection
from core.storage import LocalStore
from services.remote_store import RemoteStore
from utils.datetime_utils import now_iso
from utils.decorators import with_retry

logger = logging.getLogger(__name__)

# ===== COLLECTIONS =====

@dataclass(frozen=True)
class SyncCollection:
    """Mapeamento entre uma coleção local e sua tabela remota"""
    name: str
    table: str
    conflict_columns: tuple
    pull_columns: tuple


DAILY_CHECKS = SyncCollection('dailyChecks', 'daily_checks', ('user_id', 'date'), ('payload',))
WEEKLY_PLANS = SyncCollection('weeklyPlans', 'weekly_plans', ('user_id', 'week_start'), ('payload',))
IMPACT_LOGS = SyncCollection('impactLogs', 'impact_logs', ('user_id', 'date'), ('payload',))
DISMISSED_ALERTS = SyncCollection('dismissedAlerts', 'dismissed_alerts', ('user_id', 'alert_id'), ('alert_id',))
ANCHOR_METRICS = SyncCollection('anchorMetrics', 'anchor_metrics', ('user_id', 'id'), ('payload',))
METRIC_ENTRIES = SyncCollection('metricEntries', 'metric_entries', ('user_id', 'metric_id', 'date'), ('payload',))

COLLECTIONS = (DAILY_CHECKS, WEEKLY_PLANS, IMPACT_LOGS, DISMISSED_ALERTS, ANCHOR_METRICS, METRIC_ENTRIES)

# ===== REPORTS =====

@dataclass
class CollectionResult:
    collection: str
    items: int = 0
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'collection': self.collection,
            'items': self.items,
            'success': self.success,
            'error': self.error
        }


@dataclass
class SyncReport:
    """Resultado de um push ou pull, coleção a coleção"""
    direction: str
    user_id: str
    started_at: str = field(default_factory=now_iso)
    finished_at: Optional[str] = None
    results: List[CollectionResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def failed_collections(self) -> List[str]:
        return [r.collection for r in self.results if not r.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'direction': self.direction,
            'userId': self.user_id,
            'startedAt': self.started_at,
            'finishedAt': self.finished_at,
            'success': self.success,
            'results': [r.to_dict() for r in self.results]
        }

# ===== ENGINE =====

class SyncEngine:
    """Push e pull entre LocalStore e RemoteStore.

    Nenhuma falha remota é propagada ao chamador: o resultado de cada
    coleção fica no SyncReport e no log.
    """

    def __init__(self, store: LocalStore, remote: RemoteStore,
                 max_retries: int = 3, base_delay: float = 1.0,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.store = store
        self.remote = remote
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

        self.last_sync: Optional[str] = None
        self.last_direction: Optional[str] = None
        self.last_reports: List[SyncReport] = []
        self.sync_count = 0

    # ----- push -----

    def _rows_for(self, collection: SyncCollection, user_id: str) -> List[Dict[str, Any]]:
        now = now_iso()

        if collection is DAILY_CHECKS:
            return [{'user_id': user_id, 'date': c['date'], 'payload': c, 'updated_at': now}
                    for c in self.store.get_daily_checks()]
        if collection is WEEKLY_PLANS:
            return [{'user_id': user_id, 'week_start': p['weekStart'], 'payload': p, 'updated_at': now}
                    for p in self.store.get_weekly_plans()]
        if collection is IMPACT_LOGS:
            return [{'user_id': user_id, 'date': l['date'], 'payload': l, 'updated_at': now}
                    for l in self.store.get_impact_logs()]
        if collection is DISMISSED_ALERTS:
            return [{'user_id': user_id, 'alert_id': alert_id, 'dismissed_at': now}
                    for alert_id in self.store.get_dismissed_alerts()]
        if collection is ANCHOR_METRICS:
            return [{'user_id': user_id, 'id': m['id'], 'payload': m, 'updated_at': now}
                    for m in self.store.get_anchor_metrics()]
        return [{'user_id': user_id, 'metric_id': e['metricId'], 'date': e['date'],
                 'payload': e, 'updated_at': now}
                for e in self.store.get_metric_entries()]

    async def push_local_to_remote(self, user_id: str) -> SyncReport:
        logger.info(f"⬆️ Sync: enviando dados locais para o banco remoto (usuário {user_id})")
        report = SyncReport(direction=SyncDirection.PUSH.value, user_id=user_id)

        for collection in COLLECTIONS:
            result = CollectionResult(collection.name)
            try:
                rows = self._rows_for(collection, user_id)
                result.items = len(rows)
                if rows:
                    await with_retry(
                        lambda: self.remote.upsert(collection.table, rows, collection.conflict_columns),
                        retries=self.max_retries,
                        delay=self.base_delay,
                        context=f"push {collection.table}",
                        sleep=self.sleep,
                    )
            except Exception as e:
                result.success = False
                result.error = str(e)
                logger.critical(f"Sync: push de {collection.name} falhou após {self.max_retries} tentativas: {e}")
            report.results.append(result)

        report.finished_at = now_iso()
        return report

    # ----- pull -----

    def _apply_row(self, collection: SyncCollection, row: Dict[str, Any]) -> None:
        if collection is DISMISSED_ALERTS:
            self.store.dismiss_alert(row['alert_id'])
            return

        payload = row.get('payload')
        if not isinstance(payload, dict):
            logger.warning(f"Sync: linha sem payload ignorada em {collection.table}")
            return

        if collection is DAILY_CHECKS:
            self.store.save_daily_check(payload)
        elif collection is WEEKLY_PLANS:
            self.store.save_weekly_plan(payload)
        elif collection is IMPACT_LOGS:
            self.store.save_impact_log(payload)
        elif collection is ANCHOR_METRICS:
            self.store.save_anchor_metric(payload)
        else:
            self.store.save_metric_entry(payload)

    async def pull_remote_to_local(self, user_id: str) -> SyncReport:
        logger.info(f"⬇️ Sync: trazendo dados do banco remoto (usuário {user_id})")
        report = SyncReport(direction=SyncDirection.PULL.value, user_id=user_id)

        for collection in COLLECTIONS:
            result = CollectionResult(collection.name)
            try:
                rows = await with_retry(
                    lambda: self.remote.select(collection.table, user_id, collection.pull_columns),
                    retries=self.max_retries,
                    delay=self.base_delay,
                    context=f"pull {collection.table}",
                    sleep=self.sleep,
                )
                for row in rows:
                    self._apply_row(collection, row)
                result.items = len(rows)
            except Exception as e:
                result.success = False
                result.error = str(e)
                logger.critical(f"Sync: pull de {collection.name} falhou após {self.max_retries} tentativas: {e}")
            report.results.append(result)

        report.finished_at = now_iso()
        return report

    # ----- orchestration -----

    async def sync(self, user_id: str, direction: SyncDirection = SyncDirection.BOTH) -> List[SyncReport]:
        """Push antes de pull quando a direção é `both`"""
        direction = SyncDirection(direction)
        reports = []

        if direction in (SyncDirection.PUSH, SyncDirection.BOTH):
            reports.append(await self.push_local_to_remote(user_id))
        if direction in (SyncDirection.PULL, SyncDirection.BOTH):
            reports.append(await self.pull_remote_to_local(user_id))

        self.last_sync = now_iso()
        self.last_direction = direction.value
        self.last_reports = reports
        self.sync_count += 1

        failed = [name for r in reports for name in r.failed_collections]
        if failed:
            logger.warning(f"Sync concluída com falhas em: {', '.join(failed)}")
        else:
            logger.info(f"✅ Sync ({direction.value}) concluída para {user_id}")
        return reports

    def get_status(self) -> Dict[str, Any]:
        return {
            'status': 'ready',
            'lastSync': self.last_sync,
            'lastDirection': self.last_direction,
            'syncCount': self.sync_count,
            'lastReports': [r.to_dict() for r in self.last_reports]
        }

# ===== SCHEDULER =====

class SyncScheduler:
    """Sincronização periódica (direção `both`) via APScheduler"""

    JOB_ID = 'periodic_sync'

    def __init__(self, engine: SyncEngine, user_id: str, interval_minutes: int):
        self.engine = engine
        self.user_id = user_id
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler()

    async def _periodic_sync(self) -> None:
        await self.engine.sync(self.user_id, SyncDirection.BOTH)

    def start(self) -> None:
        self.scheduler.add_job(
            self._periodic_sync,
            IntervalTrigger(minutes=self.interval_minutes),
            id=self.JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"⏰ Sync automática a cada {self.interval_minutes} min para {self.user_id}")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Sync automática interrompida")


__all__ = [
    'SyncCollection',
    'COLLECTIONS',
    'CollectionResult',
    'SyncReport',
    'SyncEngine',
    'SyncScheduler'
]
