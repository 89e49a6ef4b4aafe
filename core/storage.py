#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Armazenamento local
Persistência chave-valor de coleções tipadas, com retenção e recuperação de cota

Cada coleção é uma lista JSON gravada inteira sob sua chave (leitura,
modificação e escrita da coleção completa). Unicidade por varredura linear
com substituição. Escritores concorrentes no mesmo meio: vence a última
escrita, sem compare-and-swap.

Versão: 1.0.0
Data: 2026-10-19
"""

import json
import shutil
import time
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any, Callable, Tuple
from dataclasses import dataclass

from pydantic import ValidationError

from shared.models import (
    DailyCheckSchema, WeeklyPlanSchema, ImpactLogSchema, AnchorMetricSchema, MetricEntrySchema
)
from utils.datetime_utils import now_local, now_iso, is_within_days, sort_key

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class StorageError(Exception):
    """Erro base do armazenamento local"""
    pass

class StorageQuotaExceededError(StorageError):
    """Capacidade do meio de persistência excedida"""
    pass

# ===== KEYS =====

class StorageKeys:
    DAILY_CHECKS = 'antigravity_daily_checks'
    WEEKLY_PLANS = 'antigravity_weekly_plans'
    IMPACT_LOGS = 'antigravity_impact_logs'
    DISMISSED_ALERTS = 'antigravity_dismissed_alerts'
    ANCHOR_METRICS = 'antigravity_anchor_metrics'
    METRIC_ENTRIES = 'antigravity_metric_entries'
    PREFERENCES = 'antigravity_preferences'

# Chave no documento de exportação -> chave de armazenamento
EXPORT_COLLECTIONS = {
    'dailyChecks': StorageKeys.DAILY_CHECKS,
    'weeklyPlans': StorageKeys.WEEKLY_PLANS,
    'impactLogs': StorageKeys.IMPACT_LOGS,
    'anchorMetrics': StorageKeys.ANCHOR_METRICS,
    'metricEntries': StorageKeys.METRIC_ENTRIES,
}

IMPORT_SCHEMAS = {
    'dailyChecks': DailyCheckSchema,
    'weeklyPlans': WeeklyPlanSchema,
    'impactLogs': ImpactLogSchema,
    'anchorMetrics': AnchorMetricSchema,
    'metricEntries': MetricEntrySchema,
}

# ===== BACKENDS =====

class StorageBackend:
    """Meio de persistência chave -> texto"""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def usage_bytes(self) -> int:
        raise NotImplementedError

class MemoryBackend(StorageBackend):
    """Backend em memória com cota opcional (testes e execuções efêmeras)"""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self.items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            current = self.usage_bytes() - len(self.items.get(key, '').encode('utf-8'))
            if current + len(value.encode('utf-8')) > self.quota_bytes:
                raise StorageQuotaExceededError(f"Quota exceeded writing {key}")
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)

    def usage_bytes(self) -> int:
        return sum(len(v.encode('utf-8')) for v in self.items.values())

class JSONFileBackend(StorageBackend):
    """Um arquivo <chave>.json por chave, escrita atômica via arquivo temporário"""

    def __init__(self, data_dir: Path, quota_bytes: Optional[int] = None):
        self.data_dir = Path(data_dir)
        self.quota_bytes = quota_bytes
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        encoded = value.encode('utf-8')

        if self.quota_bytes is not None:
            current = self.usage_bytes()
            if path.exists():
                current -= path.stat().st_size
            if current + len(encoded) > self.quota_bytes:
                raise StorageQuotaExceededError(f"Quota exceeded writing {key}")

        temp_file = path.with_suffix('.tmp')
        try:
            with open(temp_file, 'wb') as f:
                f.write(encoded)
            shutil.move(str(temp_file), str(path))
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def usage_bytes(self) -> int:
        return sum(p.stat().st_size for p in self.data_dir.glob("*.json"))

# ===== HELPERS =====

@dataclass
class StoreStats:
    """Estatísticas do armazenamento local"""
    load_count: int = 0
    save_count: int = 0
    error_count: int = 0
    dropped_writes: int = 0
    quota_recoveries: int = 0
    last_save: Optional[str] = None
    last_write_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'load_count': self.load_count,
            'save_count': self.save_count,
            'error_count': self.error_count,
            'dropped_writes': self.dropped_writes,
            'quota_recoveries': self.quota_recoveries,
            'last_save': self.last_save,
            'last_write_error': self.last_write_error
        }

def _replace_or_append(items: List[Dict[str, Any]], item: Dict[str, Any],
                       matches: Callable[[Dict[str, Any]], bool]) -> List[Dict[str, Any]]:
    for index, existing in enumerate(items):
        if matches(existing):
            items[index] = item
            return items
    items.append(item)
    return items

# ===== LOCAL STORE =====

def _valid_records(export_key: str, collection: List[Any]) -> List[Dict[str, Any]]:
    """Registros do documento que passam no schema da coleção"""
    schema = IMPORT_SCHEMAS[export_key]
    valid = []
    for item in collection:
        try:
            schema.model_validate(item)
        except ValidationError:
            continue
        valid.append(item)

    skipped = len(collection) - len(valid)
    if skipped:
        logger.warning(f"Importação: {skipped} registro(s) inválido(s) ignorado(s) em '{export_key}'")
    return valid


class LocalStore:
    """CRUD de coleções sobre um StorageBackend.

    Não faz I/O de rede. Os registros gravados pelos helpers chegam já
    validados; documentos importados passam pelos schemas de
    shared/models.py e itens que não são objetos são ignorados na leitura.
    Falhas de leitura viram "sem dados"; falhas de escrita são registradas
    em log e descartadas, nunca propagadas ao chamador.
    """

    def __init__(self, backend: StorageBackend,
                 daily_check_retention_days: int = 90,
                 weekly_plan_retention_days: int = 84,
                 quota_recovery_keep: int = 30,
                 clock: Callable[[], datetime] = now_local):
        self.backend = backend
        self.daily_check_retention_days = daily_check_retention_days
        self.weekly_plan_retention_days = weekly_plan_retention_days
        self.quota_recovery_keep = quota_recovery_keep
        self.clock = clock
        self.stats = StoreStats()
        self.start_time = time.time()

    # ----- primitives -----

    def get(self, key: str) -> Any:
        try:
            raw = self.backend.get_item(key)
            self.stats.load_count += 1
            if raw is None:
                return None
            return json.loads(raw)
        except (ValueError, OSError, StorageError) as e:
            self.stats.error_count += 1
            logger.error(f"Erro ao ler do armazenamento local: {key}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            serialized = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self._drop_write(key, f"serialization failed: {e}")
            return

        try:
            self.backend.set_item(key, serialized)
            self._mark_saved()
            return
        except StorageQuotaExceededError as e:
            recovered, retry_value = self._handle_quota_exceeded(key, value, e)
            if recovered:
                try:
                    self.backend.set_item(key, json.dumps(retry_value, ensure_ascii=False))
                    self._mark_saved()
                    return
                except (StorageError, OSError) as retry_error:
                    logger.error(f"Nova tentativa de escrita falhou após a limpeza: {key}: {retry_error}")
                    self._drop_write(key, str(retry_error))
                    return
            self._drop_write(key, str(e))
        except (StorageError, OSError) as e:
            self._drop_write(key, str(e))

    def remove(self, key: str) -> None:
        try:
            self.backend.remove_item(key)
        except (StorageError, OSError) as e:
            self.stats.error_count += 1
            logger.error(f"Erro ao remover do armazenamento local: {key}: {e}")

    def _mark_saved(self) -> None:
        self.stats.save_count += 1
        self.stats.last_save = now_iso()

    def _drop_write(self, key: str, reason: str) -> None:
        self.stats.error_count += 1
        self.stats.dropped_writes += 1
        self.stats.last_write_error = f"{key}: {reason}"
        logger.critical(f"Escrita descartada no armazenamento local: {key}: {reason}")

    def _handle_quota_exceeded(self, key: str, value: Any,
                               error: Exception) -> Tuple[bool, Any]:
        """Libera espaço reduzindo os checks diários aos mais recentes.

        Retorna (recuperado, valor a regravar). Quando a própria coleção de
        checks estourou a cota, o valor regravado é a versão reduzida.
        """
        logger.critical(f"Cota do armazenamento local excedida ({error}). Tentando liberar espaço...")
        keep = self.quota_recovery_keep

        if key == StorageKeys.DAILY_CHECKS:
            checks = value
        else:
            checks = self.get(StorageKeys.DAILY_CHECKS)

        if not isinstance(checks, list) or len(checks) <= keep:
            logger.error("Nada a liberar: checks diários já estão no mínimo")
            return False, value

        reduced = sorted(checks, key=lambda c: sort_key(c.get('date')))[-keep:]

        if key == StorageKeys.DAILY_CHECKS:
            self.stats.quota_recoveries += 1
            logger.info(f"Checks diários reduzidos de {len(checks)} para {keep} antes de regravar")
            return True, reduced

        try:
            self.backend.set_item(StorageKeys.DAILY_CHECKS, json.dumps(reduced, ensure_ascii=False))
        except (StorageError, OSError) as purge_error:
            logger.error(f"Falha ao limpar checks diários durante a recuperação de cota: {purge_error}")
            return False, value

        self.stats.quota_recoveries += 1
        logger.info(f"Checks diários antigos removidos ({len(checks)} -> {keep}) para liberar espaço")
        return True, value

    def _get_list(self, key: str, item_type: type = dict) -> List[Any]:
        """Lista da chave; itens de outro tipo são ignorados na leitura"""
        value = self.get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, item_type)]

    # ----- daily checks -----

    def get_daily_checks(self) -> List[Dict[str, Any]]:
        return self._get_list(StorageKeys.DAILY_CHECKS)

    def get_daily_check(self, date: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.get_daily_checks() if c.get('date') == date), None)

    def save_daily_check(self, check: Dict[str, Any]) -> None:
        checks = _replace_or_append(self.get_daily_checks(), check,
                                    lambda c: c.get('date') == check['date'])
        now = self.clock()
        filtered = [c for c in checks
                    if is_within_days(c.get('date'), self.daily_check_retention_days, now)]
        self.set(StorageKeys.DAILY_CHECKS, filtered)

    # ----- weekly plans -----

    def get_weekly_plans(self) -> List[Dict[str, Any]]:
        return self._get_list(StorageKeys.WEEKLY_PLANS)

    def get_weekly_plan(self, week_start: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.get_weekly_plans() if p.get('weekStart') == week_start), None)

    def save_weekly_plan(self, plan: Dict[str, Any]) -> None:
        plans = _replace_or_append(self.get_weekly_plans(), plan,
                                   lambda p: p.get('weekStart') == plan['weekStart'])
        now = self.clock()
        filtered = [p for p in plans
                    if is_within_days(p.get('weekStart'), self.weekly_plan_retention_days, now)]
        self.set(StorageKeys.WEEKLY_PLANS, filtered)

    # ----- impact logs -----

    def get_impact_logs(self) -> List[Dict[str, Any]]:
        return self._get_list(StorageKeys.IMPACT_LOGS)

    def get_impact_log(self, date: str) -> Optional[Dict[str, Any]]:
        return next((l for l in self.get_impact_logs() if l.get('date') == date), None)

    def save_impact_log(self, log: Dict[str, Any]) -> None:
        logs = _replace_or_append(self.get_impact_logs(), log,
                                  lambda l: l.get('date') == log['date'])
        self.set(StorageKeys.IMPACT_LOGS, logs)

    # ----- dismissed alerts -----

    def get_dismissed_alerts(self) -> List[str]:
        return self._get_list(StorageKeys.DISMISSED_ALERTS, str)

    def dismiss_alert(self, alert_id: str) -> None:
        dismissed = self.get_dismissed_alerts()
        if alert_id not in dismissed:
            dismissed.append(alert_id)
            self.set(StorageKeys.DISMISSED_ALERTS, dismissed)

    # ----- anchor metrics -----

    def get_anchor_metrics(self) -> List[Dict[str, Any]]:
        return self._get_list(StorageKeys.ANCHOR_METRICS)

    def get_anchor_metric(self, metric_id: str) -> Optional[Dict[str, Any]]:
        return next((m for m in self.get_anchor_metrics() if m.get('id') == metric_id), None)

    def save_anchor_metric(self, metric: Dict[str, Any]) -> None:
        metrics = _replace_or_append(self.get_anchor_metrics(), metric,
                                     lambda m: m.get('id') == metric['id'])
        self.set(StorageKeys.ANCHOR_METRICS, metrics)

    def delete_anchor_metric(self, metric_id: str) -> None:
        metrics = [m for m in self.get_anchor_metrics() if m.get('id') != metric_id]
        self.set(StorageKeys.ANCHOR_METRICS, metrics)

        # Remove também todas as entradas da métrica
        entries = [e for e in self.get_metric_entries() if e.get('metricId') != metric_id]
        self.set(StorageKeys.METRIC_ENTRIES, entries)
        logger.info(f"Métrica {metric_id} removida com suas entradas")

    # ----- metric entries -----

    def get_metric_entries(self) -> List[Dict[str, Any]]:
        return self._get_list(StorageKeys.METRIC_ENTRIES)

    def save_metric_entry(self, entry: Dict[str, Any]) -> None:
        entries = _replace_or_append(
            self.get_metric_entries(), entry,
            lambda e: e.get('metricId') == entry['metricId'] and e.get('date') == entry['date']
        )
        self.set(StorageKeys.METRIC_ENTRIES, entries)

    def get_entries_for_metric(self, metric_id: str, days: Optional[int] = None) -> List[Dict[str, Any]]:
        """Entradas da métrica, da mais recente para a mais antiga"""
        entries = [e for e in self.get_metric_entries() if e.get('metricId') == metric_id]
        if days:
            now = self.clock()
            entries = [e for e in entries if is_within_days(e.get('date'), days, now)]
        return sorted(entries, key=lambda e: sort_key(e.get('date')), reverse=True)

    def get_entries_for_date(self, date: str) -> List[Dict[str, Any]]:
        return [e for e in self.get_metric_entries() if e.get('date') == date]

    # ----- preferences -----

    def get_preferences(self) -> Dict[str, Any]:
        prefs = self.get(StorageKeys.PREFERENCES)
        return prefs if isinstance(prefs, dict) else {}

    def save_preferences(self, prefs: Dict[str, Any]) -> None:
        self.set(StorageKeys.PREFERENCES, prefs)

    # ----- export / import -----

    def export_data(self) -> str:
        """Documento JSON único com as cinco coleções principais"""
        return json.dumps({
            'dailyChecks': self.get_daily_checks(),
            'weeklyPlans': self.get_weekly_plans(),
            'impactLogs': self.get_impact_logs(),
            'anchorMetrics': self.get_anchor_metrics(),
            'metricEntries': self.get_metric_entries(),
            'exportedAt': now_iso(),
        }, ensure_ascii=False, indent=2)

    def import_data(self, json_string: str) -> bool:
        """Sobrescreve apenas as coleções presentes no documento"""
        try:
            data = json.loads(json_string)
        except (TypeError, ValueError) as e:
            logger.error(f"Erro ao importar dados: {e}")
            return False

        if not isinstance(data, dict):
            logger.error("Erro ao importar dados: documento não é um objeto JSON")
            return False

        imported = []
        for export_key, storage_key in EXPORT_COLLECTIONS.items():
            collection = data.get(export_key)
            if collection is None:
                continue
            if not isinstance(collection, list):
                logger.warning(f"Importação: '{export_key}' ignorado (não é uma lista)")
                continue
            records = _valid_records(export_key, collection)
            self.set(storage_key, records)
            imported.append(export_key)

        logger.info(f"Dados importados: {', '.join(imported) or 'nenhuma coleção'}")
        return True

    # ----- monitoring -----

    def get_stats(self) -> Dict[str, Any]:
        try:
            usage = self.backend.usage_bytes()
        except (OSError, NotImplementedError):
            usage = None

        return {
            'store': self.stats.to_dict(),
            'usage_bytes': usage,
            'collections': {
                'dailyChecks': len(self.get_daily_checks()),
                'weeklyPlans': len(self.get_weekly_plans()),
                'impactLogs': len(self.get_impact_logs()),
                'anchorMetrics': len(self.get_anchor_metrics()),
                'metricEntries': len(self.get_metric_entries()),
                'dismissedAlerts': len(self.get_dismissed_alerts())
            },
            'uptime_hours': round((time.time() - self.start_time) / 3600, 2)
        }

# ===== CONVENIENCE FUNCTIONS =====

def create_local_store(config) -> LocalStore:
    """Cria o armazenamento local a partir da configuração da aplicação"""
    backend = JSONFileBackend(config.storage.data_dir, config.storage.quota_bytes)
    logger.info(f"Armazenamento local em {config.storage.data_dir} (cota {config.storage.quota_bytes} bytes)")
    return LocalStore(
        backend,
        daily_check_retention_days=config.storage.daily_check_retention_days,
        weekly_plan_retention_days=config.storage.weekly_plan_retention_days,
        quota_recovery_keep=config.storage.quota_recovery_keep,
    )

__all__ = [
    'StorageError',
    'StorageQuotaExceededError',
    'StorageKeys',
    'EXPORT_COLLECTIONS',
    'StorageBackend',
    'MemoryBackend',
    'JSONFileBackend',
    'StoreStats',
    'LocalStore',
    'create_local_store'
]
