#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Modelos de domínio
Enumerações e registros derivados (alertas) do painel operacional

Os registros persistidos (DailyCheck, WeeklyPlan, ImpactLog, AnchorMetric,
MetricEntry) circulam como dicts JSON com chaves camelCase, o mesmo formato
do arquivo de exportação. A validação de fronteira fica em shared/models.py.

Versão: 1.0.0
Data: 2026-10-19
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from utils.datetime_utils import now_iso

# ===== ENUMS =====

class OperationStatus(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

class ContentStatus(str, Enum):
    FULFILLED = "fulfilled"
    AT_RISK = "at-risk"
    NOT_PRIORITY = "not-priority"

class CommercialAlignment(str, Enum):
    ALIGNED = "aligned"
    PARTIAL = "partial"
    MISALIGNED = "misaligned"

class TomorrowTrend(str, Enum):
    BETTER = "better"
    SAME = "same"
    WORSE = "worse"

class ContentPurpose(str, Enum):
    GROW = "grow"
    WARM = "warm"
    SELL = "sell"

class ProjectDependency(str, Enum):
    ME = "me"
    OTHERS = "others"

class MetricCategory(str, Enum):
    OPERATION = "Operação"
    CONTENT = "Conteúdo"
    COMMERCIAL = "Comercial"

class MetricFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"

class MetricDirection(str, Enum):
    HIGHER_BETTER = "higher_better"
    LOWER_BETTER = "lower_better"

class MetricStatus(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

class MetricTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"

class AlertType(str, Enum):
    WARNING = "warning"
    INFO = "info"
    CAUTION = "caution"

class ImpactCategory(str, Enum):
    """Categoria de um registro de impacto (lista do ImpactLog)"""
    OPERATION = "operation"
    CONTENT = "content"
    COMMERCIAL = "commercial"

class SyncDirection(str, Enum):
    PUSH = "push"
    PULL = "pull"
    BOTH = "both"

# ===== DERIVED RECORDS =====

@dataclass
class Alert:
    """Alerta comportamental derivado; nunca persistido"""
    id: str
    type: AlertType
    message: str
    suggestion: Optional[str] = None
    createdAt: str = ""

    def __post_init__(self):
        if not self.createdAt:
            self.createdAt = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['type'] = self.type.value
        if self.suggestion is None:
            del data['suggestion']
        return data

@dataclass
class RedAlert:
    """Item do Radar de Vermelhos"""
    metricId: str
    metricName: str
    value: float
    unit: str
    action: str
    addressed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    'OperationStatus',
    'ContentStatus',
    'CommercialAlignment',
    'TomorrowTrend',
    'ContentPurpose',
    'ProjectDependency',
    'MetricCategory',
    'MetricFrequency',
    'MetricDirection',
    'MetricStatus',
    'MetricTrend',
    'AlertType',
    'ImpactCategory',
    'SyncDirection',
    'Alert',
    'RedAlert'
]
