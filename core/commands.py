#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Executor de comandos da IA
Aplica no armazenamento local os comandos estruturados embutidos nas respostas do assistente

Formato do comando dentro do texto:
    ...texto... __JSON_START__ {"action": "<ACTION>", "data": {...}} __JSON_END__

As mutações passam pelas mesmas regras da interface: registros validados
pelos schemas de fronteira e status de métrica recalculado pelo motor de
métricas, nunca aceito do comando.

Versão: 1.0.0
Data: 2026-10-19
"""

import re
import json
import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any, Callable

from pydantic import ValidationError

from core.models import ImpactCategory
from core.storage import LocalStore
from core.metrics_engine import build_metric_entry, check_guardrails
from shared.models import (
    AICommandSchema, DailyCheckSchema, WeeklyPlanSchema, ImpactLogSchema
)
from utils.datetime_utils import now_local, today_str, week_start, parse_date

logger = logging.getLogger(__name__)

JSON_START = '__JSON_START__'
JSON_END = '__JSON_END__'
COMMAND_PATTERN = re.compile(re.escape(JSON_START) + r'(.*?)' + re.escape(JSON_END), re.DOTALL)

# ===== EXCEPTIONS =====

class CommandError(Exception):
    """Erro base da execução de comandos"""
    pass

class CommandValidationError(CommandError):
    """Registro resultante do comando não passou na validação"""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []

class MetricNotFoundError(CommandError):
    """Nenhuma métrica corresponde ao nome informado"""

    def __init__(self, metric_name: str):
        super().__init__(f"Métrica não encontrada: {metric_name}")
        self.metric_name = metric_name

# ===== PARSING =====

class CommandAction:
    UPDATE_DAILY_CHECK = 'UPDATE_DAILY_CHECK'
    UPDATE_METRIC_ENTRY = 'UPDATE_METRIC_ENTRY'
    UPDATE_WEEKLY_PLAN = 'UPDATE_WEEKLY_PLAN'
    ADD_IMPACT_LOG = 'ADD_IMPACT_LOG'


@dataclass
class AICommand:
    action: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'action': self.action, 'data': self.data}


def parse_command(text: str) -> Optional[AICommand]:
    """Extrai o bloco de comando; None se ausente ou malformado"""
    if not text:
        return None

    match = COMMAND_PATTERN.search(text)
    if not match:
        return None

    try:
        raw = json.loads(match.group(1).strip())
        parsed = AICommandSchema.model_validate(raw)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Bloco de comando malformado ignorado: {e}")
        return None

    return AICommand(action=parsed.action, data=parsed.data)


def strip_command(text: str) -> str:
    """Texto da resposta sem o bloco de comando"""
    return COMMAND_PATTERN.sub('', text or '').strip()

# ===== DEFAULTS =====

def _default_daily_check(date: str) -> Dict[str, Any]:
    return {
        'date': date,
        'operationStatus': 'green',
        'contentStatus': 'fulfilled',
        'commercialAlignment': 'aligned',
        'hasBottleneck': False,
        'bottleneckDescription': '',
        'tomorrowTrend': 'same',
    }


def _default_weekly_plan(start: str) -> Dict[str, Any]:
    return {
        'weekStart': start,
        'centerOfWeek': '',
        'projects': [],
        'content': {'theme': '', 'purpose': 'grow'},
        'commercial': {'focusClear': False, 'hasActiveActions': False},
    }


def _validated(schema, record: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return schema.model_validate(record).to_record()
    except ValidationError as e:
        details = [
            {'field': '.'.join(str(p) for p in err['loc']), 'message': err['msg']}
            for err in e.errors()
        ]
        raise CommandValidationError(f"Dados inválidos para {schema.__name__}", details) from e


def find_metric(metrics: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    """Correspondência exata (sem caixa) primeiro, depois por substring"""
    needle = name.strip().lower()
    if not needle:
        return None

    for metric in metrics:
        if metric.get('name', '').lower() == needle:
            return metric
    for metric in metrics:
        if needle in metric.get('name', '').lower():
            return metric
    return None

# ===== EXECUTOR =====

CommandListener = Callable[[str, Dict[str, Any]], None]


class CommandExecutor:
    """Traduz comandos da IA em mutações do LocalStore"""

    def __init__(self, store: LocalStore, clock: Callable[[], datetime] = now_local):
        self.store = store
        self.clock = clock
        self.listeners: List[CommandListener] = []
        self.handlers = {
            CommandAction.UPDATE_DAILY_CHECK: self._update_daily_check,
            CommandAction.UPDATE_METRIC_ENTRY: self._update_metric_entry,
            CommandAction.UPDATE_WEEKLY_PLAN: self._update_weekly_plan,
            CommandAction.ADD_IMPACT_LOG: self._add_impact_log,
        }

    def add_listener(self, callback: CommandListener) -> None:
        self.listeners.append(callback)

    def _notify(self, action: str, record: Dict[str, Any]) -> None:
        for listener in self.listeners:
            try:
                listener(action, record)
            except Exception as e:
                logger.error(f"Listener de comando falhou ({action}): {e}")

    def execute(self, command: AICommand) -> Optional[Dict[str, Any]]:
        """Aplica o comando e devolve o registro gravado.

        Ação desconhecida: registrada em log e ignorada (retorna None).
        MetricNotFoundError e CommandValidationError são propagados.
        """
        handler = self.handlers.get(command.action)
        if handler is None:
            logger.warning(f"Ação de comando desconhecida ignorada: {command.action}")
            return None

        record = handler(command.data or {})
        logger.info(f"🤖 Comando {command.action} aplicado")
        self._notify(command.action, record)
        return record

    def execute_text(self, text: str) -> Optional[Dict[str, Any]]:
        command = parse_command(text)
        if command is None:
            return None
        return self.execute(command)

    # ----- actions -----

    def _update_daily_check(self, data: Dict[str, Any]) -> Dict[str, Any]:
        today = today_str(self.clock())
        current = self.store.get_daily_check(today) or _default_daily_check(today)

        merged = {**current, **data, 'date': today}
        record = _validated(DailyCheckSchema, merged)
        self.store.save_daily_check(record)
        return record

    def _update_metric_entry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        metric_name = data.get('metricName')
        value = data.get('value')

        if not isinstance(metric_name, str) or not metric_name.strip():
            raise CommandValidationError("metricName é obrigatório",
                                         [{'field': 'metricName', 'message': 'obrigatório'}])
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CommandValidationError("value deve ser numérico",
                                         [{'field': 'value', 'message': 'deve ser numérico'}])

        metric = find_metric(self.store.get_anchor_metrics(), metric_name)
        if metric is None:
            logger.error(f"Comando para métrica inexistente: {metric_name}")
            raise MetricNotFoundError(metric_name)

        for issue in check_guardrails(metric):
            logger.warning(f"Guardrails inconsistentes em '{metric.get('name')}': {issue}")

        date = data.get('date') or today_str(self.clock())
        if parse_date(date) is None:
            raise CommandValidationError("date deve estar no formato YYYY-MM-DD",
                                         [{'field': 'date', 'message': 'formato inválido'}])
        entry = build_metric_entry(metric, date, float(value), addressed=data.get('addressed'))
        self.store.save_metric_entry(entry)
        return entry

    def _update_weekly_plan(self, data: Dict[str, Any]) -> Dict[str, Any]:
        start = week_start(self.clock())
        current = self.store.get_weekly_plan(start) or _default_weekly_plan(start)

        for key in ('content', 'commercial'):
            if data.get(key) is not None and not isinstance(data[key], dict):
                raise CommandValidationError(f"{key} deve ser um objeto",
                                             [{'field': key, 'message': 'deve ser um objeto'}])
        projects = data.get('projects')
        if projects is not None and (
                not isinstance(projects, list) or not all(isinstance(p, dict) for p in projects)):
            raise CommandValidationError("projects deve ser uma lista de objetos",
                                         [{'field': 'projects', 'message': 'deve ser uma lista de objetos'}])

        merged = {**current, 'weekStart': start}
        if 'centerOfWeek' in data:
            merged['centerOfWeek'] = data['centerOfWeek']
        if 'content' in data:
            merged['content'] = {**current.get('content', {}), **(data['content'] or {})}
        if 'commercial' in data:
            merged['commercial'] = {**current.get('commercial', {}), **(data['commercial'] or {})}
        if 'projects' in data:
            merged['projects'] = [
                project if project.get('id') else {**project, 'id': str(uuid.uuid4())}
                for project in (projects or [])
            ]

        record = _validated(WeeklyPlanSchema, merged)
        self.store.save_weekly_plan(record)
        return record

    def _add_impact_log(self, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            category = ImpactCategory(data.get('category'))
        except ValueError:
            raise CommandValidationError(
                "category deve ser operation, content ou commercial",
                [{'field': 'category', 'message': 'valor inválido'}]
            )

        text = data.get('reflection') or data.get('text')
        if not isinstance(text, str) or not text.strip():
            raise CommandValidationError("reflection é obrigatório",
                                         [{'field': 'reflection', 'message': 'obrigatório'}])

        today = today_str(self.clock())
        current = self.store.get_impact_log(today) or {
            'date': today, 'operation': [], 'content': [], 'commercial': [], 'reflection': ''
        }

        merged = dict(current)
        merged[category.value] = list(current.get(category.value) or []) + [text.strip()]
        record = _validated(ImpactLogSchema, merged)
        self.store.save_impact_log(record)
        return record


__all__ = [
    'CommandError',
    'CommandValidationError',
    'MetricNotFoundError',
    'CommandAction',
    'AICommand',
    'parse_command',
    'strip_command',
    'find_metric',
    'CommandExecutor'
]
