#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Motor de alertas
Detecção de padrões comportamentais no histórico de checks, planos e métricas

Os alertas são recalculados a cada leitura e nunca persistidos; apenas os
ids dispensados ficam no armazenamento. Cada regra é independente e todas
as regras que casam disparam juntas.

Versão: 1.0.0
Data: 2026-10-19
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Any, Iterable

from core.models import Alert, AlertType, MetricCategory, MetricDirection, MetricStatus
from utils.datetime_utils import now_local, is_within_days, sort_key

logger = logging.getLogger(__name__)

CHECK_WINDOW_DAYS = 14
PLAN_WINDOW_DAYS = 28
METRIC_WINDOW_DAYS = 7


def analyze_patterns(daily_checks: List[Dict[str, Any]],
                     weekly_plans: List[Dict[str, Any]],
                     metrics: Optional[List[Dict[str, Any]]] = None,
                     metric_entries: Optional[List[Dict[str, Any]]] = None,
                     now: Optional[datetime] = None) -> List[Alert]:
    """Gera os alertas de padrão a partir do histórico"""
    now = now or now_local()
    alerts: List[Alert] = []

    sorted_checks = sorted(daily_checks, key=lambda c: sort_key(c.get('date')), reverse=True)
    sorted_plans = sorted(weekly_plans, key=lambda p: sort_key(p.get('weekStart')), reverse=True)

    recent_checks = [c for c in sorted_checks if is_within_days(c.get('date'), CHECK_WINDOW_DAYS, now)]
    recent_plans = [p for p in sorted_plans if is_within_days(p.get('weekStart'), PLAN_WINDOW_DAYS, now)]

    # Sustentando demais sozinha
    red_operation_days = sum(1 for c in recent_checks if c.get('operationStatus') == 'red')
    if red_operation_days >= 3:
        alerts.append(Alert(
            id='sustaining-alone',
            type=AlertType.WARNING,
            message='Você está sustentando coisas demais sozinha.',
            suggestion='Considere delegar ou pedir apoio em algumas áreas. Seu trabalho é importante demais para se esgotar.',
        ))

    # Foco mudando com frequência
    unique_focuses = {(p.get('centerOfWeek') or '').strip().lower() for p in recent_plans}
    if len(recent_plans) >= 3 and len(unique_focuses) >= 3:
        alerts.append(Alert(
            id='focus-changing',
            type=AlertType.INFO,
            message='O foco mudou muitas vezes nas últimas semanas.',
            suggestion='Isso pode indicar dispersão ou mudanças de prioridade. Vale revisar o que realmente importa agora.',
        ))

    # Dependência comercial
    commercial_issues = sum(1 for c in recent_checks
                            if c.get('commercialAlignment') in ('misaligned', 'partial'))
    commercial_issue_rate = commercial_issues / len(recent_checks) if recent_checks else 0
    if commercial_issue_rate > 0.5:
        alerts.append(Alert(
            id='commercial-dependency',
            type=AlertType.WARNING,
            message='O comercial está dependendo excessivamente de você.',
            suggestion='Pode ser hora de criar processos ou materiais que reduzam essa dependência.',
        ))

    # Conteúdo sem propósito
    plans_without_purpose = sum(1 for p in recent_plans if _lacks_content_purpose(p))
    if plans_without_purpose >= 3:
        alerts.append(Alert(
            id='content-no-purpose',
            type=AlertType.CAUTION,
            message='Conteúdo está sendo produzido sem objetivo claro.',
            suggestion='Definir o propósito (crescer, aquecer ou vender) ajuda a medir o impacto real.',
        ))

    # Modo crise
    bottlenecks = sum(1 for c in recent_checks if c.get('hasBottleneck'))
    if bottlenecks >= 5:
        alerts.append(Alert(
            id='crisis-mode',
            type=AlertType.WARNING,
            message='Você tem resolvido mais crises do que deveria.',
            suggestion='Gargalos frequentes podem indicar problemas estruturais. Vale investigar a raiz.',
        ))

    # Sem planejamento semanal
    if not recent_plans:
        alerts.append(Alert(
            id='no-planning',
            type=AlertType.INFO,
            message='Você ainda não definiu o foco semanal.',
            suggestion='Dedicar 20 minutos para planejar a semana pode transformar sua clareza e impacto.',
        ))

    # Amanhã parecendo pior
    worse_trends = sum(1 for c in sorted_checks[:5] if c.get('tomorrowTrend') == 'worse')
    if worse_trends >= 3:
        alerts.append(Alert(
            id='negative-trend',
            type=AlertType.CAUTION,
            message='As coisas têm parecido cada vez mais difíceis.',
            suggestion='Pode ser um bom momento para pausar, respirar e revisar prioridades.',
        ))

    # Projetos parados (plano mais recente)
    if sorted_plans:
        projects = sorted_plans[0].get('projects') or []
        stuck = sum(1 for p in projects if not p.get('isAdvancing'))
        if projects and stuck / len(projects) > 0.5:
            alerts.append(Alert(
                id='projects-stuck',
                type=AlertType.WARNING,
                message='Mais da metade dos projetos não está avançando.',
                suggestion='Pode ser hora de reduzir o número de frentes ou destravar dependências.',
            ))

    if metrics is not None and metric_entries is not None:
        alerts.extend(analyze_metric_patterns(metrics, metric_entries, now))

    logger.debug(f"Análise de padrões: {len(alerts)} alerta(s)")
    return alerts


def _lacks_content_purpose(plan: Dict[str, Any]) -> bool:
    content = plan.get('content') or {}
    return not content.get('theme') or not content.get('purpose')


def _entries_for(metric_id: str, entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted((e for e in entries if e.get('metricId') == metric_id),
                  key=lambda e: sort_key(e.get('date')), reverse=True)


def analyze_metric_patterns(metrics: List[Dict[str, Any]],
                            entries: List[Dict[str, Any]],
                            now: Optional[datetime] = None) -> List[Alert]:
    """Alertas por métrica ativa: queda persistente, conteúdo sem resultado, atrasos"""
    now = now or now_local()
    alerts: List[Alert] = []
    red = MetricStatus.RED.value
    yellow = MetricStatus.YELLOW.value

    for metric in (m for m in metrics if m.get('isActive')):
        metric_id = metric.get('id')
        name = metric.get('name', '')
        history = _entries_for(metric_id, entries)
        recent = [e for e in history if is_within_days(e.get('date'), METRIC_WINDOW_DAYS, now)]

        # Vermelho nas 3 entradas mais recentes
        if len(history) >= 3 and all(e.get('status') == red for e in history[:3]):
            period = 'dias' if metric.get('frequency') == 'daily' else 'semanas'
            alerts.append(Alert(
                id=f'metric-drop-{metric_id}',
                type=AlertType.WARNING,
                message=f'A métrica "{name}" está em vermelho há 3 {period} seguidos.',
                suggestion=(metric.get('playbook') or {}).get('actionIfRed') or None,
            ))

        if metric.get('category') == MetricCategory.CONTENT.value:
            problematic = sum(1 for e in recent if e.get('status') in (yellow, red))
            if len(recent) >= 3 and problematic >= 3:
                alerts.append(Alert(
                    id=f'content-no-results-{metric_id}',
                    type=AlertType.CAUTION,
                    message=f'Seu conteúdo ({name}) não está gerando os resultados esperados.',
                    suggestion='Revisar propósito, formato ou distribuição pode ajudar.',
                ))

        if (metric.get('category') == MetricCategory.OPERATION.value
                and metric.get('direction') == MetricDirection.LOWER_BETTER.value):
            red_days = sum(1 for e in recent if e.get('status') == red)
            if len(recent) >= 3 and red_days >= 3:
                alerts.append(Alert(
                    id=f'operation-delays-{metric_id}',
                    type=AlertType.WARNING,
                    message=f'A operação está acumulando atrasos ({name}).',
                    suggestion='Considere redistribuir carga ou revisar prioridades.',
                ))

    return alerts


def filter_dismissed(alerts: List[Alert], dismissed_ids: Iterable[str]) -> List[Alert]:
    dismissed = set(dismissed_ids)
    return [a for a in alerts if a.id not in dismissed]


__all__ = [
    'analyze_patterns',
    'analyze_metric_patterns',
    'filter_dismissed'
]
