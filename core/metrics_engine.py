#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Motor de métricas
Avaliação de números âncora contra seus guardrails (verde/amarelo/vermelho)

Funções puras sobre dicts de AnchorMetric e MetricEntry, exceto
seed_default_metrics, que grava as métricas iniciais no armazenamento.

Versão: 1.0.0
Data: 2026-10-19
"""

import logging
from typing import Dict, List, Optional, Any

from core.models import MetricDirection, MetricStatus, MetricTrend, RedAlert
from utils.datetime_utils import now_iso, sort_key

logger = logging.getLogger(__name__)

TIERS = ('green', 'yellow', 'red')

# ===== STATUS =====

def calculate_status(value: float, metric: Dict[str, Any]) -> MetricStatus:
    """Avalia verde -> amarelo -> vermelho conforme a direção da métrica.

    higher_better compara com `min`, lower_better com `max`. Um nível sem
    limite definido é pulado; o padrão final é vermelho.
    """
    guardrails = metric.get('guardrails') or {}
    higher_better = metric.get('direction') == MetricDirection.HIGHER_BETTER.value
    bound_key = 'min' if higher_better else 'max'

    for tier, status in (('green', MetricStatus.GREEN), ('yellow', MetricStatus.YELLOW)):
        bound = (guardrails.get(tier) or {}).get(bound_key)
        if bound is None:
            continue
        if (higher_better and value >= bound) or (not higher_better and value <= bound):
            return status

    return MetricStatus.RED

def check_guardrails(metric: Dict[str, Any]) -> List[str]:
    """Problemas de monotonicidade dos guardrails (apenas informativo).

    Verde deve ser mais exigente que amarelo, e amarelo que vermelho, no
    sentido da direção da métrica.
    """
    guardrails = metric.get('guardrails') or {}
    higher_better = metric.get('direction') == MetricDirection.HIGHER_BETTER.value
    bound_key = 'min' if higher_better else 'max'
    issues = []

    bounds = [(tier, (guardrails.get(tier) or {}).get(bound_key)) for tier in TIERS]
    defined = [(tier, bound) for tier, bound in bounds if bound is not None]

    for (stricter, strict_bound), (looser, loose_bound) in zip(defined, defined[1:]):
        if higher_better and strict_bound < loose_bound:
            issues.append(f"{stricter}.min ({strict_bound}) menor que {looser}.min ({loose_bound})")
        elif not higher_better and strict_bound > loose_bound:
            issues.append(f"{stricter}.max ({strict_bound}) maior que {looser}.max ({loose_bound})")

    return issues

def build_metric_entry(metric: Dict[str, Any], date: str, value: float,
                       addressed: Optional[bool] = None,
                       updated_at: Optional[str] = None) -> Dict[str, Any]:
    """Entrada com status derivado no momento da escrita"""
    entry = {
        'metricId': metric['id'],
        'date': date,
        'value': value,
        'status': calculate_status(value, metric).value,
        'updatedAt': updated_at or now_iso(),
    }
    if addressed is not None:
        entry['addressed'] = addressed
    return entry

# ===== RADAR DE VERMELHOS =====

def get_red_alerts(date: str, metrics: List[Dict[str, Any]],
                   entries: List[Dict[str, Any]]) -> List[RedAlert]:
    """Uma entrada por métrica ativa em vermelho na data, sem deduplicação"""
    metrics_by_id = {m.get('id'): m for m in metrics}
    red_alerts = []

    for entry in entries:
        if entry.get('date') != date or entry.get('status') != MetricStatus.RED.value:
            continue

        metric = metrics_by_id.get(entry.get('metricId'))
        if not metric or not metric.get('isActive'):
            continue

        red_alerts.append(RedAlert(
            metricId=metric['id'],
            metricName=metric.get('name', ''),
            value=entry.get('value'),
            unit=metric.get('unit', ''),
            action=(metric.get('playbook') or {}).get('actionIfRed', ''),
            addressed=bool(entry.get('addressed', False)),
        ))

    return red_alerts

# ===== TREND =====

def get_trend(metric_id: str, entries: List[Dict[str, Any]], window_days: int = 7) -> MetricTrend:
    recent = sorted(
        (e for e in entries if e.get('metricId') == metric_id),
        key=lambda e: sort_key(e.get('date')),
        reverse=True
    )[:window_days]

    if len(recent) < 3:
        return MetricTrend.STABLE

    green_rate = sum(1 for e in recent if e.get('status') == MetricStatus.GREEN.value) / len(recent)
    red_rate = sum(1 for e in recent if e.get('status') == MetricStatus.RED.value) / len(recent)

    if green_rate >= 0.6:
        return MetricTrend.IMPROVING
    if red_rate >= 0.6:
        return MetricTrend.DECLINING
    return MetricTrend.STABLE

# ===== DEFAULTS =====

def _default_metric(metric_id, name, category, frequency, direction, unit, source_note,
                    guardrails, action_if_yellow, action_if_red, created_at):
    return {
        'id': metric_id,
        'name': name,
        'category': category,
        'frequency': frequency,
        'direction': direction,
        'unit': unit,
        'sourceNote': source_note,
        'guardrails': guardrails,
        'playbook': {
            'actionIfYellow': action_if_yellow,
            'actionIfRed': action_if_red,
        },
        'isActive': True,
        'createdAt': created_at,
    }

def create_default_metrics() -> List[Dict[str, Any]]:
    """Seis métricas iniciais, duas por categoria. Não grava nada."""
    now = now_iso()

    return [
        _default_metric(
            'default-leads', 'Leads novos', 'Operação', 'daily', 'higher_better',
            'leads', 'Planilha comercial / CRM',
            {'green': {'min': 10}, 'yellow': {'min': 5}, 'red': {'min': 0}},
            'Revisar canais de aquisição e ajustar CTAs',
            'Avisar comercial + puxar lista quente + ajustar CTA do dia',
            now,
        ),
        _default_metric(
            'default-delays', 'Tarefas críticas atrasadas', 'Operação', 'daily', 'lower_better',
            'tarefas', 'Sistema de gestão / Planilha de acompanhamento',
            {'green': {'max': 0}, 'yellow': {'max': 2}, 'red': {'max': 999}},
            'Revisar prioridades e realocar recursos se necessário',
            'Redistribuir carga imediatamente ou escalar para liderança',
            now,
        ),
        _default_metric(
            'default-posts', 'Posts publicados', 'Conteúdo', 'weekly', 'higher_better',
            'posts', 'Instagram / LinkedIn / Redes sociais',
            {'green': {'min': 5}, 'yellow': {'min': 3}, 'red': {'min': 0}},
            'Revisar calendário editorial e simplificar formatos',
            'Pausar outras atividades e focar em conteúdo essencial',
            now,
        ),
        _default_metric(
            'default-engagement', 'Salvamentos + Compartilhamentos', 'Conteúdo', 'weekly',
            'higher_better', 'interações', 'Instagram Insights / Analytics',
            {'green': {'min': 50}, 'yellow': {'min': 20}, 'red': {'min': 0}},
            'Testar novos formatos e revisar propósito do conteúdo',
            'Revisar estratégia completa: formato, distribuição e propósito',
            now,
        ),
        _default_metric(
            'default-meetings', 'Agendamentos', 'Comercial', 'daily', 'higher_better',
            'reuniões', 'Calendário / CRM',
            {'green': {'min': 3}, 'yellow': {'min': 1}, 'red': {'min': 0}},
            'Ativar outbound e revisar follow-ups pendentes',
            'Campanha intensiva de reativação + prospecção ativa',
            now,
        ),
        _default_metric(
            'default-sales', 'Vendas fechadas', 'Comercial', 'weekly', 'higher_better',
            'vendas', 'CRM / Planilha de vendas',
            {'green': {'min': 5}, 'yellow': {'min': 2}, 'red': {'min': 0}},
            'Revisar pipeline e acelerar negociações em andamento',
            'Reunião de emergência comercial + revisar objeções comuns',
            now,
        ),
    ]

def seed_default_metrics(store) -> List[Dict[str, Any]]:
    """Grava as métricas padrão se o usuário ainda não tiver nenhuma"""
    metrics = store.get_anchor_metrics()
    if metrics:
        return metrics

    for metric in create_default_metrics():
        store.save_anchor_metric(metric)

    logger.info("Métricas padrão criadas para primeiro uso")
    return store.get_anchor_metrics()


__all__ = [
    'calculate_status',
    'check_guardrails',
    'build_metric_entry',
    'get_red_alerts',
    'get_trend',
    'create_default_metrics',
    'seed_default_metrics'
]
