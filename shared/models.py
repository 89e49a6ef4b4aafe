#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Schemas de fronteira
Modelos pydantic para validação de requisições, comandos da IA e importações

Versão: 1.0.0
Data: 2026-10-19
"""

from datetime import datetime
from typing import List, Optional, Dict, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.models import (
    OperationStatus, ContentStatus, CommercialAlignment, TomorrowTrend,
    ContentPurpose, ProjectDependency, MetricCategory, MetricFrequency,
    MetricDirection, MetricStatus, SyncDirection
)

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _check_calendar_date(v: str) -> str:
    try:
        datetime.strptime(v, "%Y-%m-%d")
    except ValueError:
        raise ValueError('Data deve estar no formato YYYY-MM-DD')
    return v


class CamelModel(BaseModel):
    """Atributos snake_case, JSON camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# Check diário
class DailyCheckSchema(CamelModel):
    date: str = Field(pattern=DATE_PATTERN)
    operation_status: OperationStatus
    content_status: ContentStatus
    commercial_alignment: CommercialAlignment
    has_bottleneck: bool
    bottleneck_description: Optional[str] = None
    tomorrow_trend: TomorrowTrend

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        return _check_calendar_date(v)

    @field_validator('bottleneck_description')
    @classmethod
    def validate_bottleneck(cls, v):
        if v is not None and len(v) > 140:
            raise ValueError('Descrição do gargalo deve ter no máximo 140 caracteres')
        return v


# Plano semanal
class ProjectSchema(CamelModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    is_advancing: bool
    depends_on: ProjectDependency
    next_step_clear: bool


class ContentPlan(CamelModel):
    theme: str = ""
    purpose: ContentPurpose


class CommercialPlan(CamelModel):
    focus_clear: bool
    has_active_actions: bool


class WeeklyPlanSchema(CamelModel):
    week_start: str = Field(pattern=DATE_PATTERN)
    center_of_week: str = Field(min_length=1)
    projects: List[ProjectSchema] = []
    content: ContentPlan
    commercial: CommercialPlan

    @field_validator('week_start')
    @classmethod
    def validate_week_start(cls, v):
        v = _check_calendar_date(v)
        if datetime.strptime(v, "%Y-%m-%d").weekday() != 0:
            raise ValueError('Início da semana deve ser uma segunda-feira')
        return v


# Registro de impacto
class ImpactLogSchema(CamelModel):
    date: str = Field(pattern=DATE_PATTERN)
    operation: List[str] = []
    content: List[str] = []
    commercial: List[str] = []
    reflection: str = ""

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        return _check_calendar_date(v)


# Números âncora
class GuardrailBound(CamelModel):
    min: Optional[float] = None
    max: Optional[float] = None


class Guardrails(CamelModel):
    green: GuardrailBound = GuardrailBound()
    yellow: GuardrailBound = GuardrailBound()
    red: GuardrailBound = GuardrailBound()


class Playbook(CamelModel):
    action_if_yellow: str = ""
    action_if_red: str = ""


class AnchorMetricSchema(CamelModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: MetricCategory
    frequency: MetricFrequency
    direction: MetricDirection
    unit: str = ""
    source_note: str = ""
    guardrails: Guardrails
    playbook: Playbook = Playbook()
    is_active: bool = True
    created_at: str


class MetricEntrySchema(CamelModel):
    """Entrada de métrica recebida pela API (updatedAt é carimbado no servidor)"""
    metric_id: str = Field(min_length=1)
    date: str = Field(pattern=DATE_PATTERN)
    value: float
    status: MetricStatus
    addressed: Optional[bool] = None

    @field_validator('date')
    @classmethod
    def validate_date(cls, v):
        return _check_calendar_date(v)


# Chat
class ChatMessage(CamelModel):
    role: Literal['user', 'assistant', 'system']
    content: str = Field(min_length=1)


class ChatRequestSchema(CamelModel):
    messages: List[ChatMessage]
    context: Optional[str] = None


class AICommandSchema(CamelModel):
    action: str = Field(min_length=1)
    data: Dict[str, Any] = {}


# Sincronização
class SyncRequestSchema(CamelModel):
    user_id: str = Field(min_length=1)
    direction: SyncDirection = SyncDirection.BOTH
