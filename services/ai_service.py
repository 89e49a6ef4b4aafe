"""
Serviço de chat com o provedor de IA (OpenAI)
"""

import logging
from typing import List, Dict, Optional, Any

import openai
from openai import AsyncOpenAI

from config import AIConfig
from core.storage import LocalStore
from core.commands import JSON_START, JSON_END
from utils.datetime_utils import today_str, sort_key

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class AIServiceError(Exception):
    """Erro base do serviço de IA"""
    status_code = 503
    user_message = "Serviço de IA indisponível no momento. Tente novamente em instantes."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)

class AIAuthError(AIServiceError):
    status_code = 401
    user_message = "Chave da API inválida ou ausente. Verifique a configuração do OPENAI_API_KEY."

class AIRateLimitError(AIServiceError):
    status_code = 429
    user_message = "Limite de requisições atingido. Aguarde alguns instantes e tente novamente."

class AIProviderError(AIServiceError):
    pass

# ===== PROMPTS =====

SYSTEM_PROMPT = f"""
Você é o Agente de Inteligência do "ANTIGRAVITY — Centro de Gravidade".
Sua missão é ser um mentor estratégico (CTO/Product Designer sênior) calmo e focado em clareza mental.

DIRETRIZES DE ESTILO:
- Tom de voz: Calmo, protetivo, sem pressa, sem julgamento.
- Linguagem: Direta, técnica mas humana.
- Objetivo: Remover a névoa mental e dar clareza.

ESTRUTURA DE ANÁLISE (Siga rigorosamente):
1. O QUE OLHAR E POR QUÊ:
- Tarefas Atrasadas: Afetam entregas e confiança. Alerta se >24h.
- Entregas do Dia: Garante cadência. Alerta se <80% às 16h.
- Posts Publicados: Consistência de funil. Alerta se 2+ dias abaixo do plano.
- Alcance Total: Indica distribuição. Alerta se queda >20% vs média.
- Salvamentos + Compartilhamentos: Sinal de valor. Alerta se taxa < benchmark por 3 dias.
- Leads Novos: Abastece funil. Alerta se abaixo da meta diária.
- Agendamentos: Ponte lead/venda. Alerta se taxa baixa vs leads.
- Vendas (R$): Caixa e meta. Alerta se queda consecutiva ou ticket médio caindo.

SINAIS DE ALERTA SUPREMOS:
- Execução escorregando (atrasos recorrentes).
- Consistência de conteúdo quebrando.
- Funil comercial entupindo.
- Riscos operacionais acumulando.

Ao analisar os dados, sempre forneça:
- Uma breve visão estratégica.
- Alertas críticos (Radar de Vermelhos).
- Ação sugerida baseada em "proteger crescimento e receita".

ATUALIZAÇÃO DE DADOS:
Quando o usuário pedir para registrar algo, inclua no fim da resposta UM único bloco:
{JSON_START} {{"action": "<AÇÃO>", "data": {{...}}}} {JSON_END}
Ações disponíveis:
- UPDATE_DAILY_CHECK: campos do check de hoje (operationStatus, contentStatus, commercialAlignment, hasBottleneck, bottleneckDescription, tomorrowTrend)
- UPDATE_METRIC_ENTRY: {{"metricName": "...", "value": 0}}
- UPDATE_WEEKLY_PLAN: campos do plano da semana atual (centerOfWeek, projects, content, commercial)
- ADD_IMPACT_LOG: {{"category": "operation|content|commercial", "reflection": "..."}}

Use Markdown. Nunca use tom acusatório. Sempre sugira cuidado, não cobrança.
"""

def build_context(store: LocalStore, today: Optional[str] = None) -> str:
    """Resumo em texto do estado atual do usuário para o assistente"""
    today = today or today_str()
    daily_checks = sorted(store.get_daily_checks(), key=lambda c: sort_key(c.get('date')))
    weekly_plans = sorted(store.get_weekly_plans(), key=lambda p: sort_key(p.get('weekStart')))
    metrics = store.get_anchor_metrics()
    today_entries = store.get_entries_for_date(today)

    today_check = next((c for c in daily_checks if c.get('date') == today), None)
    recent_checks = daily_checks[-7:]

    lines = [f"# CONTEXTO ATUAL DO USUÁRIO ({today})", "", "## 1. CHECK DIÁRIO (HOJE)"]
    if today_check:
        bottleneck = ('Sim - ' + (today_check.get('bottleneckDescription') or '')
                      if today_check.get('hasBottleneck') else 'Não')
        lines += [
            f"- Status Operação: {today_check.get('operationStatus')}",
            f"- Status Conteúdo: {today_check.get('contentStatus')}",
            f"- Alinhamento Comercial: {today_check.get('commercialAlignment')}",
            f"- Gargalo Detectado: {bottleneck}",
            f"- Tendência para Amanhã: {today_check.get('tomorrowTrend')}",
        ]
    else:
        lines.append("Usuário ainda não fez o check hoje.")

    lines += ["", "## 2. NÚMEROS ÂNCORA (HOJE)"]
    if metrics:
        for metric in metrics:
            entry = next((e for e in today_entries if e.get('metricId') == metric.get('id')), None)
            value = entry.get('value') if entry else 'Pendente'
            status = entry.get('status') if entry else 'N/A'
            lines.append(f"- {metric.get('name')}: {value} {metric.get('unit', '')} (Status: {status})")
    else:
        lines.append("Nenhuma métrica configurada.")

    lines += ["", "## 3. PLANO SEMANAL"]
    if weekly_plans:
        plan = weekly_plans[-1]
        content = plan.get('content') or {}
        lines += [
            f"- Foco da Semana: {plan.get('centerOfWeek')}",
            f"- Tema de Conteúdo: {content.get('theme')}",
            f"- Propósito: {content.get('purpose')}",
        ]
    else:
        lines.append("Nenhum plano semanal ativo.")

    lines += ["", "## 4. HISTÓRICO RECENTE (7 DIAS)"]
    lines += [
        f"- {c.get('date')}: Op={c.get('operationStatus')}, "
        f"Cont={c.get('contentStatus')}, Com={c.get('commercialAlignment')}"
        for c in recent_checks
    ]

    return "\n".join(lines)

# ===== SERVICE =====

class AIService:
    """Chat com o provedor de IA"""

    def __init__(self, config: AIConfig, client: Optional[AsyncOpenAI] = None):
        self.config = config
        self.client = client

        if self.client is None and config.openai_api_key:
            self.client = AsyncOpenAI(api_key=config.openai_api_key, timeout=config.request_timeout)
            logger.info("🤖 AI serviço inicializado")
        elif self.client is None:
            logger.warning("⚠️ AI serviço desabilitado (sem OPENAI_API_KEY)")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def chat(self, messages: List[Dict[str, str]], context: str) -> Dict[str, Any]:
        """Envia a conversa com o contexto; devolve {role, content}"""
        if not self.enabled:
            raise AIAuthError()

        payload = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "system", "content": f"DADOS ATUAIS DO USUÁRIO:\n{context}"},
            *messages,
        ]

        try:
            response = await self.client.chat.completions.create(
                model=self.config.openai_model,
                messages=payload,
                temperature=self.config.temperature,
            )
        except openai.AuthenticationError as e:
            logger.error(f"❌ OpenAI recusou a chave: {e}")
            raise AIAuthError() from e
        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit: {e}")
            raise AIRateLimitError() from e
        except openai.OpenAIError as e:
            logger.error(f"❌ Erro no provedor de IA: {e}")
            raise AIProviderError() from e

        content = response.choices[0].message.content or ""
        return {"role": "assistant", "content": content.strip()}


__all__ = [
    'AIServiceError',
    'AIAuthError',
    'AIRateLimitError',
    'AIProviderError',
    'SYSTEM_PROMPT',
    'build_context',
    'AIService'
]
