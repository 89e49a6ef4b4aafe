"""
Testes do montador de contexto da IA e do mapeamento de erros do provedor.
"""

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from config import AIConfig
from services.ai_service import (
    AIService, AIAuthError, AIRateLimitError, AIProviderError, SYSTEM_PROMPT, build_context
)
from helpers import days_ago, make_check, make_plan, make_metric, make_entry


REQUEST = httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')


class FakeCompletions:

    def __init__(self, content='Tudo sob controle.', error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _service(completions):
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return AIService(AIConfig(openai_api_key='sk-test'), client=client)


def _ask(service):
    return asyncio.run(service.chat([{'role': 'user', 'content': 'Como estou?'}], 'contexto'))


class TestBuildContext:

    def test_empty_store(self, store):
        context = build_context(store, today=days_ago(0))
        assert 'Usuário ainda não fez o check hoje.' in context
        assert 'Nenhuma métrica configurada.' in context
        assert 'Nenhum plano semanal ativo.' in context

    def test_sections_filled(self, store):
        store.save_daily_check(make_check(days_ago(0), hasBottleneck=True, bottleneckDescription='Fornecedor'))
        store.save_daily_check(make_check(days_ago(1), operationStatus='red'))
        store.save_weekly_plan(make_plan('2026-10-12', centerOfWeek='Antigo'))
        store.save_weekly_plan(make_plan('2026-10-19', centerOfWeek='Lançamento'))
        store.save_anchor_metric(make_metric('m1', 'Leads novos'))
        store.save_anchor_metric(make_metric('m2', 'Vendas fechadas'))
        store.save_metric_entry(make_entry('m1', days_ago(0), value=4))

        context = build_context(store, today=days_ago(0))

        assert 'Gargalo Detectado: Sim - Fornecedor' in context
        assert 'Leads novos: 4' in context
        assert 'Vendas fechadas: Pendente' in context
        assert 'Foco da Semana: Lançamento' in context
        assert f"{days_ago(1)}: Op=red" in context


class TestAIService:

    def test_payload_order_and_reply(self):
        completions = FakeCompletions(content='  Tudo sob controle.  ')
        reply = _ask(_service(completions))

        assert reply == {'role': 'assistant', 'content': 'Tudo sob controle.'}
        messages = completions.calls[0]['messages']
        assert messages[0] == {'role': 'system', 'content': SYSTEM_PROMPT}
        assert messages[1]['content'] == 'DADOS ATUAIS DO USUÁRIO:\ncontexto'
        assert messages[2] == {'role': 'user', 'content': 'Como estou?'}
        assert completions.calls[0]['model'] == 'gpt-4o'

    def test_disabled_without_key(self):
        service = AIService(AIConfig())
        assert not service.enabled
        with pytest.raises(AIAuthError):
            _ask(service)

    def test_rate_limit_mapped(self):
        error = openai.RateLimitError('slow down', response=httpx.Response(429, request=REQUEST), body=None)
        with pytest.raises(AIRateLimitError) as exc:
            _ask(_service(FakeCompletions(error=error)))
        assert exc.value.status_code == 429

    def test_authentication_mapped(self):
        error = openai.AuthenticationError('bad key', response=httpx.Response(401, request=REQUEST), body=None)
        with pytest.raises(AIAuthError) as exc:
            _ask(_service(FakeCompletions(error=error)))
        assert exc.value.status_code == 401

    def test_connection_error_mapped(self):
        error = openai.APIConnectionError(request=REQUEST)
        with pytest.raises(AIProviderError) as exc:
            _ask(_service(FakeCompletions(error=error)))
        assert exc.value.status_code == 503
