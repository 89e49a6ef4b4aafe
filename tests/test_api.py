"""
Testes da API HTTP via TestClient do FastAPI.

Os componentes são injetados em create_app: armazenamento em memória, motor
de sincronização sobre o banco remoto falso e uma IA roteirizada.
"""

import json

import pytest
from fastapi.testclient import TestClient

from config import AppConfig, AIConfig, ConfigurationError
from core.storage import LocalStore, MemoryBackend
from core.sync import SyncEngine
from dashboard.app import create_app
from services.ai_service import AIService, AIRateLimitError
from utils.datetime_utils import today_str
from helpers import FakeRemoteStore, make_check, make_metric


class FakeAIService:
    """Devolve respostas roteirizadas e guarda o que recebeu"""

    enabled = True

    def __init__(self):
        self.replies = []
        self.error = None
        self.received = []

    async def chat(self, messages, context):
        self.received.append((messages, context))
        if self.error:
            raise self.error
        return {'role': 'assistant', 'content': self.replies.pop(0)}


@pytest.fixture
def local_store():
    return LocalStore(MemoryBackend())


@pytest.fixture
def ai():
    return FakeAIService()


@pytest.fixture
def fake_remote():
    return FakeRemoteStore()


@pytest.fixture
def client(tmp_path, local_store, ai, fake_remote, fake_sleep):
    config = AppConfig(env={'DATA_DIR': str(tmp_path)})
    engine = SyncEngine(local_store, fake_remote, sleep=fake_sleep)
    app = create_app(config, store=local_store, sync_engine=engine, ai_service=ai)
    return TestClient(app)


def _command(action, data):
    return f"__JSON_START__ {json.dumps({'action': action, 'data': data})} __JSON_END__"


class TestMetricsEndpoints:

    def test_post_recomputes_status_for_known_metric(self, client, local_store):
        local_store.save_anchor_metric(make_metric('m-leads'))

        response = client.post('/api/metrics', json={
            'metricId': 'm-leads', 'date': today_str(), 'value': 3, 'status': 'green'
        })

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['data']['message'] == 'Métrica salva com sucesso'
        assert body['data']['entry']['status'] == 'red'
        assert body['data']['entry']['updatedAt']

    def test_post_unknown_metric_kept_as_sent(self, client, local_store):
        response = client.post('/api/metrics', json={
            'metricId': 'ghost', 'date': '2026-10-19', 'value': 1, 'status': 'yellow'
        })
        assert response.json()['data']['entry']['status'] == 'yellow'
        assert len(local_store.get_metric_entries()) == 1

    def test_post_invalid_body(self, client, local_store):
        response = client.post('/api/metrics', json={
            'metricId': 'm-leads', 'date': '19/10/2026', 'value': 'muitos', 'status': 'green'
        })

        assert response.status_code == 400
        error = response.json()['error']
        assert error['type'] == 'validation_error'
        fields = {d['field'] for d in error['details']}
        assert {'date', 'value'} <= fields
        assert local_store.get_metric_entries() == []

    def test_get_filtered_by_metric(self, client):
        for metric_id in ('a', 'b'):
            client.post('/api/metrics', json={
                'metricId': metric_id, 'date': '2026-10-19', 'value': 1, 'status': 'red'
            })

        all_data = client.get('/api/metrics').json()['data']
        assert len(all_data['entries']) == 2

        filtered = client.get('/api/metrics', params={'metricId': 'a'}).json()['data']
        assert filtered['metricId'] == 'a'
        assert [e['metricId'] for e in filtered['entries']] == ['a']


class TestExportImport:

    def test_export_json_attachment(self, client, local_store):
        local_store.save_daily_check(make_check(today_str()))

        response = client.get('/api/export')

        assert response.status_code == 200
        assert 'attachment' in response.headers['content-disposition']
        assert f"antigravity_export_{today_str()}.json" in response.headers['content-disposition']
        assert response.json()['dailyChecks'][0]['date'] == today_str()

    def test_other_format_placeholder(self, client):
        body = client.get('/api/export', params={'format': 'csv'}).json()
        assert body['success'] is True
        assert 'csv' in body['data']['message']
        assert body['data']['data']['anchorMetrics'] == []

    def test_import_valid_document(self, client, local_store):
        document = json.dumps({'anchorMetrics': [make_metric('m1')]})
        response = client.post('/api/import', content=document)

        assert response.status_code == 200
        assert [m['id'] for m in local_store.get_anchor_metrics()] == ['m1']

    def test_import_with_malformed_records_keeps_api_working(self, client, local_store):
        response = client.post('/api/import', content=json.dumps({'dailyChecks': [1, 'x']}))
        assert response.status_code == 200
        assert local_store.get_daily_checks() == []

        assert client.get('/api/alerts').status_code == 200
        assert client.get('/api/radar').status_code == 200

    def test_import_invalid_document(self, client):
        response = client.post('/api/import', content='isso não é json')
        assert response.status_code == 400
        assert response.json()['error']['type'] == 'validation_error'


class TestSyncEndpoints:

    def test_post_runs_push_then_pull(self, client, local_store, fake_remote):
        local_store.save_daily_check(make_check(today_str()))

        response = client.post('/api/sync', json={'userId': 'u1'})

        assert response.status_code == 200
        data = response.json()['data']
        assert data['message'] == 'Sincronização concluída com sucesso'
        assert [r['direction'] for r in data['reports']] == ['push', 'pull']
        assert ('u1', today_str()) in fake_remote.tables['daily_checks']

    def test_partial_failure_reported(self, client, local_store, fake_remote):
        local_store.save_daily_check(make_check(today_str()))
        fake_remote.failures['daily_checks'] = None

        data = client.post('/api/sync', json={'userId': 'u1', 'direction': 'push'}).json()['data']
        assert 'falhas' in data['message']

    def test_get_status_and_trigger(self, client):
        assert client.get('/api/sync').json()['data']['syncCount'] == 0

        data = client.get('/api/sync', params={'userId': 'u1', 'direction': 'pull'}).json()['data']
        assert [r['direction'] for r in data['reports']] == ['pull']
        assert client.get('/api/sync').json()['data']['syncCount'] == 1

    def test_missing_user_id(self, client):
        response = client.post('/api/sync', json={})
        assert response.status_code == 400
        assert response.json()['error']['type'] == 'validation_error'


class TestChatEndpoint:

    def test_reply_with_command_applied(self, client, local_store, ai):
        ai.replies.append('Anotado, cuide-se. ' + _command('UPDATE_DAILY_CHECK', {'operationStatus': 'red'}))

        response = client.post('/api/chat', json={'messages': [{'role': 'user', 'content': 'Dia pesado'}]})

        assert response.status_code == 200
        data = response.json()['data']
        assert data['content'] == 'Anotado, cuide-se.'
        assert data['command']['applied'] is True
        assert local_store.get_daily_check(today_str())['operationStatus'] == 'red'

        messages, context = ai.received[0]
        assert messages == [{'role': 'user', 'content': 'Dia pesado'}]
        assert 'CONTEXTO ATUAL' in context

    def test_client_context_passed_through(self, client, ai):
        ai.replies.append('Ok')
        client.post('/api/chat', json={'messages': [{'role': 'user', 'content': 'oi'}], 'context': 'resumo'})
        assert ai.received[0][1] == 'resumo'
        assert len(ai.received) == 1

    def test_unknown_metric_reported_not_applied(self, client, local_store, ai):
        ai.replies.append(_command('UPDATE_METRIC_ENTRY', {'metricName': 'faturamento', 'value': 10}))

        data = client.post('/api/chat', json={'messages': [{'role': 'user', 'content': 'x'}]}).json()['data']

        assert data['command']['applied'] is False
        assert 'faturamento' in data['command']['error']
        assert local_store.get_metric_entries() == []

    def test_malformed_plan_command_keeps_reply(self, client, local_store, ai):
        ai.replies.append('Plano anotado. ' + _command('UPDATE_WEEKLY_PLAN', {'content': 'tema'}))

        response = client.post('/api/chat', json={'messages': [{'role': 'user', 'content': 'x'}]})

        assert response.status_code == 200
        data = response.json()['data']
        assert data['content'] == 'Plano anotado.'
        assert data['command']['applied'] is False
        assert data['command']['details'][0]['field'] == 'content'
        assert local_store.get_weekly_plans() == []

    def test_plain_reply_has_no_command(self, client, ai):
        ai.replies.append('Respire fundo.')
        data = client.post('/api/chat', json={'messages': [{'role': 'user', 'content': 'x'}]}).json()['data']
        assert data['command'] is None

    def test_rate_limit_mapped(self, client, ai):
        ai.error = AIRateLimitError()
        response = client.post('/api/chat', json={'messages': [{'role': 'user', 'content': 'x'}]})

        assert response.status_code == 429
        assert response.json()['error']['type'] == 'rate_limit_exceeded'

    def test_missing_api_key_is_auth_error(self, tmp_path, local_store, fake_remote, fake_sleep):
        app = create_app(AppConfig(env={'DATA_DIR': str(tmp_path)}), store=local_store,
                         sync_engine=SyncEngine(local_store, fake_remote, sleep=fake_sleep),
                         ai_service=AIService(AIConfig()))
        response = TestClient(app).post('/api/chat', json={'messages': [{'role': 'user', 'content': 'x'}]})

        assert response.status_code == 401
        assert 'OPENAI_API_KEY' in response.json()['error']['message']

    def test_invalid_role_rejected(self, client):
        response = client.post('/api/chat', json={'messages': [{'role': 'robot', 'content': 'x'}]})
        assert response.status_code == 400


class TestAlertsEndpoints:

    def test_no_planning_alert_and_dismiss(self, client):
        alerts = client.get('/api/alerts').json()['data']['alerts']
        assert 'no-planning' in [a['id'] for a in alerts]

        response = client.post('/api/alerts/no-planning/dismiss')
        assert response.json()['data'] == {'alertId': 'no-planning', 'dismissed': True}

        alerts = client.get('/api/alerts').json()['data']['alerts']
        assert 'no-planning' not in [a['id'] for a in alerts]

    def test_radar_lists_red_entries(self, client, local_store):
        local_store.save_anchor_metric(make_metric('m-leads'))
        client.post('/api/metrics', json={'metricId': 'm-leads', 'date': today_str(), 'value': 2, 'status': 'red'})

        data = client.get('/api/radar').json()['data']

        assert data['date'] == today_str()
        assert [r['metricId'] for r in data['redAlerts']] == ['m-leads']
        assert data['redAlerts'][0]['action'] == 'Avisar comercial'

    def test_radar_invalid_date(self, client):
        response = client.get('/api/radar', params={'date': 'ontem'})
        assert response.status_code == 400


class TestAppLevel:

    def test_health(self, client):
        body = client.get('/health').json()
        assert body['success'] is True
        data = body['data']
        assert data['status'] == 'healthy'
        assert data['ai_enabled'] is True
        assert data['sync']['status']
        assert 'X-Process-Time' in client.get('/health').headers

    def test_not_found_uses_envelope(self, client):
        response = client.get('/api/nada')
        assert response.status_code == 404
        assert response.json()['error']['type'] == 'not_found'

    def test_lifespan_logs_config_without_secrets(self, tmp_path, local_store, fake_remote, fake_sleep, caplog):
        config = AppConfig(env={'DATA_DIR': str(tmp_path), 'OPENAI_API_KEY': 'sk-test'})
        app = create_app(config, store=local_store,
                         sync_engine=SyncEngine(local_store, fake_remote, sleep=fake_sleep))

        with caplog.at_level('DEBUG', logger='dashboard.app'):
            with TestClient(app) as lifespan_client:
                assert lifespan_client.get('/health').status_code == 200

        assert "'ai_enabled': True" in caplog.text
        assert 'sk-test' not in caplog.text
        assert fake_remote.closed is True

    def test_startup_requires_remote_credentials(self, tmp_path, local_store):
        with pytest.raises(ConfigurationError):
            create_app(AppConfig(env={'DATA_DIR': str(tmp_path)}), store=local_store)
