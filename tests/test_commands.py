"""
Testes da leitura dos comandos da IA e da sua aplicação no armazenamento local.
"""

import json

import pytest

from core.commands import (
    AICommand, CommandExecutor, CommandValidationError, MetricNotFoundError,
    find_metric, parse_command, strip_command
)
from helpers import FIXED_NOW, days_ago, make_check, make_metric


def _block(payload):
    return f"Feito! __JSON_START__ {json.dumps(payload)} __JSON_END__"


@pytest.fixture
def executor(store):
    store.save_anchor_metric(make_metric('m-leads', 'Leads novos'))
    store.save_anchor_metric(make_metric('m-delays', 'Tarefas críticas atrasadas', direction='lower_better',
                                         guardrails={'green': {'max': 0}, 'yellow': {'max': 2}, 'red': {}}))
    return CommandExecutor(store, clock=lambda: FIXED_NOW)


class TestParsing:

    def test_parse_command_block(self):
        command = parse_command(_block({'action': 'UPDATE_DAILY_CHECK', 'data': {'hasBottleneck': True}}))
        assert command == AICommand('UPDATE_DAILY_CHECK', {'hasBottleneck': True})

    def test_multiline_block(self):
        text = 'Ok.\n__JSON_START__\n{\n  "action": "ADD_IMPACT_LOG",\n  "data": {}\n}\n__JSON_END__\n'
        assert parse_command(text).action == 'ADD_IMPACT_LOG'

    def test_absent_or_malformed_block(self):
        assert parse_command('Sem comando aqui.') is None
        assert parse_command('__JSON_START__ {oops __JSON_END__') is None
        assert parse_command('__JSON_START__ {"data": {}} __JSON_END__') is None
        assert parse_command('') is None

    def test_strip_command(self):
        assert strip_command(_block({'action': 'X', 'data': {}})) == 'Feito!'
        assert strip_command('Só texto') == 'Só texto'


class TestFuzzyMatch:

    def test_exact_match_preferred(self):
        metrics = [make_metric('a', 'Leads novos qualificados'), make_metric('b', 'Leads novos')]
        assert find_metric(metrics, 'leads novos')['id'] == 'b'

    def test_substring_match(self):
        assert find_metric([make_metric('a', 'Leads novos')], 'leads')['id'] == 'a'

    def test_no_match(self):
        assert find_metric([make_metric('a', 'Leads novos')], 'vendas') is None


class TestUpdateMetricEntry:

    def test_matches_by_substring_and_recomputes_status(self, executor, store):
        record = executor.execute(AICommand('UPDATE_METRIC_ENTRY',
                                            {'metricName': 'leads', 'value': 3, 'status': 'green'}))

        assert record['metricId'] == 'm-leads'
        assert record['status'] == 'red'
        assert record['date'] == days_ago(0)
        assert store.get_entries_for_metric('m-leads') == [record]

    def test_unknown_metric_raises(self, executor, store):
        with pytest.raises(MetricNotFoundError):
            executor.execute(AICommand('UPDATE_METRIC_ENTRY', {'metricName': 'faturamento', 'value': 1}))
        assert store.get_metric_entries() == []

    def test_value_must_be_numeric(self, executor):
        with pytest.raises(CommandValidationError):
            executor.execute(AICommand('UPDATE_METRIC_ENTRY', {'metricName': 'leads', 'value': 'dez'}))

    def test_explicit_date(self, executor):
        record = executor.execute(AICommand('UPDATE_METRIC_ENTRY',
                                            {'metricName': 'atrasadas', 'value': 1, 'date': days_ago(2)}))
        assert record['date'] == days_ago(2)
        assert record['status'] == 'yellow'

    @pytest.mark.parametrize('date', ['2026-10-19junk', '2026-10-19T10:00:00', '2026-13-01', 20261019])
    def test_malformed_date_rejected(self, executor, store, date):
        with pytest.raises(CommandValidationError) as exc:
            executor.execute(AICommand('UPDATE_METRIC_ENTRY', {'metricName': 'leads', 'value': 4, 'date': date}))
        assert exc.value.details[0]['field'] == 'date'
        assert store.get_metric_entries() == []


class TestUpdateDailyCheck:

    def test_merges_onto_todays_check(self, executor, store):
        store.save_daily_check(make_check(days_ago(0), tomorrowTrend='better'))

        record = executor.execute(AICommand('UPDATE_DAILY_CHECK',
                                            {'operationStatus': 'red', 'date': '2020-01-01'}))

        assert record['date'] == days_ago(0)
        assert record['operationStatus'] == 'red'
        assert record['tomorrowTrend'] == 'better'
        assert store.get_daily_check(days_ago(0))['operationStatus'] == 'red'

    def test_creates_check_with_defaults(self, executor, store):
        executor.execute(AICommand('UPDATE_DAILY_CHECK', {'hasBottleneck': True,
                                                          'bottleneckDescription': 'Fornecedor'}))
        check = store.get_daily_check(days_ago(0))
        assert check['hasBottleneck'] is True
        assert check['operationStatus'] == 'green'

    def test_invalid_value_rejected(self, executor, store):
        with pytest.raises(CommandValidationError) as exc:
            executor.execute(AICommand('UPDATE_DAILY_CHECK', {'operationStatus': 'purple'}))
        assert exc.value.details
        assert store.get_daily_checks() == []

    def test_bottleneck_description_limit(self, executor):
        with pytest.raises(CommandValidationError):
            executor.execute(AICommand('UPDATE_DAILY_CHECK', {'bottleneckDescription': 'x' * 141}))


class TestUpdateWeeklyPlan:

    def test_current_week_with_generated_project_ids(self, executor, store):
        record = executor.execute(AICommand('UPDATE_WEEKLY_PLAN', {
            'centerOfWeek': 'Lançamento',
            'content': {'theme': 'Bastidores'},
            'projects': [{'name': 'Site', 'isAdvancing': True, 'dependsOn': 'me', 'nextStepClear': True}],
        }))

        assert record['weekStart'] == '2026-10-19'
        assert record['content'] == {'theme': 'Bastidores', 'purpose': 'grow'}
        assert record['projects'][0]['id']
        assert store.get_weekly_plan('2026-10-19') == record

    @pytest.mark.parametrize('data, field', [
        ({'centerOfWeek': 'Foco', 'content': 'tema'}, 'content'),
        ({'centerOfWeek': 'Foco', 'commercial': ['x']}, 'commercial'),
        ({'centerOfWeek': 'Foco', 'projects': 3}, 'projects'),
        ({'centerOfWeek': 'Foco', 'projects': ['Site']}, 'projects'),
    ])
    def test_wrongly_shaped_sections_rejected(self, executor, store, data, field):
        with pytest.raises(CommandValidationError) as exc:
            executor.execute(AICommand('UPDATE_WEEKLY_PLAN', data))
        assert exc.value.details[0]['field'] == field
        assert store.get_weekly_plans() == []

    def test_empty_center_rejected_for_new_plan(self, executor):
        with pytest.raises(CommandValidationError):
            executor.execute(AICommand('UPDATE_WEEKLY_PLAN', {'content': {'theme': 'x'}}))


class TestAddImpactLog:

    def test_reflection_tagged_to_one_category(self, executor, store):
        executor.execute(AICommand('ADD_IMPACT_LOG', {'category': 'content', 'reflection': 'Post viralizou'}))
        executor.execute(AICommand('ADD_IMPACT_LOG', {'category': 'content', 'reflection': 'Reels novo'}))

        log = store.get_impact_log(days_ago(0))
        assert log['content'] == ['Post viralizou', 'Reels novo']
        assert log['operation'] == []
        assert log['commercial'] == []

    def test_invalid_category(self, executor):
        with pytest.raises(CommandValidationError):
            executor.execute(AICommand('ADD_IMPACT_LOG', {'category': 'finance', 'reflection': 'x'}))


class TestExecutor:

    def test_unknown_action_ignored(self, executor, store):
        metrics = store.get_anchor_metrics()
        assert executor.execute(AICommand('DELETE_EVERYTHING', {})) is None
        assert store.get_daily_checks() == []
        assert store.get_metric_entries() == []
        assert store.get_anchor_metrics() == metrics

    def test_listeners_notified(self, executor):
        seen = []
        executor.add_listener(lambda action, record: seen.append((action, record['date'])))
        executor.execute(AICommand('UPDATE_DAILY_CHECK', {'operationStatus': 'yellow'}))
        assert seen == [('UPDATE_DAILY_CHECK', days_ago(0))]

    def test_failing_listener_does_not_fail_command(self, executor, store):
        def broken(action, record):
            raise RuntimeError('boom')

        executor.add_listener(broken)
        record = executor.execute(AICommand('UPDATE_DAILY_CHECK', {'operationStatus': 'yellow'}))
        assert record['operationStatus'] == 'yellow'
        assert store.get_daily_check(days_ago(0)) is not None

    def test_execute_text(self, executor, store):
        executor.execute_text(_block({'action': 'UPDATE_METRIC_ENTRY',
                                      'data': {'metricName': 'Leads novos', 'value': 12}}))
        assert store.get_entries_for_metric('m-leads')[0]['status'] == 'green'
        assert executor.execute_text('nada') is None
