from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.alert_engine import analyze_patterns, filter_dismissed
from core.metrics_engine import get_red_alerts
from core.storage import LocalStore
from utils.datetime_utils import today_str, parse_date
from ..dependencies import get_store
from ..responses import ApiError, ApiErrorType, success_response

router = APIRouter(prefix="/api", tags=["alerts"])


@router.get("/alerts")
async def get_alerts(store: LocalStore = Depends(get_store)):
    """
    Alertas de padrão recalculados na leitura, sem os dispensados
    """
    alerts = analyze_patterns(
        store.get_daily_checks(),
        store.get_weekly_plans(),
        store.get_anchor_metrics(),
        store.get_metric_entries()
    )
    visible = filter_dismissed(alerts, store.get_dismissed_alerts())
    return success_response({'alerts': [a.to_dict() for a in visible]})


@router.post("/alerts/{alert_id}/dismiss")
async def dismiss_alert(alert_id: str, store: LocalStore = Depends(get_store)):
    store.dismiss_alert(alert_id)
    return success_response({'alertId': alert_id, 'dismissed': True})


@router.get("/radar")
async def get_radar(
    date: Optional[str] = Query(None),
    store: LocalStore = Depends(get_store)
):
    """
    Radar de Vermelhos da data (padrão: hoje)
    """
    date = date or today_str()
    if parse_date(date) is None:
        raise ApiError(ApiErrorType.VALIDATION, 'Data deve estar no formato YYYY-MM-DD')

    red_alerts = get_red_alerts(date, store.get_anchor_metrics(), store.get_entries_for_date(date))
    return success_response({'date': date, 'redAlerts': [r.to_dict() for r in red_alerts]})
