import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.metrics_engine import build_metric_entry, check_guardrails
from core.storage import LocalStore
from shared.models import MetricEntrySchema
from utils.datetime_utils import now_iso
from ..dependencies import get_store
from ..responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


@router.get("")
async def get_metrics(
    metric_id: Optional[str] = Query(None, alias="metricId"),
    store: LocalStore = Depends(get_store)
):
    """
    Métricas e entradas; com metricId, apenas as entradas daquela métrica
    """
    if metric_id:
        entries = [e for e in store.get_metric_entries() if e.get('metricId') == metric_id]
        return success_response({'metricId': metric_id, 'entries': entries})

    return success_response({
        'metrics': store.get_anchor_metrics(),
        'entries': store.get_metric_entries()
    })


@router.post("")
async def save_metric_entry(
    body: MetricEntrySchema,
    store: LocalStore = Depends(get_store)
):
    """
    Grava uma entrada de métrica; updatedAt é carimbado aqui
    """
    metric = store.get_anchor_metric(body.metric_id)

    if metric:
        # Status recalculado pelos guardrails da métrica
        for issue in check_guardrails(metric):
            logger.warning(f"Guardrails inconsistentes em '{metric.get('name')}': {issue}")
        entry = build_metric_entry(metric, body.date, body.value, addressed=body.addressed)
    else:
        entry = {**body.to_record(), 'updatedAt': now_iso()}

    logger.info(f"Salvando entrada de métrica via API: {entry['metricId']} {entry['date']}")
    store.save_metric_entry(entry)

    return success_response({
        'message': 'Métrica salva com sucesso',
        'entry': entry
    })
