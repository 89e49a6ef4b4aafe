import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.models import SyncDirection
from core.sync import SyncEngine
from shared.models import SyncRequestSchema
from utils.datetime_utils import now_iso
from ..dependencies import get_sync_engine
from ..responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


async def _run_sync(engine: SyncEngine, user_id: str, direction: SyncDirection):
    logger.info(f"Sync manual solicitada via API: {user_id} ({direction.value})")
    reports = await engine.sync(user_id, direction)
    complete = all(r.success for r in reports)

    return success_response({
        'message': ('Sincronização concluída com sucesso' if complete
                    else 'Sincronização concluída com falhas em algumas coleções'),
        'timestamp': now_iso(),
        'reports': [r.to_dict() for r in reports]
    })


@router.get("")
async def sync_status(
    user_id: Optional[str] = Query(None, alias="userId"),
    direction: SyncDirection = Query(SyncDirection.BOTH),
    engine: SyncEngine = Depends(get_sync_engine)
):
    """
    Estado da sincronização; com userId dispara uma sincronização
    """
    if user_id:
        return await _run_sync(engine, user_id, direction)
    return success_response(engine.get_status())


@router.post("")
async def trigger_sync(
    body: SyncRequestSchema,
    engine: SyncEngine = Depends(get_sync_engine)
):
    return await _run_sync(engine, body.user_id, body.direction)
