import json
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from core.storage import LocalStore
from utils.datetime_utils import today_str
from ..dependencies import get_store
from ..responses import ApiError, ApiErrorType, success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["export"])


@router.get("/export")
async def export_data(
    format: str = Query("json"),
    store: LocalStore = Depends(get_store)
):
    """
    Exporta todas as coleções como arquivo JSON
    """
    logger.info(f"Exportação solicitada (formato {format})")
    data = store.export_data()

    if format == "json":
        filename = f"antigravity_export_{today_str()}.json"
        return Response(
            content=data,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )

    return success_response({
        'message': f'O formato {format} será implementado em breve. Por enquanto, use JSON.',
        'data': json.loads(data)
    })


@router.post("/import")
async def import_data(request: Request, store: LocalStore = Depends(get_store)):
    """
    Importa um documento de exportação; coleções ausentes ficam intactas
    """
    body = await request.body()

    if not store.import_data(body.decode('utf-8', errors='replace')):
        raise ApiError(ApiErrorType.VALIDATION, 'Arquivo de importação inválido')

    return success_response({'message': 'Dados importados com sucesso'})
