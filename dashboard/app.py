#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard - FastAPI Application
API HTTP do painel operacional: métricas, exportação, sincronização, chat e alertas

Versão: 1.0.0
Data: 2026-10-19
"""

import time
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import AppConfig, get_config
from core.commands import CommandExecutor
from core.storage import LocalStore, create_local_store
from core.sync import SyncEngine, SyncScheduler
from services.ai_service import AIService, AIServiceError, AIAuthError, AIRateLimitError
from services.remote_store import SQLRemoteStore, create_remote_store
from utils.datetime_utils import now_iso
from dashboard.api import metrics, export, sync, chat, alerts
from dashboard.responses import ApiError, ApiErrorType, error_response, success_response

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def create_app(config: Optional[AppConfig] = None,
               store: Optional[LocalStore] = None,
               sync_engine: Optional[SyncEngine] = None,
               ai_service: Optional[AIService] = None) -> FastAPI:
    """Monta a aplicação com seus componentes (injetáveis nos testes).

    Sem sync_engine explícito, o banco remoto é criado a partir da
    configuração e a ausência de credenciais interrompe a inicialização.
    """
    config = config or get_config()
    if store is None:
        store = create_local_store(config)

    if sync_engine is None:
        remote = create_remote_store(config)
        sync_engine = SyncEngine(
            store, remote,
            max_retries=config.sync.max_retries,
            base_delay=config.sync.retry_delay_ms / 1000
        )

    if ai_service is None:
        ai_service = AIService(config.ai)
    executor = CommandExecutor(store)
    executor.add_listener(
        lambda action, record: logger.debug(f"Registro alterado por comando {action}")
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Gerenciamento do ciclo de vida da aplicação"""
        logger.info("🚀 Iniciando Antigravity Dashboard...")
        logger.debug(f"⚙️ Configuração: {config.to_dict()}")
        app.state.start_time = time.time()

        if isinstance(sync_engine.remote, SQLRemoteStore):
            await sync_engine.remote.create_tables()

        scheduler = None
        if config.sync.auto_sync_enabled:
            scheduler = SyncScheduler(sync_engine, config.sync.user_id, config.sync.interval_minutes)
            scheduler.start()

        logger.info(f"🌐 API disponível em http://{config.server.host}:{config.server.port}")
        logger.info("✅ Dashboard pronto")

        yield

        logger.info("🛑 Encerrando Dashboard...")
        if scheduler:
            scheduler.shutdown()
        await sync_engine.remote.close()
        logger.info("✅ Recursos liberados")

    app = FastAPI(
        title="Antigravity Dashboard",
        description="Painel operacional pessoal: check diário, plano semanal, números âncora e alertas",
        version=APP_VERSION,
        docs_url="/api/docs" if config.server.debug_mode else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if config.server.debug_mode else None,
        lifespan=lifespan
    )

    app.state.config = config
    app.state.store = store
    app.state.sync_engine = sync_engine
    app.state.ai_service = ai_service
    app.state.executor = executor
    app.state.start_time = time.time()

    # ===== MIDDLEWARE =====

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log de cada requisição com o tempo de processamento"""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        logger.info(
            f"{request.method} {request.url.path} "
            f"- {response.status_code} "
            f"- {process_time:.3f}s"
        )
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response

    # ===== EXCEPTION HANDLERS =====

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return error_response(exc.error_type, exc.message, exc.details, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                'field': '.'.join(str(p) for p in err.get('loc', ()) if p != 'body'),
                'message': err.get('msg')
            }
            for err in exc.errors()
        ]
        return error_response(ApiErrorType.VALIDATION, 'Dados da requisição inválidos', details)

    @app.exception_handler(AIServiceError)
    async def ai_error_handler(request: Request, exc: AIServiceError):
        if isinstance(exc, AIAuthError):
            error_type = ApiErrorType.AUTH
        elif isinstance(exc, AIRateLimitError):
            error_type = ApiErrorType.RATE_LIMIT
        else:
            error_type = ApiErrorType.UNAVAILABLE
        return error_response(error_type, exc.user_message, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error_type = ApiErrorType.NOT_FOUND if exc.status_code == 404 else ApiErrorType.SERVER
        return error_response(error_type, str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"❌ Erro não tratado em {request.url.path}: {exc}", exc_info=True)
        return error_response(ApiErrorType.SERVER, 'Erro interno do servidor')

    # ===== ROUTES =====

    app.include_router(metrics.router)
    app.include_router(export.router)
    app.include_router(sync.router)
    app.include_router(chat.router)
    app.include_router(alerts.router)

    @app.get("/health", tags=["health"])
    async def health_check(request: Request):
        """Estado do armazenamento local e da sincronização"""
        stats = request.app.state.store.get_stats()
        dropped = stats['store']['dropped_writes']
        return success_response({
            'status': 'degraded' if dropped else 'healthy',
            'service': 'antigravity-dashboard',
            'version': APP_VERSION,
            'timestamp': now_iso(),
            'uptime_seconds': round(time.time() - request.app.state.start_time, 1),
            'storage': stats,
            'sync': request.app.state.sync_engine.get_status(),
            'ai_enabled': request.app.state.ai_service.enabled
        })

    return app
