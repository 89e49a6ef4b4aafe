#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Dependências da API
Provedores de dependência para as rotas FastAPI

Os componentes são construídos uma vez em create_app e guardados em
app.state; as rotas os recebem via Depends, sem singletons de módulo.

Versão: 1.0.0
Data: 2026-10-19
"""

from fastapi import Request

from core.commands import CommandExecutor
from core.storage import LocalStore
from core.sync import SyncEngine
from services.ai_service import AIService


def get_store(request: Request) -> LocalStore:
    return request.app.state.store


def get_executor(request: Request) -> CommandExecutor:
    return request.app.state.executor


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_sync_engine(request: Request) -> SyncEngine:
    return request.app.state.sync_engine
