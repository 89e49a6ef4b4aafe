#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Banco remoto
Tabelas relacionais por usuário para backup e sincronização do armazenamento local

Cada tabela guarda o registro inteiro na coluna `payload` e tem como chave
primária (user_id, <chave natural>). O upsert usa INSERT ... ON CONFLICT DO
UPDATE do dialeto (PostgreSQL ou SQLite).

Versão: 1.0.0
Data: 2026-10-19
"""

import logging
from typing import Dict, List, Optional, Any, Sequence

from sqlalchemy import MetaData, Table, Column, String, JSON, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.dialects import postgresql, sqlite

from config import AppConfig

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class RemoteStoreError(Exception):
    """Falha de comunicação ou de driver no banco remoto"""
    pass

# ===== SCHEMA =====

metadata = MetaData()

daily_checks_table = Table(
    'daily_checks', metadata,
    Column('user_id', String(64), primary_key=True),
    Column('date', String(10), primary_key=True),
    Column('payload', JSON, nullable=False),
    Column('updated_at', String(32)),
)

weekly_plans_table = Table(
    'weekly_plans', metadata,
    Column('user_id', String(64), primary_key=True),
    Column('week_start', String(10), primary_key=True),
    Column('payload', JSON, nullable=False),
    Column('updated_at', String(32)),
)

impact_logs_table = Table(
    'impact_logs', metadata,
    Column('user_id', String(64), primary_key=True),
    Column('date', String(10), primary_key=True),
    Column('payload', JSON, nullable=False),
    Column('updated_at', String(32)),
)

dismissed_alerts_table = Table(
    'dismissed_alerts', metadata,
    Column('user_id', String(64), primary_key=True),
    Column('alert_id', String(128), primary_key=True),
    Column('dismissed_at', String(32)),
)

anchor_metrics_table = Table(
    'anchor_metrics', metadata,
    Column('user_id', String(64), primary_key=True),
    Column('id', String(128), primary_key=True),
    Column('payload', JSON, nullable=False),
    Column('updated_at', String(32)),
)

metric_entries_table = Table(
    'metric_entries', metadata,
    Column('user_id', String(64), primary_key=True),
    Column('metric_id', String(128), primary_key=True),
    Column('date', String(10), primary_key=True),
    Column('payload', JSON, nullable=False),
    Column('updated_at', String(32)),
)

# ===== INTERFACE =====

class RemoteStore:
    """Contrato mínimo usado pelo motor de sincronização"""

    async def upsert(self, table: str, rows: List[Dict[str, Any]],
                     conflict_columns: Sequence[str]) -> None:
        raise NotImplementedError

    async def select(self, table: str, user_id: str,
                     columns: Sequence[str]) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def close(self) -> None:
        pass

# ===== SQLALCHEMY =====

class SQLRemoteStore(RemoteStore):
    """Banco remoto sobre SQLAlchemy assíncrono"""

    def __init__(self, url: str, key: Optional[str] = None, echo: bool = False):
        database_url = make_url(url)

        # A chave entra como senha quando a URL não traz uma
        if key and database_url.password is None and not database_url.drivername.startswith('sqlite'):
            database_url = database_url.set(password=key)

        self.dialect_name = database_url.get_backend_name()
        if self.dialect_name not in ('postgresql', 'sqlite'):
            raise RemoteStoreError(f"Dialeto não suportado para upsert: {self.dialect_name}")

        self.engine = create_async_engine(database_url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        logger.info(f"🗄️ Banco remoto configurado ({self.dialect_name})")

    def _table(self, name: str) -> Table:
        table = metadata.tables.get(name)
        if table is None:
            raise RemoteStoreError(f"Tabela desconhecida: {name}")
        return table

    def _insert(self, table: Table):
        if self.dialect_name == 'postgresql':
            return postgresql.insert(table)
        return sqlite.insert(table)

    async def create_tables(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Falha ao criar tabelas: {e}") from e

    async def upsert(self, table: str, rows: List[Dict[str, Any]],
                     conflict_columns: Sequence[str]) -> None:
        if not rows:
            return

        target = self._table(table)
        stmt = self._insert(target).values(rows)
        update_columns = {
            column.name: stmt.excluded[column.name]
            for column in target.columns
            if column.name not in conflict_columns
        }
        stmt = stmt.on_conflict_do_update(index_elements=list(conflict_columns), set_=update_columns)

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(stmt)
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Upsert em {table} falhou: {e}") from e

        logger.debug(f"Upsert de {len(rows)} linha(s) em {table}")

    async def select(self, table: str, user_id: str,
                     columns: Sequence[str]) -> List[Dict[str, Any]]:
        target = self._table(table)
        query = select(*[target.c[name] for name in columns]).where(target.c.user_id == user_id)

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Leitura de {table} falhou: {e}") from e

    async def close(self) -> None:
        await self.engine.dispose()
        logger.debug("Conexões do banco remoto encerradas")

# ===== CONVENIENCE FUNCTIONS =====

def create_remote_store(config: AppConfig) -> SQLRemoteStore:
    """Cria o cliente do banco remoto; falha se as credenciais não existirem"""
    config.remote.require()
    return SQLRemoteStore(config.remote.url, config.remote.key, echo=config.remote.echo)


__all__ = [
    'RemoteStoreError',
    'RemoteStore',
    'SQLRemoteStore',
    'create_remote_store',
    'metadata'
]
