#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Ponto de entrada
Servidor HTTP e comandos de manutenção (sincronização, exportação, importação)

Versão: 1.0.0
Data: 2026-10-19
"""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import List, Optional

import uvicorn

from config import AppConfig, ConfigurationError, get_config
from core.metrics_engine import seed_default_metrics
from core.models import SyncDirection
from core.storage import LocalStore, create_local_store
from core.sync import SyncEngine
from services.remote_store import create_remote_store
from utils.datetime_utils import set_timezone
from utils.logger import setup_logger

logger = logging.getLogger(__name__)

# ===== COMANDOS =====

def cmd_serve(args, config: AppConfig) -> int:
    from dashboard.app import create_app

    app = create_app(config)
    host = args.host or config.server.host
    port = args.port or config.server.port

    logger.info(f"🚀 Iniciando servidor em http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.value.lower())
    return 0


async def _run_sync(config: AppConfig, store: LocalStore, user_id: str, direction: SyncDirection) -> bool:
    remote = create_remote_store(config)
    engine = SyncEngine(
        store, remote,
        max_retries=config.sync.max_retries,
        base_delay=config.sync.retry_delay_ms / 1000
    )
    try:
        await remote.create_tables()
        reports = await engine.sync(user_id, direction)
    finally:
        await remote.close()

    for report in reports:
        for result in report.results:
            mark = "✅" if result.success else "❌"
            print(f"{mark} {report.direction:<4} {result.collection:<16} {result.items:>5}"
                  + (f"  {result.error}" if result.error else ""))
    return all(r.success for r in reports)


def cmd_sync(args, config: AppConfig) -> int:
    user_id = args.user_id or config.sync.user_id
    if not user_id:
        logger.error("Informe --user-id ou defina SYNC_USER_ID")
        return 2

    store = create_local_store(config)
    ok = asyncio.run(_run_sync(config, store, user_id, SyncDirection(args.direction)))
    return 0 if ok else 1


def cmd_export(args, config: AppConfig) -> int:
    data = create_local_store(config).export_data()

    if args.output:
        Path(args.output).write_text(data, encoding='utf-8')
        logger.info(f"📦 Exportação gravada em {args.output}")
    else:
        print(data)
    return 0


def cmd_import(args, config: AppConfig) -> int:
    path = Path(args.file)
    if not path.exists():
        logger.error(f"Arquivo não encontrado: {path}")
        return 2

    ok = create_local_store(config).import_data(path.read_text(encoding='utf-8'))
    return 0 if ok else 1


def cmd_seed_metrics(args, config: AppConfig) -> int:
    metrics = seed_default_metrics(create_local_store(config))
    print(f"{len(metrics)} métrica(s) configurada(s)")
    return 0

# ===== PARSER =====

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Antigravity Dashboard')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Inicia a API HTTP')
    serve.add_argument('--host', default=None, help='Host do servidor')
    serve.add_argument('--port', type=int, default=None, help='Porta do servidor')
    serve.set_defaults(handler=cmd_serve)

    sync = subparsers.add_parser('sync', help='Sincroniza com o banco remoto')
    sync.add_argument('--user-id', default=None, help='Usuário no banco remoto')
    sync.add_argument('--direction', choices=[d.value for d in SyncDirection],
                      default=SyncDirection.BOTH.value, help='push, pull ou both')
    sync.set_defaults(handler=cmd_sync)

    export = subparsers.add_parser('export', help='Exporta os dados locais em JSON')
    export.add_argument('--output', '-o', default=None, help='Arquivo de saída (padrão: stdout)')
    export.set_defaults(handler=cmd_export)

    import_cmd = subparsers.add_parser('import', help='Importa um arquivo de exportação')
    import_cmd.add_argument('file', help='Arquivo JSON exportado')
    import_cmd.set_defaults(handler=cmd_import)

    seed = subparsers.add_parser('seed-metrics', help='Cria as métricas padrão se não houver nenhuma')
    seed.set_defaults(handler=cmd_seed_metrics)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = get_config()
    except (ConfigurationError, ValueError) as e:
        print(f"❌ Configuração inválida: {e}", file=sys.stderr)
        return 2

    setup_logger(config)
    set_timezone(config.timezone)

    try:
        return args.handler(args, config)
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        return 2
    except KeyboardInterrupt:
        logger.info("👋 Interrompido pelo usuário")
        return 130

# ===== PONTO DE ENTRADA =====

if __name__ == "__main__":
    sys.exit(main())
