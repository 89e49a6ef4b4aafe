#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Configuração
Configuração centralizada a partir de variáveis de ambiente, com validação

Versão: 1.0.0
Data: 2026-10-19
"""

import os
import sys
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from enum import Enum

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Configuração obrigatória ausente ou inválida"""
    pass


class Environment(Enum):
    """Ambientes de execução"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Níveis de log"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class StorageConfig:
    """Configuração do armazenamento local"""
    data_dir: Path
    quota_bytes: int = 5 * 1024 * 1024
    daily_check_retention_days: int = 90
    weekly_plan_retention_days: int = 84
    quota_recovery_keep: int = 30


@dataclass
class RemoteStoreConfig:
    """Configuração do banco remoto (sincronização)"""
    url: Optional[str] = None
    key: Optional[str] = None
    echo: bool = False

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)

    def require(self) -> None:
        """Falha imediatamente se as credenciais não estiverem definidas"""
        missing = []
        if not self.url:
            missing.append("REMOTE_STORE_URL")
        if not self.key:
            missing.append("REMOTE_STORE_KEY")
        if missing:
            raise ConfigurationError(
                f"Credenciais do banco remoto ausentes: {', '.join(missing)}"
            )


@dataclass
class AIConfig:
    """Configuração do provedor de IA"""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    temperature: float = 0.7
    request_timeout: int = 30


@dataclass
class SyncConfig:
    """Configuração da sincronização"""
    max_retries: int = 3
    retry_delay_ms: int = 1000
    interval_minutes: int = 0
    user_id: Optional[str] = None

    @property
    def auto_sync_enabled(self) -> bool:
        return self.interval_minutes > 0 and bool(self.user_id)


@dataclass
class ServerConfig:
    """Configuração do servidor HTTP"""
    host: str = "0.0.0.0"
    port: int = 8000
    debug_mode: bool = False
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


class AppConfig:
    """Configuração principal da aplicação"""

    def __init__(self, env: Optional[Dict[str, str]] = None):
        self._env = os.environ if env is None else env
        self.environment = Environment(self._get('ENVIRONMENT', 'development'))
        self._load_config()
        self._validate_config()

    def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._env.get(key)
        return value if value not in (None, "") else default

    def _get_bool(self, key: str, default: str = 'false') -> bool:
        return self._get(key, default).lower() == 'true'

    def _get_required_env(self, key: str) -> str:
        """Obtém variável de ambiente obrigatória"""
        value = self._get(key)
        if not value:
            raise ConfigurationError(f"Variável de ambiente obrigatória {key} não encontrada!")
        return value

    def _load_config(self):
        """Carrega a configuração das variáveis de ambiente"""

        # Diretórios
        self.data_dir = Path(self._get('DATA_DIR', 'data'))
        self.log_dir = Path(self._get('LOG_DIR', 'logs'))

        self.storage = StorageConfig(
            data_dir=self.data_dir,
            quota_bytes=int(self._get('LOCAL_STORE_QUOTA_BYTES', str(5 * 1024 * 1024))),
        )

        self.remote = RemoteStoreConfig(
            url=self._get('REMOTE_STORE_URL'),
            key=self._get('REMOTE_STORE_KEY'),
            echo=self._get_bool('REMOTE_STORE_ECHO'),
        )

        # Em produção a chave do provedor de IA é obrigatória
        if self.is_production():
            openai_api_key = self._get_required_env('OPENAI_API_KEY')
        else:
            openai_api_key = self._get('OPENAI_API_KEY')

        self.ai = AIConfig(
            openai_api_key=openai_api_key,
            openai_model=self._get('OPENAI_MODEL', 'gpt-4o'),
            temperature=float(self._get('OPENAI_TEMPERATURE', '0.7')),
            request_timeout=int(self._get('AI_TIMEOUT', '30')),
        )

        self.sync = SyncConfig(
            max_retries=int(self._get('SYNC_MAX_RETRIES', '3')),
            retry_delay_ms=int(self._get('SYNC_RETRY_DELAY_MS', '1000')),
            interval_minutes=int(self._get('SYNC_INTERVAL_MINUTES', '0')),
            user_id=self._get('SYNC_USER_ID'),
        )

        origins = self._get('ALLOWED_ORIGINS', '*')
        self.server = ServerConfig(
            host=self._get('HOST', '0.0.0.0'),
            port=int(self._get('PORT', '8000')),
            debug_mode=self._get_bool('DEBUG_MODE'),
            allowed_origins=[o.strip() for o in origins.split(',') if o.strip()],
        )

        self.timezone = self._get('TIMEZONE', 'America/Sao_Paulo')

        # Logging
        self.log_level = LogLevel(self._get('LOG_LEVEL', 'INFO').upper())
        self.log_to_file = self._get_bool('LOG_TO_FILE', 'false')
        self.log_format = self._get(
            'LOG_FORMAT',
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )

    def _validate_config(self):
        """Valida a configuração carregada"""
        errors = []

        if self.storage.quota_bytes <= 0:
            errors.append("LOCAL_STORE_QUOTA_BYTES deve ser positivo")

        if not 1 <= self.server.port <= 65535:
            errors.append(f"Porta {self.server.port} fora do intervalo permitido (1-65535)")

        if self.sync.max_retries < 1:
            errors.append("SYNC_MAX_RETRIES deve ser pelo menos 1")

        if self.sync.retry_delay_ms < 0:
            errors.append("SYNC_RETRY_DELAY_MS não pode ser negativo")

        if self.sync.interval_minutes > 0 and not self.sync.user_id:
            errors.append("SYNC_INTERVAL_MINUTES exige SYNC_USER_ID")

        if not 0.0 <= self.ai.temperature <= 2.0:
            errors.append("OPENAI_TEMPERATURE deve estar entre 0 e 2")

        if errors:
            raise ValueError("Erros de configuração:\n" + "\n".join(f"• {error}" for error in errors))

    def ensure_directories(self):
        """Cria os diretórios necessários"""
        directories = [self.data_dir]
        if self.log_to_file:
            directories.append(self.log_dir)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self) -> Dict[str, Any]:
        """Configuração de logging para logging.config.dictConfig"""
        handlers = ['console']
        if self.log_to_file:
            handlers.append('file')

        logging_config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                }
            },
            'loggers': {
                '': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                    'propagate': False
                },
                'httpx': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                },
                'apscheduler': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                },
                'sqlalchemy.engine': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.log_to_file:
            logging_config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'filename': str(self.log_dir / f"antigravity_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        return logging_config

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Serializa a configuração sem expor segredos"""
        return {
            'environment': self.environment.value,
            'data_dir': str(self.data_dir),
            'timezone': self.timezone,
            'server': {
                'host': self.server.host,
                'port': self.server.port,
                'debug_mode': self.server.debug_mode
            },
            'remote_configured': self.remote.is_configured,
            'ai_enabled': bool(self.ai.openai_api_key),
            'auto_sync': self.sync.auto_sync_enabled,
            'log_level': self.log_level.value
        }


@lru_cache()
def get_config() -> AppConfig:
    """Configuração global carregada uma única vez (lê .env se existir)"""
    load_dotenv()
    return AppConfig()


__all__ = [
    'AppConfig',
    'ConfigurationError',
    'Environment',
    'LogLevel',
    'StorageConfig',
    'RemoteStoreConfig',
    'AIConfig',
    'SyncConfig',
    'ServerConfig',
    'get_config'
]
