# services/__init__.py

"""
Serviços externos do Antigravity Dashboard: banco remoto e provedor de IA.
"""

from .remote_store import RemoteStore, RemoteStoreError, SQLRemoteStore, create_remote_store
from .ai_service import (
    AIService, AIServiceError, AIAuthError, AIRateLimitError, AIProviderError,
    SYSTEM_PROMPT, build_context
)

__all__ = [
    'RemoteStore',
    'RemoteStoreError',
    'SQLRemoteStore',
    'create_remote_store',
    'AIService',
    'AIServiceError',
    'AIAuthError',
    'AIRateLimitError',
    'AIProviderError',
    'SYSTEM_PROMPT',
    'build_context'
]
