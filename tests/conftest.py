"""
Configuração dos testes: raiz do repositório no sys.path, relógio fixo e
um banco remoto em memória para o motor de sincronização.
"""

import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent
TESTS_DIR = Path(__file__).parent
for path in (REPO_ROOT, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from core.storage import LocalStore, MemoryBackend  # noqa: E402
from helpers import FIXED_NOW, FakeRemoteStore  # noqa: E402


@pytest.fixture
def store():
    """LocalStore em memória com o relógio fixo em FIXED_NOW"""
    return LocalStore(MemoryBackend(), clock=lambda: FIXED_NOW)


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def sleeps():
    """Lista que registra os atrasos pedidos pelo retry (sem dormir de fato)"""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)
    return _sleep
