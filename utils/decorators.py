#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Retry com backoff
Repetição de operações assíncronas com espera exponencial ou linear

Versão: 1.0.0
Data: 2026-10-19
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, delay: float, backoff: str = "exponential") -> float:
    if backoff == "exponential":
        return delay * (2 ** (attempt - 1))
    return delay


async def with_retry(
    func: Callable[[], Awaitable[Any]],
    retries: int = 3,
    delay: float = 1.0,
    backoff: str = "exponential",
    context: str = "default",
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> Any:
    """Executa `func` até `retries` vezes; relança o último erro ao esgotar."""
    sleep = sleep or asyncio.sleep
    last_error: Optional[BaseException] = None

    for attempt in range(1, retries + 1):
        try:
            return await func()
        except Exception as e:
            last_error = e
            wait = backoff_delay(attempt, delay, backoff)
            logger.warning(
                f"Tentativa {attempt}/{retries} falhou ({context}): {e}; "
                f"próxima em {wait:.2f}s"
            )
            if attempt == retries:
                break
            await sleep(wait)

    logger.error(f"Operação falhou após {retries} tentativas: {context}: {last_error}")
    raise last_error
