#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Logging
Aplica a configuração de logging definida em config.py

Versão: 1.0.0
Data: 2026-10-19
"""

import logging
import logging.config

from config import AppConfig


def setup_logger(config: AppConfig) -> logging.Logger:
    config.ensure_directories()
    logging.config.dictConfig(config.get_logging_config())
    logger = logging.getLogger()
    logger.debug(f"Logging configurado (nível={config.log_level.value}, arquivo={config.log_to_file})")
    return logger
