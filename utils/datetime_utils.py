#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Antigravity Dashboard v1.0 - Utilitários de data
Relógio no fuso configurado e datas ISO (YYYY-MM-DD)

Versão: 1.0.0
Data: 2026-10-19
"""

import re
from datetime import datetime, date, timedelta
from typing import Optional, Union

import pytz

DEFAULT_TZ = pytz.timezone("America/Sao_Paulo")
ISO_DATE = "%Y-%m-%d"
ISO_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


def set_timezone(name: str) -> None:
    global DEFAULT_TZ
    DEFAULT_TZ = pytz.timezone(name)


def now_local() -> datetime:
    """Hora atual no fuso configurado, sem tzinfo (comparável com datas ISO)"""
    return datetime.now(DEFAULT_TZ).replace(tzinfo=None)


def now_iso() -> str:
    return datetime.now(pytz.utc).isoformat().replace("+00:00", "Z")


def today_str(now: Optional[datetime] = None) -> str:
    return (now or now_local()).strftime(ISO_DATE)


def parse_date(date_str: str) -> Optional[datetime]:
    """YYYY-MM-DD exato -> datetime à meia-noite; None se inválido"""
    if not isinstance(date_str, str) or not ISO_DATE_PATTERN.fullmatch(date_str):
        return None
    try:
        return datetime.strptime(date_str, ISO_DATE)
    except ValueError:
        return None


def week_start(day: Union[date, datetime, str, None] = None) -> str:
    """Segunda-feira da semana que contém `day`"""
    if day is None:
        day = now_local()
    elif isinstance(day, str):
        day = parse_date(day)
        if day is None:
            raise ValueError("Data inválida")
    if isinstance(day, datetime):
        day = day.date()
    return (day - timedelta(days=day.weekday())).strftime(ISO_DATE)


def is_within_days(date_str: str, days: int, now: Optional[datetime] = None) -> bool:
    """True se a data (meia-noite local) não for anterior a now - days"""
    parsed = parse_date(date_str)
    if parsed is None:
        return False
    return parsed >= (now or now_local()) - timedelta(days=days)


def sort_key(date_str: str) -> datetime:
    return parse_date(date_str) or datetime.min
