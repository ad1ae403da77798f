"""
Utilidades de parsing para valores vindos de planilhas e do terminal.

As planilhas da clínica misturam formatos: números com vírgula ou ponto
decimal ("12,50", "1.234,56"), datas ISO ou brasileiras ("31/12/2025")
e tipos de movimentação com ou sem acento ("Saída", "saida").
As funções aqui devolvem ``None`` quando o valor não pode ser
interpretado; quem chama decide se isso é erro.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_NUM_RE = re.compile(r"^[-+]?\d+(?:[.,]\d+)?$")
_MILHAR_RE = re.compile(r"^[-+]?\d{1,3}(?:\.\d{3})+(?:,\d+)?$")
_DATA_BR_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_TIPOS = {
    "entrada": "entrada",
    "entradas": "entrada",
    "saida": "saida",
    "saidas": "saida",
    "ajuste": "ajuste",
    "ajustes": "ajuste",
}


def sem_acentos(s: str) -> str:
    return "".join(ch for ch in unicodedata.normalize("NFKD", s) if not unicodedata.combining(ch))


def _numero_texto(txt: Any) -> Optional[str]:
    """Normaliza a representação textual de um número para o formato do Python."""
    if txt is None:
        return None
    s = str(txt).strip().replace(" ", "")
    if not s:
        return None
    if _MILHAR_RE.match(s):
        # 1.234,56 -> 1234.56
        s = s.replace(".", "").replace(",", ".")
    elif "," in s and "." in s:
        return None
    if not _NUM_RE.match(s):
        return None
    return s.replace(",", ".")


def parse_decimal(val: Any) -> Optional[Decimal]:
    """Interpreta um valor monetário.

    Exemplos:
        "12,50"    → Decimal("12.50")
        "1.234,56" → Decimal("1234.56")
        7.5        → Decimal("7.5")
        "abc"      → None
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, Decimal):
        return val
    if isinstance(val, (int, float)):
        if val != val:  # NaN
            return None
        return Decimal(str(val))
    s = _numero_texto(val)
    if s is None:
        return None
    try:
        return Decimal(s)
    except InvalidOperation:
        return None


def parse_inteiro(val: Any) -> Optional[int]:
    """Interpreta uma quantidade inteira ("10", "10,0", 10.0). Frações → None."""
    d = parse_decimal(val)
    if d is None or d != d.to_integral_value():
        return None
    return int(d)


def parse_data(val: Any) -> Optional[date]:
    """Aceita date/datetime, 'YYYY-MM-DD' e 'DD/MM/AAAA'."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    if not s:
        return None
    m = _DATA_BR_RE.match(s)
    try:
        if m:
            d, mth, y = (int(g) for g in m.groups())
            return date(y, mth, d)
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def parse_tipo(val: Any) -> Optional[str]:
    """'Saída' → 'saida'; valores desconhecidos voltam normalizados, sem mapeamento."""
    if val is None:
        return None
    s = sem_acentos(str(val)).strip().lower()
    if not s:
        return None
    return _TIPOS.get(s, s)
