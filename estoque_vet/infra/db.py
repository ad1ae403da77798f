# estoque_vet/infra/db.py
"""
Utilidades de conexão SQLite.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from estoque_vet.config import DEFAULTS


def _casefold(s):
    return s.casefold() if s is not None else None


def _configura(conn: sqlite3.Connection) -> None:
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    # casefold(texto): minúsculas Unicode, inclusive letras acentuadas
    conn.create_function("casefold", 1, _casefold, deterministic=True)


@contextmanager
def connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Context manager para abrir conexão SQLite com:
    - foreign_keys ON
    - row_factory = sqlite3.Row
    - função SQL casefold() para buscas sem diferenciar maiúsculas
    - commit ao sair (rollback em caso de exceção)
    """
    conn = sqlite3.connect(db_path, timeout=DEFAULTS.timeout_lock_s)
    try:
        _configura(conn)
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transacao_imediata(db_path: str) -> Iterator[sqlite3.Connection]:
    """
    Abre uma transação com BEGIN IMMEDIATE.

    O lock de escrita é obtido antes da primeira leitura, então duas
    transações que leem e depois gravam o mesmo saldo ficam serializadas.
    COMMIT ao sair; ROLLBACK em qualquer exceção.
    """
    conn = sqlite3.connect(db_path, timeout=DEFAULTS.timeout_lock_s, isolation_level=None)
    try:
        _configura(conn)
        conn.execute("BEGIN IMMEDIATE;")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK;")
            raise
        conn.execute("COMMIT;")
    finally:
        conn.close()
