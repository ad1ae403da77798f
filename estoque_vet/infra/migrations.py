# estoque_vet/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (params, produto, movimentacao)
V2: gatilhos que tornam o histórico só de inserção e impedem apagar produtos
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Cadastro de produtos (escopo por conta)
    """
    CREATE TABLE IF NOT EXISTS produto (
        id TEXT PRIMARY KEY,
        conta_id TEXT NOT NULL,
        nome TEXT NOT NULL,
        categoria TEXT NOT NULL,
        unidade_medida TEXT NOT NULL DEFAULT 'unidade',
        quantidade_atual INTEGER NOT NULL DEFAULT 0 CHECK (quantidade_atual >= 0),
        quantidade_inicial INTEGER NOT NULL DEFAULT 0 CHECK (quantidade_inicial >= 0),
        quantidade_minima INTEGER NOT NULL DEFAULT 0 CHECK (quantidade_minima >= 0),
        preco_custo TEXT,
        preco_venda TEXT,
        fornecedor TEXT,
        data_validade TEXT,
        lote TEXT,
        descricao TEXT,
        codigo_barras TEXT,
        ativo INTEGER NOT NULL DEFAULT 1,
        criado_em TEXT NOT NULL,
        atualizado_em TEXT NOT NULL
    );
    """,
    # Histórico de movimentações
    """
    CREATE TABLE IF NOT EXISTS movimentacao (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        conta_id TEXT NOT NULL,
        produto_id TEXT NOT NULL,
        tipo TEXT NOT NULL CHECK (tipo IN ('entrada', 'saida', 'ajuste')),
        quantidade INTEGER NOT NULL,
        delta INTEGER NOT NULL,
        quantidade_anterior INTEGER NOT NULL,
        quantidade_nova INTEGER NOT NULL CHECK (quantidade_nova >= 0),
        motivo TEXT,
        observacoes TEXT,
        agendamento_id TEXT,
        criado_em TEXT NOT NULL,
        FOREIGN KEY (produto_id) REFERENCES produto(id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_produto_conta ON produto(conta_id, ativo);",
    "CREATE INDEX IF NOT EXISTS idx_mov_produto ON movimentacao(produto_id, criado_em);",
    "CREATE INDEX IF NOT EXISTS idx_mov_conta_data ON movimentacao(conta_id, criado_em);",
]

SCHEMA_V2: List[str] = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_movimentacao_sem_update
    BEFORE UPDATE ON movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'movimentacao e somente de insercao');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_movimentacao_sem_delete
    BEFORE DELETE ON movimentacao
    BEGIN
        SELECT RAISE(ABORT, 'movimentacao e somente de insercao');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_produto_sem_delete
    BEFORE DELETE ON produto
    BEGIN
        SELECT RAISE(ABORT, 'produto nao pode ser apagado; use desativar');
    END;
    """,
]


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    for sql in SCHEMA_V2:
        conn.executescript(sql)


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
