# estoque_vet/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_estoque_baixo:      produtos ativos com saldo <= mínimo.
- vw_movimentacao_saldo: soma dos deltas do histórico por produto.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            ---------------------------
            -- Estoque baixo (limite inclusivo)
            ---------------------------
            DROP VIEW IF EXISTS vw_estoque_baixo;
            CREATE VIEW vw_estoque_baixo AS
            SELECT *
            FROM produto
            WHERE ativo = 1
              AND quantidade_atual <= quantidade_minima;

            ---------------------------
            -- Saldo reconstruído a partir do histórico
            ---------------------------
            DROP VIEW IF EXISTS vw_movimentacao_saldo;
            CREATE VIEW vw_movimentacao_saldo AS
            SELECT
                p.conta_id,
                p.id                               AS produto_id,
                p.quantidade_inicial,
                p.quantidade_atual,
                COUNT(m.seq)                       AS total_movimentacoes,
                COALESCE(SUM(m.delta), 0)          AS soma_deltas,
                p.quantidade_inicial + COALESCE(SUM(m.delta), 0) AS quantidade_reconstruida
            FROM produto p
            LEFT JOIN movimentacao m ON m.produto_id = p.id
            GROUP BY p.conta_id, p.id;
            """
        )
