# estoque_vet/usecases/relatorios.py
"""
Relatórios de estoque (somente leitura):
- estoque baixo (saldo <= mínimo)
- produtos vencendo (janela de dias)
- valor total do estoque (saldo x preço de custo)
- resumo de movimentações de um produto (entradas/saídas na janela)
- movimentações por produto (entradas/saídas de todos os produtos)
- resumo geral do estoque (painel)

Cada chamada consulta o banco de novo; nada fica guardado em memória.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from estoque_vet.config import DB_PATH, DEFAULTS
from estoque_vet.domain.errors import ValidationError
from estoque_vet.domain.models import ENTRADA, SAIDA, Produto
from estoque_vet.domain.regras import dias_para_vencer, is_inteiro, is_vencendo
from estoque_vet.infra.migrations import apply_migrations
from estoque_vet.infra.views import create_views
from estoque_vet.infra.repositories import MovimentacaoRepo, ParamsRepo, ProdutoRepo
from estoque_vet.infra.logger import log_system_event


# ----------------------
# util
# ----------------------

def _prepara(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)


def _janela(chave: str, default: int, db_path: str) -> int:
    return ParamsRepo(db_path).get_int(chave, default)


def _inicio_janela(dias: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=dias)


# ----------------------
# 1) Estoque baixo
# ----------------------

def estoque_baixo(*, conta_id: str, db_path: str = DB_PATH) -> List[Produto]:
    """Produtos ativos com ``quantidade_atual <= quantidade_minima`` (inclusivo)."""
    _prepara(db_path)
    out = ProdutoRepo(db_path, conta_id).list_estoque_baixo()
    log_system_event("relatorio_estoque_baixo", {"total": len(out)})
    return out


# ----------------------
# 2) Produtos vencendo
# ----------------------

def vencendo_em(
    dias: Optional[int] = None,
    *,
    conta_id: str,
    db_path: str = DB_PATH,
    hoje: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Produtos ativos com validade até ``hoje + dias`` (vencidos inclusive).
    Produtos sem data de validade nunca entram.
    Ordena pela validade mais próxima.
    """
    _prepara(db_path)
    if dias is None:
        dias = _janela("janela_vencimento_dias", DEFAULTS.janela_vencimento_dias, db_path)
    if not is_inteiro(dias) or dias < 0:
        raise ValidationError("A janela de dias deve ser um inteiro não negativo", {"dias": dias})
    hoje = hoje or date.today()

    out = [
        {"produto": p, "dias_para_vencer": dias_para_vencer(p.data_validade, hoje)}
        for p in ProdutoRepo(db_path, conta_id).list()
        if is_vencendo(p, dias, hoje)
    ]
    out.sort(key=lambda r: (r["produto"].data_validade, r["produto"].nome))
    log_system_event("relatorio_vencimentos", {"dias": dias, "total": len(out)})
    return out


# ----------------------
# 3) Valor total
# ----------------------

def valor_total_estoque(*, conta_id: str, db_path: str = DB_PATH) -> Decimal:
    """Soma de ``quantidade_atual * preco_custo`` (custo ausente conta como 0)."""
    _prepara(db_path)
    total = Decimal("0")
    for p in ProdutoRepo(db_path, conta_id).list():
        total += p.quantidade_atual * (p.preco_custo or Decimal("0"))
    return total


# ----------------------
# 4) Movimentações
# ----------------------

def resumo_movimentacoes(
    produto_id: str,
    desde: Union[str, datetime, date],
    *,
    conta_id: str,
    db_path: str = DB_PATH,
) -> Dict[str, int]:
    """Total de entradas e de saídas do produto desde ``desde``.

    Ajustes são correções de inventário e ficam fora dos dois totais.
    Produto inexistente ou de outra conta → ProductNotFoundError
    (produtos inativos ainda têm histórico e são aceitos).
    """
    _prepara(db_path)
    ProdutoRepo(db_path, conta_id).get(produto_id, incluir_inativos=True)
    totais = {"entradas": 0, "saidas": 0}
    for mov in MovimentacaoRepo(db_path, conta_id).list_recent(desde):
        if mov.produto_id != produto_id:
            continue
        if mov.tipo == ENTRADA:
            totais["entradas"] += mov.quantidade
        elif mov.tipo == SAIDA:
            totais["saidas"] += mov.quantidade
    return totais


def movimentacoes_por_produto(
    desde: Optional[Union[str, datetime, date]] = None,
    *,
    conta_id: str,
    db_path: str = DB_PATH,
) -> List[Dict[str, Any]]:
    """Entradas e saídas por produto na janela (padrão: últimos N dias)."""
    _prepara(db_path)
    if desde is None:
        desde = _inicio_janela(_janela("janela_movimentacoes_dias", DEFAULTS.janela_movimentacoes_dias, db_path))

    agg: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"entradas": 0, "saidas": 0})
    for mov in MovimentacaoRepo(db_path, conta_id).list_recent(desde):
        it = agg[mov.produto_id]
        it["produto_id"] = mov.produto_id
        it["nome"] = mov.produto_nome
        if mov.tipo == ENTRADA:
            it["entradas"] += mov.quantidade
        elif mov.tipo == SAIDA:
            it["saidas"] += mov.quantidade

    out = [
        {"produto_id": v["produto_id"], "nome": v["nome"], "entradas": v["entradas"], "saidas": v["saidas"]}
        for v in agg.values()
    ]
    out.sort(key=lambda r: (r["nome"] or "", r["produto_id"]))
    return out


# ----------------------
# 5) Painel
# ----------------------

def resumo_estoque(
    *,
    conta_id: str,
    db_path: str = DB_PATH,
    janela_dias: Optional[int] = None,
    hoje: Optional[date] = None,
) -> Dict[str, Any]:
    """Números do painel de estoque: total, baixo, vencendo e valor."""
    log_system_event("resumo_estoque_start", {"conta_id": conta_id})
    _prepara(db_path)
    if janela_dias is None:
        janela_dias = _janela("janela_vencimento_dias", DEFAULTS.janela_vencimento_dias, db_path)
    produtos = ProdutoRepo(db_path, conta_id).list()
    out = {
        "total_produtos": len(produtos),
        "estoque_baixo": len(estoque_baixo(conta_id=conta_id, db_path=db_path)),
        "vencendo": len(vencendo_em(janela_dias, conta_id=conta_id, db_path=db_path, hoje=hoje)),
        "valor_total": valor_total_estoque(conta_id=conta_id, db_path=db_path),
    }
    log_system_event("resumo_estoque_done", {k: str(v) for k, v in out.items()})
    return out
