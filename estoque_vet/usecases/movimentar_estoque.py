"""
UC: Movimentar estoque (entrada, saída, ajuste).

Único caminho autorizado para alterar `produto.quantidade_atual`.

Fluxo de `aplicar_movimentacao`:
1) Valida tipo e quantidade (sem tocar no banco).
2) Abre transação BEGIN IMMEDIATE: o lock de escrita é obtido antes
   de ler o saldo, então duas saídas simultâneas ficam serializadas.
3) Lê o produto (ativo, da conta), calcula delta e saldo novo.
4) Saldo novo negativo ou acima de QUANTIDADE_MAXIMA → InvalidQuantityError,
   nada é gravado.
5) Grava a movimentação e faz compare-and-swap do saldo na mesma
   transação; qualquer falha desfaz as duas escritas.

Conflitos de lock (`database is locked`) ou CAS sem efeito são
repetidos até `DEFAULTS.tentativas_conflito` vezes e depois
propagados como RetryableConflictError.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from estoque_vet.config import DB_PATH, DEFAULTS
from estoque_vet.adapters.planilhas import load_movimentacoes_from_xlsx
from estoque_vet.domain.errors import EstoqueError, InvalidQuantityError, RetryableConflictError
from estoque_vet.domain.models import AJUSTE, ENTRADA, SAIDA, Movimentacao, Produto
from estoque_vet.domain.regras import QUANTIDADE_MAXIMA, calcula_delta, valida_quantidade
from estoque_vet.infra.db import connect, transacao_imediata
from estoque_vet.infra.repositories import MovimentacaoRepo, ProdutoRepo, agora_iso
from estoque_vet.infra.logger import (
    log_transaction, log_movimentacao, log_database_operation,
    log_system_event, log_file_operation,
)


class _CasFalhou(Exception):
    """O saldo mudou entre a leitura e a gravação."""


@dataclass(frozen=True)
class ResultadoMovimentacao:
    produto: Produto
    movimentacao: Movimentacao


def _is_lock_error(exc: sqlite3.OperationalError) -> bool:
    msg = str(exc).lower()
    return "locked" in msg or "busy" in msg


def _aplicar_uma_vez(
    produtos: ProdutoRepo,
    movs: MovimentacaoRepo,
    produto_id: str,
    tipo: str,
    quantidade: int,
    motivo: Optional[str],
    observacoes: Optional[str],
    agendamento_id: Optional[str],
) -> ResultadoMovimentacao:
    with transacao_imediata(produtos.db_path) as conn:
        produto = produtos._get(conn, produto_id)
        anterior = produto.quantidade_atual
        delta = calcula_delta(tipo, quantidade, anterior)
        nova = anterior + delta
        if nova < 0:
            raise InvalidQuantityError(
                "A quantidade não pode ficar negativa",
                {"produto_id": produto_id, "quantidade_anterior": anterior, "delta": delta},
            )
        if nova > QUANTIDADE_MAXIMA:
            raise InvalidQuantityError(
                f"A quantidade não pode passar de {QUANTIDADE_MAXIMA}",
                {"produto_id": produto_id, "quantidade_anterior": anterior, "delta": delta},
            )

        # criado_em nunca anterior ao último registro do produto
        instante = agora_iso()
        ultimo = movs.ultimo_instante(conn, produto_id)
        if ultimo and ultimo > instante:
            instante = ultimo

        mov = movs.append(
            {
                "produto_id": produto_id,
                "tipo": tipo,
                "quantidade": quantidade,
                "delta": delta,
                "quantidade_anterior": anterior,
                "quantidade_nova": nova,
                "motivo": motivo,
                "observacoes": observacoes,
                "agendamento_id": agendamento_id,
                "criado_em": instante,
            },
            conn=conn,
        )
        if not produtos._gravar_quantidade(conn, produto_id, anterior, nova):
            raise _CasFalhou(produto_id)

        atualizado = produtos._get(conn, produto_id)
    return ResultadoMovimentacao(produto=atualizado, movimentacao=mov)


def aplicar_movimentacao(
    produto_id: str,
    tipo: str,
    quantidade: int,
    motivo: Optional[str] = None,
    observacoes: Optional[str] = None,
    agendamento_id: Optional[str] = None,
    *,
    conta_id: str,
    db_path: str = DB_PATH,
) -> ResultadoMovimentacao:
    """Aplica uma movimentação de forma atômica.

    Args:
        produto_id: Produto da conta a movimentar.
        tipo: ``'entrada'``, ``'saida'`` ou ``'ajuste'``.
        quantidade: Quantidade movimentada; no ajuste é o novo saldo.
        motivo, observacoes: Texto livre opcional.
        agendamento_id: Agendamento relacionado (opcional).
        conta_id: Conta dona dos registros.
        db_path: Caminho do SQLite.

    Returns:
        ResultadoMovimentacao com o produto já atualizado e o registro gravado.

    Raises:
        ValidationError: tipo desconhecido ou quantidade não inteira.
        InvalidQuantityError: quantidade fora da faixa ou saldo negativo.
        ProductNotFoundError: produto inexistente ou inativo.
        RetryableConflictError: conflito de escrita persistente.
    """
    log_movimentacao("request", produto_id, tipo, quantidade, motivo=motivo)
    dados = {"produto_id": produto_id, "tipo": tipo, "quantidade": quantidade}
    try:
        valida_quantidade(tipo, quantidade)
    except EstoqueError as e:
        log_transaction("movimentacao", dados, error=e.message)
        raise

    produtos = ProdutoRepo(db_path, conta_id)
    movs = MovimentacaoRepo(db_path, conta_id)

    tentativas = max(1, DEFAULTS.tentativas_conflito)
    ultimo_erro: Optional[Exception] = None
    for tentativa in range(1, tentativas + 1):
        try:
            res = _aplicar_uma_vez(produtos, movs, produto_id, tipo, quantidade,
                                   motivo, observacoes, agendamento_id)
        except EstoqueError as e:
            log_movimentacao("rejected", produto_id, tipo, quantidade, erro=e.message)
            log_transaction("movimentacao", dados, error=e.message)
            raise
        except _CasFalhou as e:
            ultimo_erro = e
            log_movimentacao("conflict", produto_id, tipo, quantidade, tentativa=tentativa, causa="cas")
            continue
        except sqlite3.OperationalError as e:
            if not _is_lock_error(e):
                raise
            ultimo_erro = e
            log_movimentacao("conflict", produto_id, tipo, quantidade, tentativa=tentativa, causa=str(e))
            continue

        mov = res.movimentacao
        log_database_operation("movimentacao", "INSERT", 1, produto_id=produto_id, id=mov.id)
        log_database_operation("produto", "UPDATE_QUANTIDADE", 1, produto_id=produto_id)
        log_movimentacao(
            "applied", produto_id, tipo, quantidade,
            anterior=mov.quantidade_anterior, nova=mov.quantidade_nova, delta=mov.delta,
        )
        log_transaction("movimentacao", dados, result={"id": mov.id, "quantidade_nova": mov.quantidade_nova})
        return res

    msg = f"Conflito de escrita ao movimentar o produto após {tentativas} tentativas"
    log_transaction("movimentacao", dados, error=msg)
    log_system_event("movimentacao_conflito", {**dados, "erro": str(ultimo_erro)}, level="warning")
    raise RetryableConflictError(msg, {**dados, "tentativas": tentativas}) from ultimo_erro


def registrar_entrada(produto_id: str, quantidade: int, motivo: Optional[str] = None,
                      observacoes: Optional[str] = None, agendamento_id: Optional[str] = None,
                      *, conta_id: str, db_path: str = DB_PATH) -> ResultadoMovimentacao:
    return aplicar_movimentacao(produto_id, ENTRADA, quantidade, motivo, observacoes, agendamento_id,
                                conta_id=conta_id, db_path=db_path)


def registrar_saida(produto_id: str, quantidade: int, motivo: Optional[str] = None,
                    observacoes: Optional[str] = None, agendamento_id: Optional[str] = None,
                    *, conta_id: str, db_path: str = DB_PATH) -> ResultadoMovimentacao:
    return aplicar_movimentacao(produto_id, SAIDA, quantidade, motivo, observacoes, agendamento_id,
                                conta_id=conta_id, db_path=db_path)


def registrar_ajuste(produto_id: str, nova_quantidade: int, motivo: Optional[str] = None,
                     observacoes: Optional[str] = None,
                     *, conta_id: str, db_path: str = DB_PATH) -> ResultadoMovimentacao:
    """Ajuste de inventário: ``nova_quantidade`` é o saldo absoluto desejado."""
    return aplicar_movimentacao(produto_id, AJUSTE, nova_quantidade, motivo, observacoes,
                                conta_id=conta_id, db_path=db_path)


def run_movimentacoes_lote(path: str, *, conta_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê um XLSX de movimentações e aplica cada linha.

    Cada linha é uma transação própria: uma linha rejeitada não desfaz
    as anteriores. As falhas voltam em ``erros`` com o número da linha
    da planilha (cabeçalho = linha 1).
    """
    log_system_event("movimentacoes_lote_start", {"file_path": path})
    rows = load_movimentacoes_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))

    sucessos = 0
    erros: List[Dict[str, Any]] = []
    for i, row in enumerate(rows, start=2):
        linha = row.get("_linha", i)
        try:
            aplicar_movimentacao(
                row["produto_id"], row["tipo"], row["quantidade"],
                row.get("motivo"), row.get("observacoes"), row.get("agendamento_id"),
                conta_id=conta_id, db_path=db_path,
            )
            sucessos += 1
        except EstoqueError as e:
            erros.append({"linha": linha, "mensagem": e.message})

    result = {"arquivo": path, "tipo": "Movimentações", "total": len(rows), "sucessos": sucessos, "erros": erros}
    log_system_event("movimentacoes_lote_done", {"file_path": path, "sucessos": sucessos, "erros": len(erros)})
    return result


def verificar_consistencia(produto_id: str, *, conta_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Reconstrói o saldo a partir do histórico e compara com o saldo gravado.

    Verifica também o encadeamento: cada registro parte do saldo em que
    o anterior terminou e respeita ``anterior + delta == nova``.
    """
    produto = ProdutoRepo(db_path, conta_id).get(produto_id, incluir_inativos=True)
    historico = MovimentacaoRepo(db_path, conta_id).list_by_produto(produto_id)

    saldo = produto.quantidade_inicial
    encadeado = True
    for mov in historico:
        if mov.quantidade_anterior != saldo or mov.quantidade_anterior + mov.delta != mov.quantidade_nova:
            encadeado = False
        saldo += mov.delta

    with connect(db_path) as c:
        row = c.execute(
            "SELECT quantidade_reconstruida FROM vw_movimentacao_saldo WHERE produto_id = ? AND conta_id = ?",
            (produto_id, conta_id),
        ).fetchone()
    reconstruida = int(row[0]) if row else saldo

    return {
        "produto_id": produto_id,
        "quantidade_atual": produto.quantidade_atual,
        "quantidade_reconstruida": reconstruida,
        "consistente": encadeado and reconstruida == saldo == produto.quantidade_atual,
        "movimentacoes": len(historico),
    }
