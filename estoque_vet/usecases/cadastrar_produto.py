"""
UC: Cadastro de produtos (único e em lote).
- cadastrar_produto(dados): valida e registra um produto.
- run_produtos_lote(path): lê XLSX com o adapter e registra cada linha.

Obs.:
- O saldo informado no cadastro vira a quantidade inicial do produto;
  depois disso ele só muda por movimentação.
"""

from __future__ import annotations

from typing import Any, Dict, List

from estoque_vet.config import DB_PATH
from estoque_vet.adapters.planilhas import load_produtos_from_xlsx
from estoque_vet.domain.errors import EstoqueError
from estoque_vet.domain.models import Produto
from estoque_vet.infra.repositories import ProdutoRepo
from estoque_vet.infra.logger import (
    log_transaction, log_database_operation, log_system_event, log_file_operation,
)


def cadastrar_produto(dados: Dict[str, Any], *, conta_id: str, db_path: str = DB_PATH) -> Produto:
    """Registra um produto novo para a conta."""
    try:
        produto = ProdutoRepo(db_path, conta_id).create(dados)
    except EstoqueError as e:
        log_transaction("cadastro_produto", {"nome": dados.get("nome")}, error=e.message)
        raise
    log_database_operation("produto", "INSERT", 1, id=produto.id, nome=produto.nome)
    log_transaction("cadastro_produto", {"nome": produto.nome}, result={"id": produto.id})
    return produto


def run_produtos_lote(path: str, *, conta_id: str, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Lê um XLSX de PRODUTOS e cadastra todas as linhas válidas.

    Linhas inválidas não interrompem o lote; voltam em ``erros`` com o
    número da linha da planilha (cabeçalho = linha 1).
    """
    log_system_event("produtos_lote_start", {"file_path": path})
    rows = load_produtos_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))

    criados: List[str] = []
    erros: List[Dict[str, Any]] = []
    for i, row in enumerate(rows, start=2):
        linha = row.pop("_linha", i)
        try:
            criados.append(cadastrar_produto(row, conta_id=conta_id, db_path=db_path).id)
        except EstoqueError as e:
            erros.append({"linha": linha, "mensagem": e.message})

    result = {
        "arquivo": path,
        "tipo": "Produtos",
        "total": len(rows),
        "sucessos": len(criados),
        "ids": criados,
        "erros": erros,
    }
    log_system_event("produtos_lote_done", {"file_path": path, "sucessos": len(criados), "erros": len(erros)})
    return result
