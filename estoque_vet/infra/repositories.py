# estoque_vet/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- ParamsRepo
- ProdutoRepo
- MovimentacaoRepo

Todas as consultas de produto e movimentação são filtradas pela conta
(`conta_id`) informada pelo colaborador de autenticação.
"""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .db import connect
from estoque_vet.domain.errors import ProductNotFoundError, ValidationError
from estoque_vet.domain.models import Movimentacao, Produto
from estoque_vet.domain.regras import CAMPOS_EDITAVEIS, normaliza_campos_produto


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return dict(row)
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _novo_id() -> str:
    return uuid.uuid4().hex


def agora_iso() -> str:
    """Instante atual em UTC, ISO-8601 com microssegundos (ordenável como texto)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def to_iso(instante: Union[str, datetime, date]) -> str:
    """Normaliza um instante para o mesmo formato gravado em `criado_em`."""
    if isinstance(instante, str):
        return instante
    if isinstance(instante, datetime):
        if instante.tzinfo is None:
            instante = instante.replace(tzinfo=timezone.utc)
        return instante.astimezone(timezone.utc).isoformat(timespec="microseconds")
    return datetime(instante.year, instante.month, instante.day, tzinfo=timezone.utc).isoformat(
        timespec="microseconds"
    )


def _to_db(val: Any) -> Any:
    if isinstance(val, bool):
        return int(val)
    if isinstance(val, Decimal):
        return str(val)
    if isinstance(val, date):
        return val.isoformat()
    return val


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_int(self, key: str, default: int) -> int:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return int(float(v))
        except ValueError:
            return default


# -------------------------
# Produto
# -------------------------

_PRODUTO_COLS = (
    "id, conta_id, nome, categoria, unidade_medida, quantidade_atual, quantidade_inicial, "
    "quantidade_minima, preco_custo, preco_venda, fornecedor, data_validade, lote, "
    "descricao, codigo_barras, ativo, criado_em, atualizado_em"
)

# campos que nunca são gravados por `update`
_CAMPOS_PROTEGIDOS = {
    "quantidade_atual", "quantidade_inicial", "id", "conta_id",
    "ativo", "criado_em", "atualizado_em",
}


class ProdutoRepo:
    def __init__(self, db_path: str, conta_id: str):
        self.db_path = db_path
        self.conta_id = conta_id

    def create(self, produto: Union[Dict[str, Any], Produto]) -> Produto:
        """Cadastra um produto; o saldo informado vira a quantidade inicial."""
        dados = normaliza_campos_produto(_as_dict(produto))
        agora = agora_iso()
        payload = {k: _to_db(v) for k, v in dados.items()}
        payload.update(
            id=_novo_id(),
            conta_id=self.conta_id,
            quantidade_inicial=dados["quantidade_atual"],
            ativo=1,
            criado_em=agora,
            atualizado_em=agora,
        )
        with connect(self.db_path) as c:
            c.execute(
                f"""
                INSERT INTO produto ({_PRODUTO_COLS})
                VALUES
                    (:id, :conta_id, :nome, :categoria, :unidade_medida, :quantidade_atual,
                     :quantidade_inicial, :quantidade_minima, :preco_custo, :preco_venda,
                     :fornecedor, :data_validade, :lote, :descricao, :codigo_barras,
                     :ativo, :criado_em, :atualizado_em)
                """,
                payload,
            )
        return self.get(payload["id"])

    def get(self, produto_id: str, incluir_inativos: bool = False) -> Produto:
        with connect(self.db_path) as c:
            return self._get(c, produto_id, incluir_inativos)

    def _get(self, conn: sqlite3.Connection, produto_id: str, incluir_inativos: bool = False) -> Produto:
        row = conn.execute(
            f"SELECT {_PRODUTO_COLS} FROM produto WHERE id = ? AND conta_id = ?",
            (produto_id, self.conta_id),
        ).fetchone()
        if row is None or (not row["ativo"] and not incluir_inativos):
            raise ProductNotFoundError(produto_id)
        return Produto.from_row(row)

    def update(self, produto_id: str, patch: Dict[str, Any]) -> Produto:
        """Edição parcial. O saldo só muda pelo serviço de movimentação."""
        proibidos = sorted(set(patch) & _CAMPOS_PROTEGIDOS)
        if proibidos:
            raise ValidationError(
                f"Campos não editáveis diretamente: {', '.join(proibidos)}",
                {"campos": proibidos},
            )
        desconhecidos = sorted(set(patch) - set(CAMPOS_EDITAVEIS))
        if desconhecidos:
            raise ValidationError(
                f"Campos desconhecidos: {', '.join(desconhecidos)}",
                {"campos": desconhecidos},
            )
        dados = normaliza_campos_produto(patch, parcial=True)
        with connect(self.db_path) as c:
            self._get(c, produto_id)
            if dados:
                payload = {k: _to_db(v) for k, v in dados.items()}
                sets = ", ".join(f"{k} = :{k}" for k in payload)
                payload.update(id=produto_id, conta_id=self.conta_id, atualizado_em=agora_iso())
                c.execute(
                    f"UPDATE produto SET {sets}, atualizado_em = :atualizado_em "
                    "WHERE id = :id AND conta_id = :conta_id",
                    payload,
                )
            return self._get(c, produto_id)

    def desativar(self, produto_id: str) -> None:
        """Exclusão lógica; o histórico de movimentações é preservado."""
        with connect(self.db_path) as c:
            cur = c.execute(
                "UPDATE produto SET ativo = 0, atualizado_em = ? WHERE id = ? AND conta_id = ?",
                (agora_iso(), produto_id, self.conta_id),
            )
            if cur.rowcount == 0:
                raise ProductNotFoundError(produto_id)

    def list(self, categoria: Optional[str] = None, busca: Optional[str] = None) -> List[Produto]:
        """Produtos ativos, ordenados por nome (e id, para ordem estável)."""
        sql = f"SELECT {_PRODUTO_COLS} FROM produto WHERE conta_id = ? AND ativo = 1"
        args: List[Any] = [self.conta_id]
        if categoria:
            sql += " AND categoria = ?"
            args.append(categoria)
        if busca:
            sql += " AND (instr(casefold(nome), casefold(?)) > 0 OR instr(casefold(categoria), casefold(?)) > 0)"
            args.extend([busca, busca])
        sql += " ORDER BY nome, id"
        with connect(self.db_path) as c:
            return [Produto.from_row(r) for r in c.execute(sql, args).fetchall()]

    def categorias(self) -> List[str]:
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT DISTINCT categoria FROM produto WHERE conta_id = ? AND ativo = 1 ORDER BY categoria",
                (self.conta_id,),
            )
            return [r[0] for r in cur.fetchall()]

    def list_estoque_baixo(self) -> List[Produto]:
        with connect(self.db_path) as c:
            cur = c.execute(
                f"SELECT {_PRODUTO_COLS} FROM vw_estoque_baixo WHERE conta_id = ? ORDER BY nome, id",
                (self.conta_id,),
            )
            return [Produto.from_row(r) for r in cur.fetchall()]

    def _gravar_quantidade(self, conn: sqlite3.Connection, produto_id: str, anterior: int, nova: int) -> bool:
        """Compare-and-swap do saldo. Reservado ao serviço de movimentação.

        Só grava se o saldo ainda for ``anterior``; deve ser chamado dentro
        da transação que também grava a movimentação.
        """
        cur = conn.execute(
            """
            UPDATE produto
               SET quantidade_atual = ?, atualizado_em = ?
             WHERE id = ? AND conta_id = ? AND ativo = 1 AND quantidade_atual = ?
            """,
            (nova, agora_iso(), produto_id, self.conta_id, anterior),
        )
        return cur.rowcount == 1


# -------------------------
# Movimentações
# -------------------------

_MOV_COLS = (
    "m.id, m.conta_id, m.produto_id, m.tipo, m.quantidade, m.delta, m.quantidade_anterior, "
    "m.quantidade_nova, m.motivo, m.observacoes, m.agendamento_id, m.criado_em, "
    "p.nome AS produto_nome"
)


class MovimentacaoRepo:
    def __init__(self, db_path: str, conta_id: str):
        self.db_path = db_path
        self.conta_id = conta_id

    def append(self, movimentacao: Union[Dict[str, Any], Movimentacao],
               conn: Optional[sqlite3.Connection] = None) -> Movimentacao:
        """Insere a movimentação exatamente como recebida (sem validação).

        Com ``conn`` a escrita participa da transação do chamador.
        """
        row = _as_dict(movimentacao)
        row.pop("produto_nome", None)
        row["id"] = row.get("id") or _novo_id()
        row["conta_id"] = self.conta_id
        row["criado_em"] = row.get("criado_em") or agora_iso()
        for opcional in ("motivo", "observacoes", "agendamento_id"):
            row.setdefault(opcional, None)
        sql = """
            INSERT INTO movimentacao
                (id, conta_id, produto_id, tipo, quantidade, delta, quantidade_anterior,
                 quantidade_nova, motivo, observacoes, agendamento_id, criado_em)
            VALUES
                (:id, :conta_id, :produto_id, :tipo, :quantidade, :delta, :quantidade_anterior,
                 :quantidade_nova, :motivo, :observacoes, :agendamento_id, :criado_em)
        """
        if conn is not None:
            conn.execute(sql, row)
        else:
            with connect(self.db_path) as c:
                c.execute(sql, row)
        return Movimentacao(**row)

    def ultimo_instante(self, conn: sqlite3.Connection, produto_id: str) -> Optional[str]:
        row = conn.execute(
            "SELECT MAX(criado_em) FROM movimentacao WHERE produto_id = ? AND conta_id = ?",
            (produto_id, self.conta_id),
        ).fetchone()
        return row[0] if row else None

    def _select(self, where: str, args: List[Any], order: str) -> List[Movimentacao]:
        sql = (
            f"SELECT {_MOV_COLS} FROM movimentacao m "
            "JOIN produto p ON p.id = m.produto_id "
            f"WHERE m.conta_id = ? {where} ORDER BY {order}"
        )
        with connect(self.db_path) as c:
            return [Movimentacao.from_row(r) for r in c.execute(sql, [self.conta_id, *args]).fetchall()]

    def list_by_produto(self, produto_id: str) -> List[Movimentacao]:
        """Histórico do produto em ordem de criação (ascendente)."""
        return self._select("AND m.produto_id = ?", [produto_id], "m.criado_em, m.seq")

    def list_recent(self, desde: Union[str, datetime, date]) -> List[Movimentacao]:
        """Movimentações de todos os produtos criadas em ``desde`` ou depois."""
        return self._select("AND m.criado_em >= ?", [to_iso(desde)], "m.criado_em, m.seq")

    def list(self, tipo: Optional[str] = None, busca: Optional[str] = None) -> List[Movimentacao]:
        """Listagem geral, mais recentes primeiro."""
        where = ""
        args: List[Any] = []
        if tipo:
            where += " AND m.tipo = ?"
            args.append(tipo)
        if busca:
            where += " AND (instr(casefold(p.nome), casefold(?)) > 0 OR instr(casefold(COALESCE(m.motivo, '')), casefold(?)) > 0)"
            args.extend([busca, busca])
        return self._select(where, args, "m.criado_em DESC, m.seq DESC")
