# estoque_vet/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios aceitam dicionários ou dataclasses na escrita e
  devolvem dataclasses na leitura.
- `Movimentacao` é imutável: o histórico de movimentações é só de inserção.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional


UNIDADES_MEDIDA = ("unidade", "ml", "mg", "g", "kg", "litro")

ENTRADA = "entrada"
SAIDA = "saida"
AJUSTE = "ajuste"
TIPOS_MOVIMENTACAO = (ENTRADA, SAIDA, AJUSTE)


def _to_decimal(val: Any) -> Optional[Decimal]:
    if val is None or val == "":
        return None
    return Decimal(str(val))


def _to_date(val: Any) -> Optional[date]:
    if val is None or val == "":
        return None
    if isinstance(val, date):
        return val
    return date.fromisoformat(str(val)[:10])


@dataclass
class Produto:
    """Cadastro de produto do estoque."""
    nome: str
    categoria: str
    unidade_medida: str = "unidade"
    quantidade_atual: int = 0
    quantidade_minima: int = 0
    preco_custo: Optional[Decimal] = None
    preco_venda: Optional[Decimal] = None
    fornecedor: Optional[str] = None
    data_validade: Optional[date] = None
    lote: Optional[str] = None
    descricao: Optional[str] = None
    codigo_barras: Optional[str] = None
    ativo: bool = True
    id: Optional[str] = None
    conta_id: Optional[str] = None
    quantidade_inicial: Optional[int] = None
    criado_em: Optional[str] = None
    atualizado_em: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Produto":
        return cls(
            id=row["id"],
            conta_id=row["conta_id"],
            nome=row["nome"],
            categoria=row["categoria"],
            unidade_medida=row["unidade_medida"],
            quantidade_atual=int(row["quantidade_atual"]),
            quantidade_inicial=int(row["quantidade_inicial"]),
            quantidade_minima=int(row["quantidade_minima"]),
            preco_custo=_to_decimal(row["preco_custo"]),
            preco_venda=_to_decimal(row["preco_venda"]),
            fornecedor=row["fornecedor"],
            data_validade=_to_date(row["data_validade"]),
            lote=row["lote"],
            descricao=row["descricao"],
            codigo_barras=row["codigo_barras"],
            ativo=bool(row["ativo"]),
            criado_em=row["criado_em"],
            atualizado_em=row["atualizado_em"],
        )


@dataclass(frozen=True)
class Movimentacao:
    """Registro imutável do histórico de movimentações."""
    produto_id: str
    tipo: str                       # 'entrada' | 'saida' | 'ajuste'
    quantidade: int                 # magnitude (entrada/saida) ou alvo absoluto (ajuste)
    delta: int
    quantidade_anterior: int
    quantidade_nova: int
    motivo: Optional[str] = None
    observacoes: Optional[str] = None
    agendamento_id: Optional[str] = None
    id: Optional[str] = None
    conta_id: Optional[str] = None
    criado_em: Optional[str] = None
    # preenchido nas consultas que fazem join com produto
    produto_nome: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Movimentacao":
        keys = row.keys()
        return cls(
            id=row["id"],
            conta_id=row["conta_id"],
            produto_id=row["produto_id"],
            tipo=row["tipo"],
            quantidade=int(row["quantidade"]),
            delta=int(row["delta"]),
            quantidade_anterior=int(row["quantidade_anterior"]),
            quantidade_nova=int(row["quantidade_nova"]),
            motivo=row["motivo"],
            observacoes=row["observacoes"],
            agendamento_id=row["agendamento_id"],
            criado_em=row["criado_em"],
            produto_nome=row["produto_nome"] if "produto_nome" in keys else None,
        )
