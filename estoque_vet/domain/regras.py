"""
Regras de negócio puras do estoque.

Este módulo concentra o cálculo do delta de uma movimentação e as
classificações usadas pelos relatórios (estoque baixo, vencimento).
As funções não acessam o banco e não alteram estado externo, o que
permite testá-las isoladamente.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from estoque_vet.domain.errors import InvalidQuantityError, ValidationError
from estoque_vet.domain.models import (
    AJUSTE, ENTRADA, SAIDA, TIPOS_MOVIMENTACAO, UNIDADES_MEDIDA, Produto,
)


# maior inteiro que o SQLite grava em uma coluna INTEGER
QUANTIDADE_MAXIMA = 2 ** 63 - 1


def is_inteiro(val) -> bool:
    """``True`` para ``int`` de verdade (``bool`` não conta)."""
    return isinstance(val, int) and not isinstance(val, bool)


def valida_quantidade(tipo: str, quantidade: int) -> None:
    """Valida o tipo e a quantidade informada para uma movimentação.

    Regras:
        - ``tipo`` deve ser ``'entrada'``, ``'saida'`` ou ``'ajuste'``.
        - entrada/saída: ``quantidade`` inteira e positiva.
        - ajuste: ``quantidade`` inteira e não negativa (é o novo saldo).
        - nenhuma quantidade acima de ``QUANTIDADE_MAXIMA``.

    Raises:
        ValidationError: tipo desconhecido ou quantidade não inteira.
        InvalidQuantityError: quantidade fora da faixa permitida.
    """
    if tipo not in TIPOS_MOVIMENTACAO:
        raise ValidationError(f"Tipo de movimentação inválido: {tipo!r}", {"tipo": tipo})
    if not is_inteiro(quantidade):
        raise ValidationError("A quantidade deve ser um número inteiro", {"quantidade": quantidade})
    if quantidade > QUANTIDADE_MAXIMA:
        raise InvalidQuantityError(f"A quantidade não pode passar de {QUANTIDADE_MAXIMA}",
                                   {"quantidade": quantidade})
    if tipo == AJUSTE:
        if quantidade < 0:
            raise InvalidQuantityError("A nova quantidade do ajuste não pode ser negativa",
                                       {"quantidade": quantidade})
    elif quantidade <= 0:
        raise InvalidQuantityError("A quantidade deve ser maior que zero", {"quantidade": quantidade})


def calcula_delta(tipo: str, quantidade: int, atual: int) -> int:
    """Calcula o delta aplicado ao saldo atual.

    - entrada: ``+quantidade``
    - saida:   ``-quantidade``
    - ajuste:  ``quantidade - atual`` (``quantidade`` é o saldo alvo)
    """
    if tipo == ENTRADA:
        return quantidade
    if tipo == SAIDA:
        return -quantidade
    if tipo == AJUSTE:
        return quantidade - atual
    raise ValidationError(f"Tipo de movimentação inválido: {tipo!r}", {"tipo": tipo})


def is_estoque_baixo(produto: Produto) -> bool:
    # limite inclusivo: no mínimo já é estoque baixo
    return produto.quantidade_atual <= produto.quantidade_minima


def dias_para_vencer(data_validade: Optional[date], hoje: Optional[date] = None) -> Optional[int]:
    if data_validade is None:
        return None
    hoje = hoje or date.today()
    return (data_validade - hoje).days


def is_vencendo(produto: Produto, dias: int, hoje: Optional[date] = None) -> bool:
    """Produto com validade até ``hoje + dias``. Sem validade nunca vence."""
    if produto.data_validade is None:
        return False
    hoje = hoje or date.today()
    return produto.data_validade <= hoje + timedelta(days=dias)


# -------------------------
# Cadastro de produto
# -------------------------

CAMPOS_EDITAVEIS = (
    "nome", "categoria", "unidade_medida", "quantidade_minima",
    "preco_custo", "preco_venda", "fornecedor", "data_validade",
    "lote", "descricao", "codigo_barras",
)


def _texto_obrigatorio(campo: str, val) -> str:
    s = str(val).strip() if val is not None else ""
    if not s:
        raise ValidationError(f"O campo '{campo}' é obrigatório", {"campo": campo})
    return s


def _texto_opcional(val) -> Optional[str]:
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def _zero_se_none(val):
    return 0 if val is None else val


def _inteiro_nao_negativo(campo: str, val) -> int:
    if not is_inteiro(val):
        raise ValidationError(f"O campo '{campo}' deve ser inteiro", {"campo": campo, "valor": val})
    if val < 0:
        raise ValidationError(f"O campo '{campo}' não pode ser negativo", {"campo": campo, "valor": val})
    if val > QUANTIDADE_MAXIMA:
        raise ValidationError(f"O campo '{campo}' passa do limite de {QUANTIDADE_MAXIMA}",
                              {"campo": campo, "valor": val})
    return val


def _preco(campo: str, val) -> Optional[Decimal]:
    if val is None or val == "":
        return None
    if isinstance(val, bool):
        raise ValidationError(f"O campo '{campo}' deve ser numérico", {"campo": campo, "valor": val})
    try:
        d = Decimal(str(val))
    except InvalidOperation:
        raise ValidationError(f"O campo '{campo}' deve ser numérico", {"campo": campo, "valor": val})
    if not d.is_finite() or d < 0:
        raise ValidationError(f"O campo '{campo}' não pode ser negativo", {"campo": campo, "valor": val})
    return d


def _data(campo: str, val) -> Optional[date]:
    if val is None or val == "":
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    try:
        return date.fromisoformat(str(val).strip()[:10])
    except ValueError:
        raise ValidationError(f"Data inválida em '{campo}': {val!r}", {"campo": campo, "valor": val})


def normaliza_campos_produto(campos: Dict[str, Any], parcial: bool = False) -> Dict[str, Any]:
    """Valida e normaliza os campos de cadastro de um produto.

    Com ``parcial=True`` só os campos presentes em ``campos`` são
    validados (uso em edição). Campos fora de ``CAMPOS_EDITAVEIS`` e
    ``quantidade_atual`` devem ser tratados pelo chamador.

    Raises:
        ValidationError: campo obrigatório vazio, unidade desconhecida,
            quantidade negativa ou não inteira, preço negativo.
    """
    out: Dict[str, Any] = {}

    if not parcial or "nome" in campos:
        out["nome"] = _texto_obrigatorio("nome", campos.get("nome"))
    if not parcial or "categoria" in campos:
        out["categoria"] = _texto_obrigatorio("categoria", campos.get("categoria"))
    if not parcial or "unidade_medida" in campos:
        unidade = (_texto_opcional(campos.get("unidade_medida")) or "unidade").lower()
        if unidade not in UNIDADES_MEDIDA:
            raise ValidationError(f"Unidade de medida inválida: {unidade!r}", {"unidade_medida": unidade})
        out["unidade_medida"] = unidade
    if not parcial:
        out["quantidade_atual"] = _inteiro_nao_negativo("quantidade_atual", _zero_se_none(campos.get("quantidade_atual")))
    if not parcial or "quantidade_minima" in campos:
        out["quantidade_minima"] = _inteiro_nao_negativo("quantidade_minima", _zero_se_none(campos.get("quantidade_minima")))
    for campo in ("preco_custo", "preco_venda"):
        if not parcial or campo in campos:
            out[campo] = _preco(campo, campos.get(campo))
    if not parcial or "data_validade" in campos:
        out["data_validade"] = _data("data_validade", campos.get("data_validade"))
    for campo in ("fornecedor", "lote", "descricao", "codigo_barras"):
        if not parcial or campo in campos:
            out[campo] = _texto_opcional(campos.get(campo))
    return out
