from datetime import date
from decimal import Decimal

import pytest

from estoque_vet.domain.errors import InvalidQuantityError, ValidationError
from estoque_vet.domain.models import Produto
from estoque_vet.domain.regras import (
    QUANTIDADE_MAXIMA,
    calcula_delta,
    is_estoque_baixo,
    is_vencendo,
    normaliza_campos_produto,
    valida_quantidade,
)


def test_calcula_delta_por_tipo():
    assert calcula_delta("entrada", 20, 10) == 20
    assert calcula_delta("saida", 12, 30) == -12
    assert calcula_delta("ajuste", 5, 18) == -13
    assert calcula_delta("ajuste", 18, 18) == 0


@pytest.mark.parametrize("tipo,qtd", [("entrada", 0), ("saida", -1), ("ajuste", -5)])
def test_valida_quantidade_fora_da_faixa(tipo, qtd):
    with pytest.raises(InvalidQuantityError):
        valida_quantidade(tipo, qtd)


@pytest.mark.parametrize(
    "tipo,qtd",
    [("transferencia", 1), ("entrada", 1.5), ("saida", "2"), ("entrada", True)],
)
def test_valida_quantidade_malformada(tipo, qtd):
    with pytest.raises(ValidationError):
        valida_quantidade(tipo, qtd)


def test_ajuste_para_zero_e_valido():
    valida_quantidade("ajuste", 0)


def test_estoque_baixo_limite_inclusivo():
    assert is_estoque_baixo(Produto(nome="A", categoria="X", quantidade_atual=5, quantidade_minima=5))
    assert not is_estoque_baixo(Produto(nome="A", categoria="X", quantidade_atual=6, quantidade_minima=5))


def test_vencendo_sem_validade_nunca_entra():
    hoje = date(2025, 1, 1)
    sem_validade = Produto(nome="A", categoria="X")
    limite = Produto(nome="B", categoria="X", data_validade=date(2025, 1, 31))
    depois = Produto(nome="C", categoria="X", data_validade=date(2025, 2, 1))
    vencido = Produto(nome="D", categoria="X", data_validade=date(2024, 12, 1))
    assert not is_vencendo(sem_validade, 30, hoje)
    assert is_vencendo(limite, 30, hoje)
    assert not is_vencendo(depois, 30, hoje)
    assert is_vencendo(vencido, 30, hoje)


def test_normaliza_campos_produto_defaults():
    out = normaliza_campos_produto({"nome": " Dipirona ", "categoria": "Medicamento", "preco_custo": "2.50"})
    assert out["nome"] == "Dipirona"
    assert out["unidade_medida"] == "unidade"
    assert out["quantidade_atual"] == 0
    assert out["quantidade_minima"] == 0
    assert out["preco_custo"] == Decimal("2.50")
    assert out["data_validade"] is None


@pytest.mark.parametrize(
    "campos",
    [
        {"nome": "", "categoria": "X"},
        {"nome": "A", "categoria": "  "},
        {"nome": "A", "categoria": "X", "quantidade_atual": -1},
        {"nome": "A", "categoria": "X", "quantidade_minima": 2.5},
        {"nome": "A", "categoria": "X", "unidade_medida": "caixa"},
        {"nome": "A", "categoria": "X", "preco_custo": "-1"},
        {"nome": "A", "categoria": "X", "preco_venda": "caro"},
        {"nome": "A", "categoria": "X", "data_validade": "31/31/2025"},
    ],
)
def test_normaliza_campos_produto_rejeita(campos):
    with pytest.raises(ValidationError):
        normaliza_campos_produto(campos)


def test_normaliza_parcial_so_valida_presentes():
    assert normaliza_campos_produto({"lote": "L-9"}, parcial=True) == {"lote": "L-9"}


def test_quantidade_acima_do_limite_do_banco():
    with pytest.raises(InvalidQuantityError):
        valida_quantidade("entrada", QUANTIDADE_MAXIMA + 1)
    with pytest.raises(InvalidQuantityError):
        valida_quantidade("ajuste", 2 ** 70)
    valida_quantidade("ajuste", QUANTIDADE_MAXIMA)
    with pytest.raises(ValidationError):
        normaliza_campos_produto({"nome": "A", "categoria": "X", "quantidade_atual": QUANTIDADE_MAXIMA + 1})
