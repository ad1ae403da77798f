from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from estoque_vet.domain.errors import ProductNotFoundError, ValidationError
from estoque_vet.infra.repositories import ParamsRepo, ProdutoRepo
from estoque_vet.usecases.movimentar_estoque import registrar_ajuste, registrar_entrada, registrar_saida
from estoque_vet.usecases.relatorios import (
    estoque_baixo,
    movimentacoes_por_produto,
    resumo_estoque,
    resumo_movimentacoes,
    valor_total_estoque,
    vencendo_em,
)

CONTA = "clinica-1"
HOJE = date(2025, 3, 1)


def _seed(db_path):
    repo = ProdutoRepo(db_path, CONTA)
    no_minimo = repo.create({"nome": "Amoxicilina", "categoria": "Medicamento",
                             "quantidade_atual": 5, "quantidade_minima": 5,
                             "preco_custo": "2.50", "data_validade": HOJE + timedelta(days=30)})
    acima = repo.create({"nome": "Dipirona", "categoria": "Medicamento",
                         "quantidade_atual": 6, "quantidade_minima": 5,
                         "preco_custo": "1.10", "data_validade": HOJE + timedelta(days=31)})
    sem_validade = repo.create({"nome": "Gaze", "categoria": "Material",
                                "quantidade_atual": 0, "quantidade_minima": 0})
    vencido = repo.create({"nome": "Vacina V8", "categoria": "Vacina",
                           "quantidade_atual": 2, "quantidade_minima": 1,
                           "preco_custo": "40", "data_validade": HOJE - timedelta(days=3)})
    return no_minimo, acima, sem_validade, vencido


def test_estoque_baixo_inclusivo(db_path):
    no_minimo, acima, sem_validade, _ = _seed(db_path)
    nomes = [p.nome for p in estoque_baixo(conta_id=CONTA, db_path=db_path)]
    assert nomes == ["Amoxicilina", "Gaze"]


def test_estoque_baixo_ignora_inativos_e_outras_contas(db_path):
    no_minimo, *_ = _seed(db_path)
    ProdutoRepo(db_path, CONTA).desativar(no_minimo.id)
    assert [p.nome for p in estoque_baixo(conta_id=CONTA, db_path=db_path)] == ["Gaze"]
    assert estoque_baixo(conta_id="outra", db_path=db_path) == []


def test_vencendo_em_janela(db_path):
    _seed(db_path)
    res = vencendo_em(30, conta_id=CONTA, db_path=db_path, hoje=HOJE)
    assert [(r["produto"].nome, r["dias_para_vencer"]) for r in res] == [("Vacina V8", -3), ("Amoxicilina", 30)]


def test_vencendo_em_usa_parametro_quando_omitido(db_path):
    _seed(db_path)
    ParamsRepo(db_path).set_many([("janela_vencimento_dias", "31")])
    res = vencendo_em(conta_id=CONTA, db_path=db_path, hoje=HOJE)
    assert {r["produto"].nome for r in res} == {"Vacina V8", "Amoxicilina", "Dipirona"}


@pytest.mark.parametrize("dias", [-1, 2.5])
def test_vencendo_em_rejeita_janela_invalida(db_path, dias):
    with pytest.raises(ValidationError):
        vencendo_em(dias, conta_id=CONTA, db_path=db_path)


def test_valor_total_custo_ausente_conta_zero(db_path):
    _seed(db_path)
    # 5 * 2.50 + 6 * 1.10 + 0 + 2 * 40
    assert valor_total_estoque(conta_id=CONTA, db_path=db_path) == Decimal("99.10")


def test_valor_total_sem_produtos(db_path):
    assert valor_total_estoque(conta_id=CONTA, db_path=db_path) == Decimal("0")


def test_resumo_movimentacoes_ignora_ajustes(db_path):
    no_minimo, acima, *_ = _seed(db_path)
    inicio = datetime.now(timezone.utc) - timedelta(minutes=1)
    registrar_entrada(no_minimo.id, 10, conta_id=CONTA, db_path=db_path)
    registrar_saida(no_minimo.id, 4, conta_id=CONTA, db_path=db_path)
    registrar_saida(no_minimo.id, 1, conta_id=CONTA, db_path=db_path)
    registrar_ajuste(no_minimo.id, 50, conta_id=CONTA, db_path=db_path)
    registrar_entrada(acima.id, 3, conta_id=CONTA, db_path=db_path)

    assert resumo_movimentacoes(no_minimo.id, inicio, conta_id=CONTA, db_path=db_path) == {"entradas": 10, "saidas": 5}

    futuro = datetime.now(timezone.utc) + timedelta(days=1)
    assert resumo_movimentacoes(no_minimo.id, futuro, conta_id=CONTA, db_path=db_path) == {"entradas": 0, "saidas": 0}

    por_produto = movimentacoes_por_produto(inicio, conta_id=CONTA, db_path=db_path)
    assert por_produto == [
        {"produto_id": no_minimo.id, "nome": "Amoxicilina", "entradas": 10, "saidas": 5},
        {"produto_id": acima.id, "nome": "Dipirona", "entradas": 3, "saidas": 0},
    ]


def test_resumo_estoque(db_path):
    _seed(db_path)
    res = resumo_estoque(conta_id=CONTA, db_path=db_path, janela_dias=30, hoje=HOJE)
    assert res == {
        "total_produtos": 4,
        "estoque_baixo": 2,
        "vencendo": 2,
        "valor_total": Decimal("99.10"),
    }


def test_resumo_movimentacoes_produto_desconhecido(db_path):
    no_minimo, *_ = _seed(db_path)
    with pytest.raises(ProductNotFoundError):
        resumo_movimentacoes("nao-existe", HOJE, conta_id=CONTA, db_path=db_path)
    with pytest.raises(ProductNotFoundError):
        resumo_movimentacoes(no_minimo.id, HOJE, conta_id="outra", db_path=db_path)
