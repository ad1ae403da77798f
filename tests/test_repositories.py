import sqlite3
from datetime import date
from decimal import Decimal

import pytest

from estoque_vet.domain.errors import ProductNotFoundError, ValidationError
from estoque_vet.infra.db import connect
from estoque_vet.infra.repositories import MovimentacaoRepo, ParamsRepo, ProdutoRepo
from estoque_vet.usecases.movimentar_estoque import registrar_entrada


def _produto(repo, nome="Vacina V10", categoria="Vacina", **extra):
    dados = {"nome": nome, "categoria": categoria, "quantidade_atual": 10, "quantidade_minima": 5}
    dados.update(extra)
    return repo.create(dados)


def test_create_e_get(db_path):
    repo = ProdutoRepo(db_path, "c1")
    p = _produto(repo, preco_custo=Decimal("12.50"), data_validade="2025-06-30", unidade_medida="ML")
    assert p.id
    assert p.conta_id == "c1"
    assert p.ativo is True
    assert p.quantidade_inicial == 10
    assert p.unidade_medida == "ml"
    assert p.preco_custo == Decimal("12.50")
    assert p.data_validade == date(2025, 6, 30)
    assert repo.get(p.id) == p


def test_create_rejeita_nome_vazio_e_nao_grava(db_path):
    repo = ProdutoRepo(db_path, "c1")
    with pytest.raises(ValidationError):
        repo.create({"nome": " ", "categoria": "Vacina"})
    assert repo.list() == []


def test_update_parcial(db_path):
    repo = ProdutoRepo(db_path, "c1")
    p = _produto(repo)
    atualizado = repo.update(p.id, {"quantidade_minima": 8, "lote": "L-01"})
    assert atualizado.quantidade_minima == 8
    assert atualizado.lote == "L-01"
    assert atualizado.nome == p.nome
    assert atualizado.quantidade_atual == 10


@pytest.mark.parametrize("patch", [{"quantidade_atual": 99}, {"ativo": False}, {"cor": "azul"}])
def test_update_rejeita_campos_nao_editaveis(db_path, patch):
    repo = ProdutoRepo(db_path, "c1")
    p = _produto(repo)
    with pytest.raises(ValidationError):
        repo.update(p.id, patch)
    assert repo.get(p.id).quantidade_atual == 10


def test_update_produto_inexistente(db_path):
    with pytest.raises(ProductNotFoundError):
        ProdutoRepo(db_path, "c1").update("nao-existe", {"lote": "X"})


def test_desativar_oculta_mas_preserva(db_path):
    repo = ProdutoRepo(db_path, "c1")
    p = _produto(repo)
    repo.desativar(p.id)
    assert repo.list() == []
    with pytest.raises(ProductNotFoundError):
        repo.get(p.id)
    assert repo.get(p.id, incluir_inativos=True).ativo is False


def test_list_filtros_e_ordem(db_path):
    repo = ProdutoRepo(db_path, "c1")
    _produto(repo, nome="Seringa 5ml", categoria="Material")
    _produto(repo, nome="Amoxicilina", categoria="Medicamento")
    _produto(repo, nome="Dipirona", categoria="Medicamento")

    assert [p.nome for p in repo.list()] == ["Amoxicilina", "Dipirona", "Seringa 5ml"]
    assert [p.nome for p in repo.list(categoria="Medicamento")] == ["Amoxicilina", "Dipirona"]
    assert [p.nome for p in repo.list(busca="SERINGA")] == ["Seringa 5ml"]
    assert [p.nome for p in repo.list(busca="material")] == ["Seringa 5ml"]
    assert repo.categorias() == ["Material", "Medicamento"]


def test_escopo_por_conta(db_path):
    p = _produto(ProdutoRepo(db_path, "c1"))
    outra = ProdutoRepo(db_path, "c2")
    assert outra.list() == []
    with pytest.raises(ProductNotFoundError):
        outra.get(p.id)
    with pytest.raises(ProductNotFoundError):
        outra.desativar(p.id)


def test_historico_nao_pode_ser_alterado(db_path):
    p = _produto(ProdutoRepo(db_path, "c1"))
    registrar_entrada(p.id, 3, conta_id="c1", db_path=db_path)

    with pytest.raises(sqlite3.IntegrityError):
        with connect(db_path) as c:
            c.execute("UPDATE movimentacao SET quantidade = 1")
    with pytest.raises(sqlite3.IntegrityError):
        with connect(db_path) as c:
            c.execute("DELETE FROM movimentacao")
    with pytest.raises(sqlite3.IntegrityError):
        with connect(db_path) as c:
            c.execute("DELETE FROM produto")

    movs = MovimentacaoRepo(db_path, "c1").list_by_produto(p.id)
    assert [m.quantidade for m in movs] == [3]
    assert movs[0].produto_nome == "Vacina V10"


def test_params_get_int_com_fallback(db_path):
    params = ParamsRepo(db_path)
    assert params.get_int("janela_vencimento_dias", 30) == 30
    params.set_many([("janela_vencimento_dias", "15")])
    assert params.get_int("janela_vencimento_dias", 30) == 15
    params.set_many([("janela_vencimento_dias", "quinze")])
    assert params.get_int("janela_vencimento_dias", 30) == 30


def test_busca_ignora_caixa_em_nomes_acentuados(db_path):
    repo = ProdutoRepo(db_path, "c1")
    p = _produto(repo, nome="ÁCIDO TRANEXÂMICO", categoria="Hemostático")
    _produto(repo, nome="Dipirona", categoria="Medicamento")

    assert [x.nome for x in repo.list(busca="ácido")] == ["ÁCIDO TRANEXÂMICO"]
    assert [x.nome for x in repo.list(busca="tranexâmico")] == ["ÁCIDO TRANEXÂMICO"]
    assert [x.nome for x in repo.list(busca="HEMOSTÁTICO")] == ["ÁCIDO TRANEXÂMICO"]

    registrar_entrada(p.id, 2, "Reposição ÉTICA", conta_id="c1", db_path=db_path)
    movs = MovimentacaoRepo(db_path, "c1")
    assert [m.produto_id for m in movs.list(busca="ácido")] == [p.id]
    assert [m.produto_id for m in movs.list(busca="reposição ética")] == [p.id]
