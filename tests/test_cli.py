import json
from pathlib import Path

from typer.testing import CliRunner

from estoque_vet.adapters.cli import app

runner = CliRunner()


def _criar(db: str, *args) -> str:
    result = runner.invoke(app, ["produto", "criar", "--db", db, *args])
    assert result.exit_code == 0, result.output
    return result.stdout.strip().rsplit(" ", 1)[-1]


def test_cli_migrate_and_params(tmp_path: Path):
    db = str(tmp_path / "estoque_test.sqlite")
    result = runner.invoke(app, ["migrate", "--db", db])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["params", "show", "--db", db, "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"janela_vencimento_dias": 30, "janela_movimentacoes_dias": 30}

    result = runner.invoke(app, ["params", "set", "--db", db, "--janela-vencimento-dias", "15"])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["params", "get", "janela_vencimento_dias", "--db", db])
    assert result.stdout.strip() == "15"


def test_cli_produto_e_movimentacoes(tmp_path: Path):
    db = str(tmp_path / "estoque_test.sqlite")
    pid = _criar(db, "--nome", "Vacina V10", "--categoria", "Vacina", "--quantidade", "10", "--minimo", "5")

    result = runner.invoke(app, ["mov", "entrada", pid, "20", "--db", db, "--motivo", "Compra"])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["mov", "saida", pid, "12", "--db", db])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["mov", "ajuste", pid, "5", "--db", db])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["produto", "listar", "--db", db, "--json"])
    [produto] = json.loads(result.stdout)
    assert produto["quantidade_atual"] == 5

    result = runner.invoke(app, ["mov", "verificar", pid, "--db", db])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["consistente"] is True

    result = runner.invoke(app, ["rel", "resumo", "--db", db, "--json"])
    assert json.loads(result.stdout)["estoque_baixo"] == 1


def test_cli_erro_de_dominio_sai_com_codigo_1(tmp_path: Path):
    db = str(tmp_path / "estoque_test.sqlite")
    pid = _criar(db, "--nome", "Gaze", "--categoria", "Material", "--quantidade", "1")

    result = runner.invoke(app, ["mov", "saida", pid, "2", "--db", db])
    assert result.exit_code == 1
    assert "negativa" in result.stdout

    result = runner.invoke(app, ["produto", "mostrar", "nao-existe", "--db", db])
    assert result.exit_code == 1
    assert "Produto não encontrado" in result.stdout


def test_cli_contas_separadas(tmp_path: Path):
    db = str(tmp_path / "estoque_test.sqlite")
    _criar(db, "--nome", "Gaze", "--categoria", "Material", "--conta", "c1")
    result = runner.invoke(app, ["produto", "listar", "--db", db, "--conta", "c2", "--json"])
    assert json.loads(result.stdout) == []
