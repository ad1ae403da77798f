# estoque_vet/adapters/cli.py
"""
CLI do estoque da clínica (Typer).

Comandos principais:
- migrate                        -> aplica migrações e cria views
- params set/get/show            -> gerencia parâmetros globais (janelas dos relatórios)
- produto criar/listar/mostrar/editar/desativar/categorias/importar
- mov entrada/saida/ajuste       -> movimenta o estoque (único caminho que muda o saldo)
- mov listar/historico/lote/verificar
- rel baixo/vencimentos/valor/resumo/movimentos
- logs                           -> últimas linhas dos arquivos de log
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from estoque_vet.config import CONTA_PADRAO, DB_PATH, DEFAULTS
from estoque_vet.domain.errors import EstoqueError
from estoque_vet.domain.models import AJUSTE, ENTRADA, SAIDA
from estoque_vet.infra.migrations import apply_migrations
from estoque_vet.infra.views import create_views
from estoque_vet.infra.logger import get_log_summary
from estoque_vet.infra.repositories import MovimentacaoRepo, ParamsRepo, ProdutoRepo
from estoque_vet.usecases.cadastrar_produto import cadastrar_produto, run_produtos_lote
from estoque_vet.usecases.movimentar_estoque import (
    aplicar_movimentacao,
    run_movimentacoes_lote,
    verificar_consistencia,
)
from estoque_vet.usecases.relatorios import (
    estoque_baixo,
    movimentacoes_por_produto,
    resumo_estoque,
    valor_total_estoque,
    vencendo_em,
)


app = typer.Typer(help="Estoque Vet: CLI da clínica")
console = Console()

DB_OPT = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
CONTA_OPT = typer.Option(CONTA_PADRAO, "--conta", help="Conta dona dos registros")
JSON_OPT = typer.Option(False, "--json", help="Saída em JSON")

PARAMS = ("janela_vencimento_dias", "janela_movimentacoes_dias")


# -----------------------
# util
# -----------------------

def _plain(obj: Any) -> Any:
    """Converte dataclasses/Decimal/date em tipos serializáveis."""
    if is_dataclass(obj):
        obj = asdict(obj)
    if isinstance(obj, dict):
        return {k: _plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_plain(v) for v in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    return obj


def _print_json(obj) -> None:
    typer.echo(json.dumps(_plain(obj), ensure_ascii=False, indent=2))


def _fmt(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, bool):
        return "sim" if val else "não"
    if isinstance(val, Decimal):
        return f"{val:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    if isinstance(val, date):
        return val.strftime("%d/%m/%Y")
    return str(val)


def _display_table(data: List[Dict[str, Any]], title: str, columns: List[str]) -> None:
    """Exibe registros em uma tabela Rich com as colunas pedidas."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    for col in columns:
        if col.startswith(("quantidade", "preco", "entradas", "saidas", "delta", "valor", "dias")):
            table.add_column(col, justify="right")
        else:
            table.add_column(col)
    for row in data:
        table.add_row(*[_fmt(row.get(col)) for col in columns])
    console.print(table)


def _display_lote(info: Dict[str, Any]) -> None:
    panel_content = [
        f"Total de registros: {info['total']}",
        f"Processados com sucesso: {info['sucessos']}",
    ]
    if info["erros"]:
        panel_content.append(f"Erros: {len(info['erros'])}")
    console.print(Panel("\n".join(panel_content), title=f"{info['tipo']} em Lote"))
    if info["erros"]:
        erro_table = Table(title="Erros Encontrados")
        erro_table.add_column("Linha")
        erro_table.add_column("Erro")
        for erro in info["erros"]:
            erro_table.add_row(str(erro["linha"]), erro["mensagem"])
        console.print(erro_table)


@contextmanager
def _erros_de_dominio() -> Iterator[None]:
    """Mostra erros do domínio como mensagem e sai com código 1."""
    try:
        yield
    except EstoqueError as e:
        console.print(f"[bold red]Erro:[/] {e.message}")
        raise typer.Exit(code=1)


def _prepara(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)


PRODUTO_COLS = ["id", "nome", "categoria", "quantidade_atual", "quantidade_minima",
                "unidade_medida", "preco_custo", "data_validade", "lote"]
MOV_COLS = ["criado_em", "produto_nome", "tipo", "quantidade", "delta",
            "quantidade_anterior", "quantidade_nova", "motivo"]


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DB_OPT):
    """Aplica migrações e recria as views auxiliares."""
    _prepara(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


params_app = typer.Typer(help="Gerenciar parâmetros globais (janelas dos relatórios).")
app.add_typer(params_app, name="params")


@params_app.command("set")
def cmd_params_set(
    janela_vencimento_dias: Optional[int] = typer.Option(None, help="Ex.: 30"),
    janela_movimentacoes_dias: Optional[int] = typer.Option(None, help="Ex.: 30"),
    db_path: str = DB_OPT,
):
    """Define parâmetros globais (apenas os informados são alterados)."""
    _prepara(db_path)
    items = []
    if janela_vencimento_dias is not None:
        items.append(("janela_vencimento_dias", str(janela_vencimento_dias)))
    if janela_movimentacoes_dias is not None:
        items.append(("janela_movimentacoes_dias", str(janela_movimentacoes_dias)))
    if not items:
        typer.echo("Nada a alterar. Informe pelo menos um parâmetro.")
        raise typer.Exit(code=1)
    ParamsRepo(db_path).set_many(items)
    typer.echo(">> Parâmetros atualizados.")


@params_app.command("get")
def cmd_params_get(
    chave: str = typer.Argument(..., help="Ex.: janela_vencimento_dias | janela_movimentacoes_dias"),
    db_path: str = DB_OPT,
):
    """Mostra um parâmetro específico."""
    _prepara(db_path)
    val = ParamsRepo(db_path).get(chave)
    typer.echo("(None)" if val is None else val)


@params_app.command("show")
def cmd_params_show(db_path: str = DB_OPT, as_json: bool = JSON_OPT):
    """Exibe os parâmetros efetivos (com fallback para defaults)."""
    _prepara(db_path)
    repo = ParamsRepo(db_path)
    out = {p: repo.get_int(p, getattr(DEFAULTS, p)) for p in PARAMS}
    if as_json:
        _print_json(out)
        return
    params_table = Table(title="Parâmetros do Sistema")
    params_table.add_column("Parâmetro")
    params_table.add_column("Valor Atual")
    params_table.add_column("Valor Padrão")
    for p in PARAMS:
        params_table.add_row(p, str(out[p]), str(getattr(DEFAULTS, p)))
    console.print(params_table)
    console.print(f"[dim]Banco de dados: {db_path}[/dim]")


# -----------------------
# produtos
# -----------------------

produto_app = typer.Typer(help="Cadastro de produtos")
app.add_typer(produto_app, name="produto")


@produto_app.command("criar")
def cmd_produto_criar(
    nome: str = typer.Option(..., help="Nome do produto"),
    categoria: str = typer.Option(..., help="Categoria (ex.: Medicamento, Vacina)"),
    unidade_medida: str = typer.Option("unidade", help="unidade | ml | mg | g | kg | litro"),
    quantidade: int = typer.Option(0, help="Quantidade inicial"),
    minimo: int = typer.Option(0, help="Quantidade mínima"),
    preco_custo: Optional[str] = typer.Option(None, help="Ex.: 12.50"),
    preco_venda: Optional[str] = typer.Option(None, help="Ex.: 19.90"),
    fornecedor: Optional[str] = typer.Option(None),
    validade: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    lote: Optional[str] = typer.Option(None),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Cadastra um produto."""
    _prepara(db_path)
    with _erros_de_dominio():
        p = cadastrar_produto(
            {
                "nome": nome,
                "categoria": categoria,
                "unidade_medida": unidade_medida,
                "quantidade_atual": quantidade,
                "quantidade_minima": minimo,
                "preco_custo": preco_custo,
                "preco_venda": preco_venda,
                "fornecedor": fornecedor,
                "data_validade": validade,
                "lote": lote,
            },
            conta_id=conta,
            db_path=db_path,
        )
    typer.echo(f">> Produto cadastrado: {p.id}")


@produto_app.command("listar")
def cmd_produto_listar(
    categoria: Optional[str] = typer.Option(None),
    busca: Optional[str] = typer.Option(None, help="Trecho do nome ou da categoria"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
    as_json: bool = JSON_OPT,
):
    """Lista os produtos ativos."""
    _prepara(db_path)
    produtos = ProdutoRepo(db_path, conta).list(categoria=categoria, busca=busca)
    if as_json:
        _print_json(produtos)
        return
    _display_table([asdict(p) for p in produtos], "Produtos", PRODUTO_COLS)


@produto_app.command("mostrar")
def cmd_produto_mostrar(produto_id: str, db_path: str = DB_OPT, conta: str = CONTA_OPT):
    """Mostra um produto."""
    _prepara(db_path)
    with _erros_de_dominio():
        p = ProdutoRepo(db_path, conta).get(produto_id)
    _print_json(p)


@produto_app.command("editar")
def cmd_produto_editar(
    produto_id: str,
    nome: Optional[str] = typer.Option(None),
    categoria: Optional[str] = typer.Option(None),
    minimo: Optional[int] = typer.Option(None, help="Quantidade mínima"),
    preco_custo: Optional[str] = typer.Option(None),
    preco_venda: Optional[str] = typer.Option(None),
    fornecedor: Optional[str] = typer.Option(None),
    validade: Optional[str] = typer.Option(None, help="YYYY-MM-DD"),
    lote: Optional[str] = typer.Option(None),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Edita campos do cadastro. O saldo só muda com `mov`."""
    _prepara(db_path)
    campos = {
        "nome": nome,
        "categoria": categoria,
        "quantidade_minima": minimo,
        "preco_custo": preco_custo,
        "preco_venda": preco_venda,
        "fornecedor": fornecedor,
        "data_validade": validade,
        "lote": lote,
    }
    patch = {k: v for k, v in campos.items() if v is not None}
    if not patch:
        typer.echo("Nada a alterar.")
        raise typer.Exit(code=1)
    with _erros_de_dominio():
        ProdutoRepo(db_path, conta).update(produto_id, patch)
    typer.echo(">> Produto atualizado.")


@produto_app.command("desativar")
def cmd_produto_desativar(produto_id: str, db_path: str = DB_OPT, conta: str = CONTA_OPT):
    """Desativa (exclusão lógica) um produto."""
    _prepara(db_path)
    with _erros_de_dominio():
        ProdutoRepo(db_path, conta).desativar(produto_id)
    typer.echo(">> Produto desativado.")


@produto_app.command("categorias")
def cmd_produto_categorias(db_path: str = DB_OPT, conta: str = CONTA_OPT):
    """Lista as categorias em uso."""
    _prepara(db_path)
    for cat in ProdutoRepo(db_path, conta).categorias():
        typer.echo(cat)


@produto_app.command("importar")
def cmd_produto_importar(
    path: str = typer.Argument(..., help="Caminho do XLSX de PRODUTOS"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Cadastra produtos em lote a partir de um XLSX."""
    _prepara(db_path)
    _display_lote(run_produtos_lote(path, conta_id=conta, db_path=db_path))


# -----------------------
# movimentações
# -----------------------

mov_app = typer.Typer(help="Movimentações de estoque")
app.add_typer(mov_app, name="mov")


def _movimentar(produto_id, tipo, quantidade, motivo, observacoes, agendamento, db_path, conta) -> None:
    _prepara(db_path)
    with _erros_de_dominio():
        res = aplicar_movimentacao(produto_id, tipo, quantidade, motivo, observacoes, agendamento,
                                   conta_id=conta, db_path=db_path)
    m = res.movimentacao
    typer.echo(
        f">> {tipo}: {res.produto.nome} {m.quantidade_anterior} -> {m.quantidade_nova} "
        f"({res.produto.unidade_medida})"
    )


@mov_app.command("entrada")
def cmd_mov_entrada(
    produto_id: str,
    quantidade: int,
    motivo: Optional[str] = typer.Option(None, help="Ex.: Compra"),
    observacoes: Optional[str] = typer.Option(None),
    agendamento: Optional[str] = typer.Option(None, help="Agendamento relacionado"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Registra uma entrada (soma ao saldo)."""
    _movimentar(produto_id, ENTRADA, quantidade, motivo, observacoes, agendamento, db_path, conta)


@mov_app.command("saida")
def cmd_mov_saida(
    produto_id: str,
    quantidade: int,
    motivo: Optional[str] = typer.Option(None, help="Ex.: Uso em consulta"),
    observacoes: Optional[str] = typer.Option(None),
    agendamento: Optional[str] = typer.Option(None, help="Agendamento relacionado"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Registra uma saída (subtrai do saldo)."""
    _movimentar(produto_id, SAIDA, quantidade, motivo, observacoes, agendamento, db_path, conta)


@mov_app.command("ajuste")
def cmd_mov_ajuste(
    produto_id: str,
    nova_quantidade: int = typer.Argument(..., help="Saldo correto após a contagem"),
    motivo: Optional[str] = typer.Option(None, help="Ex.: Inventário"),
    observacoes: Optional[str] = typer.Option(None),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Ajusta o saldo para um valor absoluto."""
    _movimentar(produto_id, AJUSTE, nova_quantidade, motivo, observacoes, None, db_path, conta)


@mov_app.command("listar")
def cmd_mov_listar(
    tipo: Optional[str] = typer.Option(None, help="entrada | saida | ajuste"),
    busca: Optional[str] = typer.Option(None, help="Trecho do nome do produto ou do motivo"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Lista as movimentações (mais recentes primeiro)."""
    _prepara(db_path)
    movs = MovimentacaoRepo(db_path, conta).list(tipo=tipo, busca=busca)
    _display_table([asdict(m) for m in movs], "Movimentações", MOV_COLS)


@mov_app.command("historico")
def cmd_mov_historico(produto_id: str, db_path: str = DB_OPT, conta: str = CONTA_OPT):
    """Histórico de um produto, em ordem cronológica."""
    _prepara(db_path)
    movs = MovimentacaoRepo(db_path, conta).list_by_produto(produto_id)
    _display_table([asdict(m) for m in movs], f"Histórico {produto_id}", MOV_COLS)


@mov_app.command("lote")
def cmd_mov_lote(
    path: str = typer.Argument(..., help="Caminho do XLSX de MOVIMENTAÇÕES"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Aplica movimentações em lote a partir de um XLSX."""
    _prepara(db_path)
    _display_lote(run_movimentacoes_lote(path, conta_id=conta, db_path=db_path))


@mov_app.command("verificar")
def cmd_mov_verificar(produto_id: str, db_path: str = DB_OPT, conta: str = CONTA_OPT):
    """Confere se o saldo bate com o histórico."""
    _prepara(db_path)
    with _erros_de_dominio():
        res = verificar_consistencia(produto_id, conta_id=conta, db_path=db_path)
    _print_json(res)
    if not res["consistente"]:
        raise typer.Exit(code=2)


# -----------------------
# relatórios
# -----------------------

rel_app = typer.Typer(help="Relatórios de estoque")
app.add_typer(rel_app, name="rel")


@rel_app.command("baixo")
def rel_baixo(db_path: str = DB_OPT, conta: str = CONTA_OPT):
    """Produtos com saldo no mínimo ou abaixo."""
    res = estoque_baixo(conta_id=conta, db_path=db_path)
    _display_table([asdict(p) for p in res], "Estoque Baixo", PRODUTO_COLS)


@rel_app.command("vencimentos")
def rel_vencimentos(
    dias: Optional[int] = typer.Option(None, help="Dias até o vencimento (padrão: parâmetro)"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Produtos vencendo na janela de dias."""
    with _erros_de_dominio():
        res = vencendo_em(dias, conta_id=conta, db_path=db_path)
    rows = [{**asdict(r["produto"]), "dias_para_vencer": r["dias_para_vencer"]} for r in res]
    _display_table(rows, "Produtos a Vencer", ["nome", "lote", "data_validade", "dias_para_vencer", "quantidade_atual"])


@rel_app.command("valor")
def rel_valor(db_path: str = DB_OPT, conta: str = CONTA_OPT):
    """Valor total do estoque a preço de custo."""
    typer.echo(_fmt(valor_total_estoque(conta_id=conta, db_path=db_path)))


@rel_app.command("resumo")
def rel_resumo(db_path: str = DB_OPT, conta: str = CONTA_OPT, as_json: bool = JSON_OPT):
    """Números do painel de estoque."""
    res = resumo_estoque(conta_id=conta, db_path=db_path)
    if as_json:
        _print_json(res)
        return
    console.print(Panel(
        "\n".join([
            f"Total de produtos: {res['total_produtos']}",
            f"Estoque baixo: {res['estoque_baixo']}",
            f"Vencendo: {res['vencendo']}",
            f"Valor total: {_fmt(res['valor_total'])}",
        ]),
        title="Resumo do Estoque",
    ))


@rel_app.command("movimentos")
def rel_movimentos(
    dias: Optional[int] = typer.Option(None, help="Janela em dias (padrão: parâmetro)"),
    db_path: str = DB_OPT,
    conta: str = CONTA_OPT,
):
    """Entradas e saídas por produto na janela."""
    desde = datetime.now(timezone.utc) - timedelta(days=dias) if dias is not None else None
    res = movimentacoes_por_produto(desde, conta_id=conta, db_path=db_path)
    _display_table(res, "Movimentações por Produto", ["nome", "entradas", "saidas"])


@app.command("logs")
def cmd_logs(
    tipo: str = typer.Argument("transactions", help="transactions | movimentacoes | database | system"),
    linhas: int = typer.Option(50, help="Quantidade de linhas"),
):
    """Mostra as últimas linhas de um log (requer ESTOQUE_VET_LOGGING=1)."""
    resumo = get_log_summary(tipo, lines=linhas)
    if resumo is None:
        typer.echo("Logging desabilitado. Defina ESTOQUE_VET_LOGGING=1.")
        raise typer.Exit(code=1)
    typer.echo(resumo)


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
