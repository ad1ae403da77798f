# estoque_vet/adapters/planilhas.py
"""
Loaders para planilhas (XLSX) de PRODUTOS e MOVIMENTAÇÕES.

Essas funções:
- leem planilhas XLSX usando pandas;
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas pelos
  repositórios e pelo serviço de movimentação.

Observações:
- Valores que não podem ser interpretados são repassados como vieram,
  para que a validação do domínio rejeite a linha com mensagem clara.
- Linhas totalmente vazias são ignoradas, mas cada registro
  leva em `_linha` o número da sua linha na planilha.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import pandas as pd

from estoque_vet.adapters.parsers import (
    parse_data, parse_decimal, parse_inteiro, parse_tipo, sem_acentos,
)


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = sem_acentos(str(s).strip().lower())
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def _safe_get(row, key):
    """Lê um valor da linha do pandas tratando NA e strings vazias."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    if isinstance(val, str) and not val.strip():
        return None
    return val


def _ou_bruto(parsed: Any, raw: Any) -> Any:
    # mantém o valor original quando o parse falha, para a validação acusar
    return raw if parsed is None else parsed


_ALIASES = {
    # produto
    "nome": "nome",
    "produto": "nome",
    "nome do produto": "nome",
    "categoria": "categoria",
    "unidade": "unidade_medida",
    "unidade medida": "unidade_medida",
    "unidade de medida": "unidade_medida",
    "quantidade atual": "quantidade_atual",
    "estoque": "quantidade_atual",
    "estoque atual": "quantidade_atual",
    "quantidade minima": "quantidade_minima",
    "estoque minimo": "quantidade_minima",
    "minimo": "quantidade_minima",
    "preco custo": "preco_custo",
    "preco de custo": "preco_custo",
    "custo": "preco_custo",
    "preco venda": "preco_venda",
    "preco de venda": "preco_venda",
    "fornecedor": "fornecedor",
    "validade": "data_validade",
    "data validade": "data_validade",
    "data de validade": "data_validade",
    "lote": "lote",
    "descricao": "descricao",
    "codigo barras": "codigo_barras",
    "codigo de barras": "codigo_barras",
    "ean": "codigo_barras",

    # movimentação
    "produto id": "produto_id",
    "id produto": "produto_id",
    "id do produto": "produto_id",
    "tipo": "tipo",
    "tipo movimentacao": "tipo",
    "tipo de movimentacao": "tipo",
    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",
    "motivo": "motivo",
    "observacoes": "observacoes",
    "observacao": "observacoes",
    "obs": "observacoes",
    "agendamento": "agendamento_id",
    "agendamento id": "agendamento_id",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    new_cols = {}
    for col in df.columns:
        key = _slug(col)
        new_cols[col] = _ALIASES.get(key, key.replace(" ", "_"))
    return df.rename(columns=new_cols)


def _read(path: str) -> pd.DataFrame:
    df = pd.read_excel(path, dtype="string")
    df = _normalize_columns(df)
    return df.dropna(how="all")


def _linha(idx) -> int:
    # índice do DataFrame começa em 0 e o cabeçalho é a linha 1
    return int(idx) + 2


def _texto(row, key) -> Optional[str]:
    val = _safe_get(row, key)
    return str(val).strip() if val is not None else None


# ---------------------------
# loaders públicos (XLSX)
# ---------------------------

def load_produtos_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de PRODUTOS e retorna registros para `ProdutoRepo.create`.

    Campos de saída (chaves do dict por linha):
      - _linha: número da linha na planilha (cabeçalho = 1)
      - nome, categoria, unidade_medida, fornecedor, lote,
        descricao, codigo_barras: str | None
      - quantidade_atual, quantidade_minima: int (ou o texto original)
      - preco_custo, preco_venda: Decimal (ou o texto original)
      - data_validade: date (ou o texto original)
    """
    df = _read(path)
    out: List[Dict[str, Any]] = []
    for idx, row in df.iterrows():
        qtd = _safe_get(row, "quantidade_atual")
        minimo = _safe_get(row, "quantidade_minima")
        custo = _safe_get(row, "preco_custo")
        venda = _safe_get(row, "preco_venda")
        validade = _safe_get(row, "data_validade")
        out.append(
            {
                "_linha": _linha(idx),
                "nome": _texto(row, "nome"),
                "categoria": _texto(row, "categoria"),
                "unidade_medida": _texto(row, "unidade_medida"),
                "quantidade_atual": _ou_bruto(parse_inteiro(qtd), qtd),
                "quantidade_minima": _ou_bruto(parse_inteiro(minimo), minimo),
                "preco_custo": _ou_bruto(parse_decimal(custo), custo),
                "preco_venda": _ou_bruto(parse_decimal(venda), venda),
                "fornecedor": _texto(row, "fornecedor"),
                "data_validade": _ou_bruto(parse_data(validade), validade),
                "lote": _texto(row, "lote"),
                "descricao": _texto(row, "descricao"),
                "codigo_barras": _texto(row, "codigo_barras"),
            }
        )
    return out


def load_movimentacoes_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de MOVIMENTAÇÕES.

    Campos de saída (chaves do dict por linha):
      - _linha: número da linha na planilha (cabeçalho = 1)
      - produto_id: str | None
      - tipo: 'entrada' | 'saida' | 'ajuste' (ou o texto normalizado)
      - quantidade: int (ou o texto original)
      - motivo, observacoes, agendamento_id: str | None
    """
    df = _read(path)
    out: List[Dict[str, Any]] = []
    for idx, row in df.iterrows():
        qtd = _safe_get(row, "quantidade")
        out.append(
            {
                "_linha": _linha(idx),
                "produto_id": _texto(row, "produto_id"),
                "tipo": parse_tipo(_safe_get(row, "tipo")),
                "quantidade": _ou_bruto(parse_inteiro(qtd), qtd),
                "motivo": _texto(row, "motivo"),
                "observacoes": _texto(row, "observacoes"),
                "agendamento_id": _texto(row, "agendamento_id"),
            }
        )
    return out
