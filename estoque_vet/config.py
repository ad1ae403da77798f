# estoque_vet/config.py
"""
Configurações globais e valores padrão do estoque da clínica.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("ESTOQUE_VET_DB") or os.path.join(os.getcwd(), "estoque_vet.db")

# Conta usada quando o colaborador de autenticação não informa nenhuma
CONTA_PADRAO = os.environ.get("ESTOQUE_VET_CONTA") or "local"


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    janela_vencimento_dias: int = 30      # produtos vencendo nos próximos N dias
    janela_movimentacoes_dias: int = 30   # janela do relatório de movimentações
    tentativas_conflito: int = 3          # retentativas em conflito de escrita
    timeout_lock_s: float = 5.0           # espera pelo lock de escrita do SQLite


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
