"""
Sistema de logging para as operações do estoque.

Este módulo configura e fornece loggers para registrar as operações
críticas do sistema: movimentações de estoque, transações do serviço
de movimentação, operações no banco de dados e eventos gerais.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("ESTOQUE_VET_LOGGING", "").strip().lower() in {"1", "true", "sim", "yes"}

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é criado na primeira mensagem gravada.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers de uma configuração anterior
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger

# Diretório base para logs (na pasta do projeto, salvo ESTOQUE_VET_LOGS)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("ESTOQUE_VET_LOGS") or (BASE_DIR / "logs"))

LOG_FILES = {
    "transactions": LOGS_DIR / "transactions.log",
    "movimentacoes": LOGS_DIR / "movimentacoes.log",
    "database": LOGS_DIR / "database.log",
    "system": LOGS_DIR / "system.log",
}

transaction_logger = setup_logger('estoque_vet.transactions', str(LOG_FILES["transactions"]))
movimentacao_logger = setup_logger('estoque_vet.movimentacoes', str(LOG_FILES["movimentacoes"]))
database_logger = setup_logger('estoque_vet.database', str(LOG_FILES["database"]))
system_logger = setup_logger('estoque_vet.system', str(LOG_FILES["system"]))


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (movimentacao, cadastro_produto, ...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not ENABLE_LOGGING:
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_movimentacao(action: str, produto_id: str, tipo: str, quantidade: Any, **kwargs) -> None:
    """
    Log específico para movimentações de estoque.

    Args:
        action: Ação realizada (request, applied, rejected, conflict)
        produto_id: Produto movimentado
        tipo: entrada | saida | ajuste
        quantidade: Quantidade informada
        **kwargs: Dados adicionais (anterior, nova, delta, motivo...)
    """
    if not ENABLE_LOGGING:
        return
    log_data = {
        "action": action,
        "produto_id": produto_id,
        "tipo": tipo,
        "quantidade": quantidade,
        **kwargs
    }
    movimentacao_logger.info(f"MOVIMENTACAO_{action.upper()}: {log_data}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, SELECT...)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {
        "table": table,
        "operation": operation,
        "affected_rows": affected_rows,
        **kwargs
    }
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not ENABLE_LOGGING:
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """Log para operações de arquivo (importação de planilhas)."""
    if not ENABLE_LOGGING:
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        "at": datetime.now().isoformat(),
        **kwargs
    }
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém as últimas linhas de um dos logs.

    Args:
        log_type: Tipo de log (transactions, movimentacoes, database, system)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string, ou None com o logging desligado
    """
    if not ENABLE_LOGGING:
        return None

    log_file = LOG_FILES.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} não encontrado."

    with open(log_file, 'r', encoding='utf-8') as f:
        all_lines = f.readlines()
    return ''.join(all_lines[-lines:])
