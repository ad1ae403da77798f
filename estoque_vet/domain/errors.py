# estoque_vet/domain/errors.py
"""
Exceções do domínio de estoque.

Todas são propagadas sem alteração para o chamador; a camada de
apresentação (CLI, telas) decide como exibir a mensagem.
"""

from __future__ import annotations


class EstoqueError(Exception):
    """Base para erros do estoque."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(EstoqueError):
    """Entrada malformada (campo obrigatório vazio, tipo desconhecido...)."""
    pass


class NotFoundError(EstoqueError):
    """Registro inexistente ou inativo."""
    pass


class ProductNotFoundError(NotFoundError):
    """Produto inexistente, inativo ou de outra conta."""

    def __init__(self, produto_id: str):
        super().__init__(f"Produto não encontrado: {produto_id}", {"produto_id": produto_id})
        self.produto_id = produto_id


class InvalidQuantityError(EstoqueError):
    """Quantidade inválida ou que deixaria o estoque negativo."""
    pass


class RetryableConflictError(EstoqueError):
    """Escrita concorrente impediu a movimentação; pode ser repetida."""
    pass
