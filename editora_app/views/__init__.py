"""
Views do app editora.
"""
from . import (
    api_views,
    autor_views,
    livro_views,
    venda_views,
    cliente_views,
    comissao_views,
)
__all__ = [
    "api_views",
    "autor_views",
    "livro_views",
    "venda_views",
    "cliente_views",
    "comissao_views",
]
