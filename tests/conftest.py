"""
Fixtures comuns: MongoDB em memória (mongomock) no lugar do banco real.
"""
import mongomock
import pytest

from core import database
from editora_app.services.autor_service import AutorService
from editora_app.services.livro_service import LivroService
from editora_app.services.venda_service import VendaService


@pytest.fixture(autouse=True)
def mongo(monkeypatch, settings):
    settings.MONGODB_SETTINGS = {**settings.MONGODB_SETTINGS, 'TRANSACTIONS': False}
    settings.COMISSAO_SETTINGS = {'USAR_TAXA_DO_AUTOR': False}
    db = mongomock.MongoClient(tz_aware=False)['editora_teste']
    monkeypatch.setattr(database, '_database', db)
    return db


@pytest.fixture
def autor():
    return AutorService().criar_autor('Ana Autora', 10, email='ana@editora.com.br')


@pytest.fixture
def livro(autor):
    return LivroService().criar_livro('Livro A', [autor['id']], 50, isbn='978-85-0000-001')


@pytest.fixture
def nova_venda(livro):
    """Registra uma venda do livro padrão (ou de livro_id) e devolve o documento."""
    service = VendaService()

    def _nova(data='2024-03-10', quantidade=2, preco=50, origem='EDITORA', livro_id=None, **extra):
        return service.registrar_venda(
            livro_id=livro_id or livro['id'],
            plataforma=extra.pop('plataforma', 'Amazon'),
            data_venda=data,
            quantidade=quantidade,
            preco_venda=preco,
            origem=origem,
            **extra,
        )
    return _nova
