"""
Configuração e conexão com MongoDB.

Este módulo centraliza a conexão com MongoDB para uso em todos os services.
Localização: core/database.py

Uso:
    from core.database import get_database, transacao

    db = get_database()
    collection = db['autores']

    with transacao() as session:
        collection.update_one({...}, {...}, session=session)
"""
from contextlib import contextmanager
from typing import Optional
import logging

from pymongo import MongoClient
from django.conf import settings


logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
_database = None


def get_client() -> MongoClient:
    """
    Retorna o cliente MongoDB (singleton).

    Returns:
        MongoClient instance
    """
    global _client

    if _client is None:
        mongodb_config = settings.MONGODB_SETTINGS

        # Monta a URI de conexão
        uri = mongodb_config['URI']

        # Opções padrão
        options = {
            'serverSelectionTimeoutMS': 5000,
            'tz_aware': False,
        }

        _client = MongoClient(uri, **options)

        # Testa a conexão
        try:
            _client.admin.command('ping')
        except Exception as e:
            raise ConnectionError(f"Erro ao conectar ao MongoDB: {e}")
        logger.info("Conectado ao MongoDB (db=%s)", mongodb_config['DB_NAME'])

    return _client


def get_database():
    """
    Retorna o banco de dados MongoDB.

    Returns:
        Database instance
    """
    global _database

    if _database is None:
        client = get_client()
        _database = client[settings.MONGODB_SETTINGS['DB_NAME']]

    return _database


def usa_transacoes() -> bool:
    """Transações multi-documento exigem replica set; habilitadas por configuração."""
    return bool(settings.MONGODB_SETTINGS.get('TRANSACTIONS', False))


@contextmanager
def transacao():
    """
    Abre uma transação MongoDB quando habilitada em MONGODB_SETTINGS['TRANSACTIONS'].

    Sem transações, devolve None: os services passam session=None ao pymongo
    e dependem da própria compensação em caso de falha parcial.
    """
    if not usa_transacoes():
        yield None
        return

    client = get_database().client
    with client.start_session() as session:
        with session.start_transaction():
            yield session


def close_connection():
    """Fecha a conexão com MongoDB."""
    global _client, _database

    if _client:
        _client.close()
        _client = None
        _database = None
