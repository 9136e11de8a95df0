"""
Service para livros (catálogo).

Localização: editora_app/services/livro_service.py

Acesso direto ao MongoDB via pymongo (sem ORM).
Collection: livros
Documento: titulo, autor_ids [ObjectId], isbn (opcional, único), preco, descricao,
data_publicacao, created_at, updated_at
"""
from typing import List, Dict, Any, Optional
from datetime import datetime

from core.database import get_database
from editora_app.exceptions import (
    ErroRegraNegocio,
    ErroValidacao,
    LivroNaoEncontradoError,
    NaoEncontradoError,
)
from editora_app.services.autor_service import get_autores_collection
from editora_app.services.documentos import (
    normalizar,
    object_id_ou_none,
    para_datetime,
    para_decimal,
    para_object_id,
)


def get_livros_collection():
    """
    Retorna a collection de livros do MongoDB.

    Returns:
        Collection de livros
    """
    db = get_database()
    return db["livros"]


def resolver_autores(livro: Dict[str, Any]) -> Dict[str, Any]:
    """
    Anexa em livro['autores'] os autores referenciados em autor_ids
    (nome, email, taxa_comissao). autor_ids permanece com os ids.
    """
    ids = [para_object_id(a) for a in livro.get('autor_ids', [])]
    encontrados = {
        a['_id']: a for a in get_autores_collection().find(
            {'_id': {'$in': ids}}, {'nome': 1, 'email': 1, 'taxa_comissao': 1}
        )
    }
    livro['autores'] = [
        {
            'id': str(i),
            'nome': encontrados[i].get('nome', ''),
            'email': encontrados[i].get('email'),
            'taxa_comissao': encontrados[i].get('taxa_comissao'),
        }
        for i in ids if i in encontrados
    ]
    return livro


class LivroService:
    """
    Service para gerenciar livros.

    Exemplo de uso:
        service = LivroService()
        livro = service.criar_livro(titulo='Livro X', autor_ids=['...'], preco=50)
    """

    def __init__(self):
        self.collection = get_livros_collection()
        self._ensure_indexes()

    def _ensure_indexes(self):
        """
        Cria índices necessários para otimizar queries.

        Índices:
        - titulo: Para ordenação
        - autor_ids: Para busca dos livros de um autor (cálculo de comissão)
        - isbn: Para validação de ISBN único
        """
        self.collection.create_index('titulo')
        self.collection.create_index('autor_ids')
        self.collection.create_index('isbn')

    def _validar(self, titulo, autor_ids, preco, isbn, livro_id: Optional[str] = None) -> Dict[str, Any]:
        titulo = (titulo or '').strip()
        isbn = (isbn or '').strip()

        if not titulo:
            raise ErroValidacao("O título do livro é obrigatório")

        if isinstance(autor_ids, str):
            autor_ids = [autor_ids]
        if not autor_ids:
            raise ErroValidacao("O livro deve ter ao menos um autor")
        oids = []
        for autor_id in autor_ids:
            oid = para_object_id(autor_id, "autor")
            if oid not in oids:
                oids.append(oid)
        existentes = get_autores_collection().count_documents({'_id': {'$in': oids}})
        if existentes != len(oids):
            raise NaoEncontradoError("Autor não encontrado")

        if preco is None or preco == '':
            raise ErroValidacao("O preço do livro é obrigatório")
        valor = para_decimal(preco, "preço")
        if valor < 0:
            raise ErroValidacao("Preço não pode ser negativo")

        if isbn:
            filtro = {'isbn': isbn}
            if livro_id:
                filtro['_id'] = {'$ne': para_object_id(livro_id, "livro")}
            if self.collection.find_one(filtro):
                raise ErroRegraNegocio("Um livro com este ISBN já existe")

        return {
            'titulo': titulo,
            'autor_ids': oids,
            'preco': float(valor),
            'isbn': isbn or None,
        }

    def listar_livros(self) -> List[Dict[str, Any]]:
        """
        Lista todos os livros ordenados por título, com autores resolvidos.
        """
        livros = []
        for livro in self.collection.find().sort('titulo', 1):
            resolver_autores(livro)
            livros.append(normalizar(livro, ['autor_ids']))
        return livros

    def obter_livro_por_id(self, livro_id: str) -> Optional[Dict[str, Any]]:
        """
        Busca um livro pelo ID.

        Args:
            livro_id: ID do livro (ObjectId como string)

        Returns:
            Dict com dados do livro (autores resolvidos) ou None se não encontrado
        """
        oid = object_id_ou_none(livro_id)
        if oid is None:
            return None
        livro = self.collection.find_one({'_id': oid})
        if not livro:
            return None
        resolver_autores(livro)
        return normalizar(livro, ['autor_ids'])

    def obter_livro(self, livro_id: str) -> Dict[str, Any]:
        livro = self.obter_livro_por_id(livro_id)
        if not livro:
            raise LivroNaoEncontradoError()
        return livro

    def criar_livro(self, titulo: str, autor_ids, preco, isbn: str = '',
                    descricao: str = '', data_publicacao=None) -> Dict[str, Any]:
        """
        Cria um novo livro.

        Args:
            titulo: Título do livro
            autor_ids: Lista de IDs de autores (ao menos um)
            preco: Preço de capa
            isbn: ISBN opcional (único quando informado)
            descricao: Descrição opcional
            data_publicacao: Data de publicação opcional

        Returns:
            Dict com dados do livro criado

        Raises:
            ErroValidacao: Se dados inválidos
            NaoEncontradoError: Se algum autor não existe
            ErroRegraNegocio: Se o ISBN já existe
        """
        dados = self._validar(titulo, autor_ids, preco, isbn)

        now = datetime.utcnow()
        livro_data = {
            **dados,
            'descricao': (descricao or '').strip(),
            'data_publicacao': para_datetime(data_publicacao, "data de publicação") if data_publicacao else None,
            'created_at': now,
            'updated_at': now,
        }
        result = self.collection.insert_one(livro_data)
        return self.obter_livro(result.inserted_id)

    def atualizar_livro(self, livro_id: str, titulo: str = None, autor_ids=None, preco=None,
                        isbn: str = None, descricao: str = None, data_publicacao=None) -> Dict[str, Any]:
        """
        Atualiza um livro. Campos não informados (None) mantêm o valor atual.
        """
        livro = self.obter_livro(livro_id)

        dados = self._validar(
            titulo if titulo is not None else livro.get('titulo'),
            autor_ids if autor_ids is not None else livro.get('autor_ids'),
            preco if preco is not None else livro.get('preco'),
            isbn if isbn is not None else livro.get('isbn'),
            livro_id=livro_id,
        )
        if descricao is not None:
            dados['descricao'] = descricao.strip()
        if data_publicacao:
            dados['data_publicacao'] = para_datetime(data_publicacao, "data de publicação")
        dados['updated_at'] = datetime.utcnow()

        self.collection.update_one({'_id': para_object_id(livro_id)}, {'$set': dados})
        return self.obter_livro(livro_id)

    def excluir_livro(self, livro_id: str) -> None:
        """
        Remove um livro.

        Raises:
            LivroNaoEncontradoError: Se o livro não existe
            ErroRegraNegocio: Se o livro possui vendas
        """
        livro = self.obter_livro(livro_id)
        oid = para_object_id(livro['id'])

        if get_database()["vendas"].count_documents({'livro_id': oid}, limit=1) > 0:
            raise ErroRegraNegocio("Não é possível excluir um livro que possui vendas")

        self.collection.delete_one({'_id': oid})
