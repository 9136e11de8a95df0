"""
Service para autores (organizadores).

Localização: editora_app/services/autor_service.py

Acesso direto ao MongoDB via pymongo (sem ORM).
Collection: autores
Documento: nome, email (opcional, único), taxa_comissao (0-100), bio, created_at, updated_at
"""
from typing import List, Dict, Any, Optional
from datetime import datetime
import re

from core.database import get_database
from editora_app.exceptions import (
    AutorNaoEncontradoError,
    ErroRegraNegocio,
    ErroValidacao,
)
from editora_app.services.documentos import (
    dinheiro,
    normalizar,
    object_id_ou_none,
    para_decimal,
    para_object_id,
)


EMAIL_REGEX = re.compile(r"^[\w.+-]+@([\w-]+\.)+[\w-]{2,}$")


def get_autores_collection():
    """
    Retorna a collection de autores do MongoDB.

    Returns:
        Collection de autores
    """
    db = get_database()
    return db["autores"]


class AutorService:
    """
    Service para gerenciar autores.

    Exemplo de uso:
        service = AutorService()
        autor = service.criar_autor(nome='Maria', email='maria@ex.com', taxa_comissao=10)
        autores = service.listar_autores()
    """

    def __init__(self):
        self.collection = get_autores_collection()
        self._ensure_indexes()

    def _ensure_indexes(self):
        """
        Cria índices necessários para otimizar queries.

        Índices:
        - nome: Para ordenação
        - email: Para validação de email único (unicidade validada no service)
        """
        self.collection.create_index('nome')
        self.collection.create_index('email')

    def _validar(self, nome: str, email: str, taxa_comissao, autor_id: Optional[str] = None) -> Dict[str, Any]:
        nome = (nome or '').strip()
        email = (email or '').strip().lower()

        if not nome:
            raise ErroValidacao("O nome do autor é obrigatório")

        if taxa_comissao is None or taxa_comissao == '':
            raise ErroValidacao("A taxa de comissão é obrigatória")
        taxa = para_decimal(taxa_comissao, "taxa de comissão")
        if taxa < 0 or taxa > 100:
            raise ErroValidacao("A taxa de comissão deve estar entre 0 e 100")

        if email:
            if not EMAIL_REGEX.match(email):
                raise ErroValidacao("Por favor, informe um email válido")
            filtro = {'email': email}
            if autor_id:
                filtro['_id'] = {'$ne': para_object_id(autor_id, "autor")}
            if self.collection.find_one(filtro):
                raise ErroRegraNegocio(f"Já existe um autor com o email '{email}'")

        return {'nome': nome, 'email': email or None, 'taxa_comissao': float(taxa)}

    def listar_autores(self) -> List[Dict[str, Any]]:
        """
        Lista todos os autores ordenados por nome.

        Returns:
            Lista de autores com id normalizado
        """
        return [normalizar(a) for a in self.collection.find().sort('nome', 1)]

    def obter_autor_por_id(self, autor_id: str) -> Optional[Dict[str, Any]]:
        """
        Busca um autor pelo ID.

        Args:
            autor_id: ID do autor (ObjectId como string)

        Returns:
            Dict com dados do autor ou None se não encontrado
        """
        oid = object_id_ou_none(autor_id)
        if oid is None:
            return None
        return normalizar(self.collection.find_one({'_id': oid}))

    def obter_autor(self, autor_id: str) -> Dict[str, Any]:
        """Como obter_autor_por_id, mas levanta AutorNaoEncontradoError."""
        autor = self.obter_autor_por_id(autor_id)
        if not autor:
            raise AutorNaoEncontradoError()
        return autor

    def criar_autor(self, nome: str, taxa_comissao, email: str = '', bio: str = '') -> Dict[str, Any]:
        """
        Cria um novo autor.

        Args:
            nome: Nome do autor
            taxa_comissao: Percentual de comissão (0 a 100)
            email: Email opcional (único quando informado)
            bio: Biografia opcional

        Returns:
            Dict com dados do autor criado

        Raises:
            ErroValidacao: Se dados inválidos
            ErroRegraNegocio: Se o email já pertence a outro autor
        """
        dados = self._validar(nome, email, taxa_comissao)

        now = datetime.utcnow()
        autor_data = {
            **dados,
            'bio': (bio or '').strip(),
            'created_at': now,
            'updated_at': now,
        }
        result = self.collection.insert_one(autor_data)
        return self.obter_autor(result.inserted_id)

    def atualizar_autor(self, autor_id: str, nome: str = None, taxa_comissao=None,
                        email: str = None, bio: str = None) -> Dict[str, Any]:
        """
        Atualiza um autor. Campos não informados (None) mantêm o valor atual.

        Raises:
            AutorNaoEncontradoError: Se o autor não existe
        """
        autor = self.obter_autor(autor_id)

        dados = self._validar(
            nome if nome is not None else autor.get('nome'),
            email if email is not None else autor.get('email'),
            taxa_comissao if taxa_comissao is not None else autor.get('taxa_comissao'),
            autor_id=autor_id,
        )
        dados['bio'] = (bio if bio is not None else autor.get('bio', '') or '').strip()
        dados['updated_at'] = datetime.utcnow()

        self.collection.update_one({'_id': para_object_id(autor_id)}, {'$set': dados})
        return self.obter_autor(autor_id)

    def excluir_autor(self, autor_id: str) -> None:
        """
        Remove um autor.

        Raises:
            AutorNaoEncontradoError: Se o autor não existe
            ErroRegraNegocio: Se o autor possui livros
        """
        autor = self.obter_autor(autor_id)
        oid = para_object_id(autor['id'])

        if get_database()["livros"].count_documents({'autor_ids': oid}, limit=1) > 0:
            raise ErroRegraNegocio("Não é possível excluir um autor que possui livros")

        self.collection.delete_one({'_id': oid})

    def estatisticas_autor(self, autor_id: str) -> Dict[str, Any]:
        """
        Estatísticas de vendas do autor (vendas canceladas não entram).

        Returns:
            {autor, total_vendas, quantidade_total, vendas_por_plataforma, vendas_por_livro}
        """
        autor = self.obter_autor(autor_id)
        oid = para_object_id(autor['id'])
        db = get_database()

        livros = list(db["livros"].find({'autor_ids': oid}))
        if not livros:
            return {
                'autor': autor['id'],
                'total_vendas': 0.0,
                'quantidade_total': 0,
                'vendas_por_plataforma': {},
                'vendas_por_livro': [],
            }

        vendas = db["vendas"].find({
            'livro_id': {'$in': [l['_id'] for l in livros]},
            'status': {'$ne': 'CANCELADA'},
        })

        total = para_decimal(0)
        quantidade = 0
        por_plataforma: Dict[str, Dict[str, Any]] = {}
        por_livro: Dict[Any, Dict[str, Any]] = {
            l['_id']: {'id': str(l['_id']), 'titulo': l.get('titulo', ''), 'quantidade': 0, 'total': para_decimal(0)}
            for l in livros
        }
        for venda in vendas:
            linha = para_decimal(venda.get('preco_venda', 0)) * int(venda.get('quantidade', 0))
            total += linha
            quantidade += int(venda.get('quantidade', 0))
            plataforma = por_plataforma.setdefault(venda.get('plataforma', ''), {'quantidade': 0, 'total': para_decimal(0)})
            plataforma['quantidade'] += int(venda.get('quantidade', 0))
            plataforma['total'] += linha
            livro = por_livro[venda['livro_id']]
            livro['quantidade'] += int(venda.get('quantidade', 0))
            livro['total'] += linha

        vendas_por_livro = sorted(
            (dict(l, total=dinheiro(l['total'])) for l in por_livro.values() if l['quantidade'] > 0),
            key=lambda l: l['total'],
            reverse=True,
        )
        return {
            'autor': autor['id'],
            'total_vendas': dinheiro(total),
            'quantidade_total': quantidade,
            'vendas_por_plataforma': {
                k: {'quantidade': v['quantidade'], 'total': dinheiro(v['total'])}
                for k, v in por_plataforma.items()
            },
            'vendas_por_livro': vendas_por_livro,
        }
