"""
Service para lógica de vendas (livro de vendas).

Localização: editora_app/services/venda_service.py

Este service contém a lógica de negócio relacionada a vendas.
Acesso direto ao MongoDB via pymongo (sem ORM).
Collection: vendas

Uma venda processada (processada=True, comissao_id preenchido) pertence a uma
comissão e não pode ser alterada nem excluída até a comissão ser excluída.
"""
from typing import List, Dict, Any, Optional
from datetime import datetime
from decimal import Decimal
import logging
import re

from core.database import get_database
from editora_app.exceptions import (
    ErroValidacao,
    LivroNaoEncontradoError,
    VendaNaoEncontradaError,
    VendaProcessadaError,
)
from editora_app.services.calculo_comissao_service import dividir_receita, ORIGENS
from editora_app.services.documentos import (
    dinheiro,
    fim_do_dia,
    normalizar,
    object_id_ou_none,
    para_datetime,
    para_decimal,
    para_object_id,
)
from editora_app.services.livro_service import get_livros_collection, resolver_autores


logger = logging.getLogger(__name__)

PLATAFORMAS = (
    "Amazon",
    "Mercado Livre",
    "Estante Virtual",
    "umLivro",
    "Carrefour",
    "Americanas",
    "Site da Editora",
    "Outra plataforma",
)

MAPA_PLATAFORMAS = {
    "AMAZON": "Amazon",
    "AMAZON 2": "Amazon",
    "MERCADO LIVRE": "Mercado Livre",
    "ESTANTE VIRTUAL": "Estante Virtual",
    "UMLIVRO": "umLivro",
    "LOJA UMLIVRO": "umLivro",
    "CARREFOUR": "Carrefour",
    "AMERICANAS": "Americanas",
    "SITE DA EDITORA": "Site da Editora",
    "LIVRARIAS": "Outra plataforma",
}

STATUS_CONCLUIDA = "CONCLUIDA"
STATUS_CANCELADA = "CANCELADA"
STATUS_VENDA = (STATUS_CONCLUIDA, STATUS_CANCELADA)

CANCELAMENTO_REGEX = re.compile(r"(cancelad|cancelled|canceled|devolvid|returned)", re.IGNORECASE)

CAMPOS_ID = ['livro_id', 'autor_ids', 'comissao_id', 'cliente_id']


def get_vendas_collection():
    """
    Retorna a collection de vendas do MongoDB.

    Returns:
        Collection de vendas
    """
    db = get_database()
    return db["vendas"]


def mapear_plataforma(nome: str) -> str:
    """Converte o nome do canal (planilhas, formulário) para uma plataforma conhecida."""
    texto = (nome or "").strip()
    if texto in PLATAFORMAS:
        return texto
    return MAPA_PLATAFORMAS.get(texto.upper(), "Outra plataforma")


def status_da_planilha(valor: str) -> str:
    """'Cancelado', 'Devolvido', 'returned'... -> CANCELADA; demais -> CONCLUIDA."""
    texto = (valor or "").strip()
    if texto.upper() in STATUS_VENDA:
        return texto.upper()
    return STATUS_CANCELADA if CANCELAMENTO_REGEX.search(texto) else STATUS_CONCLUIDA


def resolver_livro(venda: Dict[str, Any]) -> Dict[str, Any]:
    """Anexa venda['livro'] (titulo, isbn, preco, autores) sem substituir livro_id."""
    livro = get_livros_collection().find_one(
        {"_id": para_object_id(venda["livro_id"])},
        {"titulo": 1, "isbn": 1, "preco": 1, "autor_ids": 1},
    )
    if livro:
        resolver_autores(livro)
        venda["livro"] = normalizar(livro, ["autor_ids"])
    else:
        venda["livro"] = None
    return venda


class VendaService:
    """
    Service para gerenciar vendas.

    Exemplo de uso:
        service = VendaService()
        venda = service.registrar_venda(
            livro_id='...',
            plataforma='Amazon',
            data_venda='2024-03-10',
            quantidade=2,
            preco_venda=50.0,
            origem='EDITORA',
        )
    """

    def __init__(self):
        self.collection = get_vendas_collection()
        self._ensure_indexes()

    def _ensure_indexes(self):
        """
        Cria índices necessários para otimizar queries.

        Índices:
        - data_venda: Para ordenação e filtros por período
        - livro_id + processada: Busca de vendas pendentes de comissão
        - comissao_id: Liberação das vendas ao excluir comissão
        - numero_pedido: Detecção de duplicadas na importação
        """
        self.collection.create_index('data_venda')
        self.collection.create_index([('livro_id', 1), ('processada', 1)])
        self.collection.create_index('comissao_id')
        self.collection.create_index('numero_pedido')

    def _obter_livro_doc(self, livro_id) -> Dict[str, Any]:
        livro = get_livros_collection().find_one({'_id': para_object_id(livro_id, "livro")})
        if not livro:
            raise LivroNaoEncontradoError()
        return livro

    def _validar_campos(self, plataforma, data_venda, quantidade, preco_venda, origem, status) -> Dict[str, Any]:
        if plataforma not in PLATAFORMAS:
            raise ErroValidacao(f"Plataforma inválida: {plataforma}")
        try:
            quantidade = int(quantidade)
        except (TypeError, ValueError):
            raise ErroValidacao("A quantidade vendida é obrigatória")
        if quantidade < 1:
            raise ErroValidacao("A quantidade deve ser maior que zero")
        preco = para_decimal(preco_venda, "preço de venda")
        if preco < 0:
            raise ErroValidacao("O preço de venda não pode ser negativo")
        origem = (origem or "EDITORA").upper()
        if origem not in ORIGENS:
            raise ErroValidacao(f"Origem inválida: {origem}")
        status = (status or STATUS_CONCLUIDA).upper()
        if status not in STATUS_VENDA:
            raise ErroValidacao(f"Status inválido: {status}")
        return {
            'plataforma': plataforma,
            'data_venda': para_datetime(data_venda, "data da venda"),
            'quantidade': quantidade,
            'preco_venda': float(preco),
            'origem': origem,
            'status': status,
        }

    def listar_vendas(self) -> List[Dict[str, Any]]:
        """
        Retorna todas as vendas ordenadas da mais recente para a mais antiga.

        Returns:
            Lista de vendas com id normalizado e livro resolvido
        """
        return [
            normalizar(resolver_livro(v), CAMPOS_ID)
            for v in self.collection.find().sort('data_venda', -1)
        ]

    def obter_venda_por_id(self, venda_id: str) -> Optional[Dict[str, Any]]:
        """
        Retorna uma venda específica pelo ID.

        Args:
            venda_id: ID da venda (ObjectId como string)

        Returns:
            Dict com dados da venda ou None se não encontrado
        """
        oid = object_id_ou_none(venda_id)
        if oid is None:
            return None
        venda = self.collection.find_one({'_id': oid})
        if not venda:
            return None
        return normalizar(resolver_livro(venda), CAMPOS_ID)

    def obter_venda(self, venda_id: str) -> Dict[str, Any]:
        venda = self.obter_venda_por_id(venda_id)
        if not venda:
            raise VendaNaoEncontradaError()
        return venda

    def registrar_venda(self, livro_id: str, plataforma: str, data_venda, quantidade, preco_venda,
                        origem: str = "EDITORA", status: str = STATUS_CONCLUIDA,
                        numero_pedido: str = "", cliente_id: str = None, cliente_nome: str = "",
                        cliente_email: str = "", cliente_telefone: str = "") -> Dict[str, Any]:
        """
        Registra uma nova venda (não processada).

        Raises:
            LivroNaoEncontradoError: Se o livro não existe
            ErroValidacao: Se dados inválidos
        """
        livro = self._obter_livro_doc(livro_id)
        dados = self._validar_campos(plataforma, data_venda, quantidade, preco_venda, origem, status)

        now = datetime.utcnow()
        venda_data = {
            'livro_id': livro['_id'],
            'autor_ids': list(livro.get('autor_ids', [])),
            **dados,
            'processada': False,
            'comissao_id': None,
            'numero_pedido': (numero_pedido or '').strip() or None,
            'cliente_id': para_object_id(cliente_id, "cliente") if cliente_id else None,
            'cliente_nome': (cliente_nome or '').strip(),
            'cliente_email': (cliente_email or '').strip().lower(),
            'cliente_telefone': (cliente_telefone or '').strip(),
            'created_at': now,
            'updated_at': now,
        }
        result = self.collection.insert_one(venda_data)
        return self.obter_venda(result.inserted_id)

    def atualizar_venda(self, venda_id: str, **campos) -> Dict[str, Any]:
        """
        Atualiza uma venda ainda não processada.

        Campos aceitos: livro_id, plataforma, data_venda, quantidade, preco_venda,
        origem, status, numero_pedido, cliente_nome, cliente_email, cliente_telefone.

        Raises:
            VendaNaoEncontradaError: Se a venda não existe
            VendaProcessadaError: Se a venda já pertence a uma comissão
        """
        oid = object_id_ou_none(venda_id)
        atual = self.collection.find_one({'_id': oid}) if oid else None
        if not atual:
            raise VendaNaoEncontradaError()
        if atual.get('processada'):
            raise VendaProcessadaError()

        def valor(nome):
            novo = campos.get(nome)
            return atual.get(nome) if novo is None else novo

        dados = self._validar_campos(
            valor('plataforma'), valor('data_venda'), valor('quantidade'),
            valor('preco_venda'), valor('origem'), valor('status'),
        )
        if campos.get('livro_id') is not None:
            livro = self._obter_livro_doc(campos['livro_id'])
            dados['livro_id'] = livro['_id']
            dados['autor_ids'] = list(livro.get('autor_ids', []))
        for nome in ('numero_pedido', 'cliente_nome', 'cliente_email', 'cliente_telefone'):
            if campos.get(nome) is not None:
                dados[nome] = str(campos[nome]).strip()
        dados['updated_at'] = datetime.utcnow()

        # Filtro em processada=False: a venda pode ter sido reivindicada por uma comissão entre a leitura e a escrita
        result = self.collection.update_one({'_id': oid, 'processada': False}, {'$set': dados})
        if result.matched_count == 0:
            raise VendaProcessadaError()
        return self.obter_venda(venda_id)

    def excluir_venda(self, venda_id: str) -> None:
        """
        Exclui uma venda não processada.

        Raises:
            VendaNaoEncontradaError: Se a venda não existe
            VendaProcessadaError: Se a venda pertence a uma comissão
        """
        oid = object_id_ou_none(venda_id)
        if oid is None or not self.collection.find_one({'_id': oid}, {'_id': 1}):
            raise VendaNaoEncontradaError()
        result = self.collection.delete_one({'_id': oid, 'processada': False})
        if result.deleted_count == 0:
            raise VendaProcessadaError()

    def filtrar_vendas(self, autor_id: str = None, data_inicio=None, data_fim=None,
                       processada: Optional[bool] = None, origem: str = None) -> List[Dict[str, Any]]:
        """
        Lista vendas filtradas por autor, período (inclusivo), processamento e origem.
        """
        filtro: Dict[str, Any] = {}
        if autor_id:
            filtro['autor_ids'] = para_object_id(autor_id, "autor")
        if data_inicio and data_fim:
            filtro['data_venda'] = {
                '$gte': para_datetime(data_inicio, "data inicial"),
                '$lte': fim_do_dia(para_datetime(data_fim, "data final")),
            }
        if processada is not None:
            filtro['processada'] = bool(processada)
        if origem:
            filtro['origem'] = origem.upper()

        return [
            normalizar(resolver_livro(v), CAMPOS_ID)
            for v in self.collection.find(filtro).sort('data_venda', -1)
        ]

    def estatisticas_vendas(self) -> Dict[str, Any]:
        """
        Totais de vendas (exceto canceladas): geral, por plataforma, por livro,
        por mês (YYYY-MM) e por origem com a divisão de receita.
        """
        total = Decimal(0)
        quantidade = 0
        por_plataforma: Dict[str, Dict[str, Any]] = {}
        por_livro: Dict[Any, Dict[str, Any]] = {}
        por_mes: Dict[str, Dict[str, Any]] = {}
        por_origem: Dict[str, Dict[str, Any]] = {
            o: {'quantidade': 0, 'total': Decimal(0), 'receita_autor': Decimal(0), 'receita_editora': Decimal(0)}
            for o in ORIGENS
        }

        cursor = self.collection.find(
            {'status': {'$ne': STATUS_CANCELADA}},
            {'livro_id': 1, 'plataforma': 1, 'data_venda': 1, 'quantidade': 1, 'preco_venda': 1, 'origem': 1},
        )
        for venda in cursor:
            qtd = int(venda.get('quantidade', 0))
            linha = para_decimal(venda.get('preco_venda', 0)) * qtd
            total += linha
            quantidade += qtd

            for chave, grupo in (
                (venda.get('plataforma', ''), por_plataforma),
                (venda.get('livro_id'), por_livro),
                (venda['data_venda'].strftime('%Y-%m') if venda.get('data_venda') else '', por_mes),
            ):
                item = grupo.setdefault(chave, {'quantidade': 0, 'total': Decimal(0)})
                item['quantidade'] += qtd
                item['total'] += linha

            origem = venda.get('origem') or 'EDITORA'
            divisao = dividir_receita(linha, origem)
            item = por_origem[origem]
            item['quantidade'] += qtd
            item['total'] += linha
            item['receita_autor'] += divisao['comissao_autor']
            item['receita_editora'] += divisao['receita_editora']

        titulos = {
            l['_id']: l.get('titulo', '')
            for l in get_livros_collection().find({'_id': {'$in': list(por_livro)}}, {'titulo': 1})
        }
        vendas_por_livro = sorted(
            (
                {'id': str(k), 'titulo': titulos.get(k, ''), 'quantidade': v['quantidade'], 'total': dinheiro(v['total'])}
                for k, v in por_livro.items()
            ),
            key=lambda l: l['total'],
            reverse=True,
        )
        return {
            'total_vendas': dinheiro(total),
            'quantidade_total': quantidade,
            'vendas_por_plataforma': {
                k: {'quantidade': v['quantidade'], 'total': dinheiro(v['total'])} for k, v in por_plataforma.items()
            },
            'vendas_por_livro': vendas_por_livro,
            'vendas_por_mes': [
                {'mes': k, 'quantidade': v['quantidade'], 'total': dinheiro(v['total'])}
                for k, v in sorted(por_mes.items())
            ],
            'vendas_por_origem': {
                k: {campo: (dinheiro(x) if isinstance(x, Decimal) else x) for campo, x in v.items()}
                for k, v in por_origem.items()
            },
        }

    def _buscar_livro_importacao(self, registro: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        livros = get_livros_collection()
        if registro.get('livro_id'):
            oid = object_id_ou_none(registro['livro_id'])
            if oid:
                return livros.find_one({'_id': oid})
        isbn = str(registro.get('isbn') or '').strip()
        if isbn:
            livro = livros.find_one({'isbn': isbn})
            if livro:
                return livro
        titulo = str(registro.get('titulo') or '').strip()
        if not titulo:
            return None
        livro = livros.find_one({'titulo': {'$regex': re.escape(titulo), '$options': 'i'}})
        if livro:
            return livro
        # Títulos de marketplace costumam vir com sufixos; tenta as palavras longas
        palavras = [p for p in titulo.split() if len(p) > 4]
        for palavra in palavras:
            livro = livros.find_one({'titulo': {'$regex': re.escape(palavra), '$options': 'i'}})
            if livro:
                return livro
        return None

    def importar_vendas(self, registros: List[Dict[str, Any]], origem: str = "EDITORA",
                        permitir_preco_zero: bool = False, importar_clientes: bool = True) -> Dict[str, Any]:
        """
        Registra em lote vendas já lidas de uma planilha (uma linha por dict).

        Chaves aceitas em cada registro: livro_id, isbn, titulo, plataforma, data_venda,
        quantidade, preco_venda, numero_pedido, status, cliente_nome, cliente_email,
        cliente_telefone.

        Returns:
            Resumo: vendas_criadas, duplicadas, canceladas, livros_nao_encontrados,
            clientes_criados, erros
        """
        from editora_app.services.cliente_service import obter_ou_criar_por_contato

        origem = (origem or "EDITORA").upper()
        if origem not in ORIGENS:
            raise ErroValidacao(f"Origem inválida: {origem}")

        criadas: List[str] = []
        duplicadas: Dict[str, int] = {}
        canceladas: Dict[str, int] = {}
        nao_encontrados: Dict[str, int] = {}
        erros: List[str] = []
        clientes_criados = 0

        for numero_linha, registro in enumerate(registros, start=1):
            titulo = str(registro.get('titulo') or '').strip()
            numero_pedido = str(registro.get('numero_pedido') or '').strip()

            if numero_pedido and self.collection.find_one({'numero_pedido': numero_pedido}, {'_id': 1}):
                chave = f"{titulo} - Pedido: {numero_pedido}"
                duplicadas[chave] = duplicadas.get(chave, 0) + 1
                continue

            livro = self._buscar_livro_importacao(registro)
            if not livro:
                chave = titulo or str(registro.get('isbn') or registro.get('livro_id') or f"linha {numero_linha}")
                nao_encontrados[chave] = nao_encontrados.get(chave, 0) + 1
                continue

            try:
                quantidade = int(registro.get('quantidade') or 1)
            except (TypeError, ValueError):
                quantidade = 1
            if quantidade <= 0:
                quantidade = 1

            try:
                preco = para_decimal(registro.get('preco_venda') or 0, "preço de venda")
            except ErroValidacao:
                preco = Decimal(0)
            if preco <= 0:
                if livro.get('preco', 0) > 0:
                    preco = para_decimal(livro['preco'])
                elif not permitir_preco_zero:
                    erros.append(f"Linha {numero_linha} ignorada: preço inválido para o livro \"{livro.get('titulo', titulo)}\"")
                    continue

            status = status_da_planilha(registro.get('status', ''))
            if status == STATUS_CANCELADA:
                chave = livro.get('titulo', titulo)
                canceladas[chave] = canceladas.get(chave, 0) + 1

            cliente_id = None
            if importar_clientes:
                cliente, criado = obter_ou_criar_por_contato(
                    registro.get('cliente_nome', ''),
                    registro.get('cliente_email', ''),
                    registro.get('cliente_telefone', ''),
                )
                if cliente:
                    cliente_id = cliente['id']
                    clientes_criados += int(criado)

            try:
                venda = self.registrar_venda(
                    livro_id=livro['_id'],
                    plataforma=mapear_plataforma(registro.get('plataforma') or ('Site da Editora' if origem == 'EDITORA' else '')),
                    data_venda=registro.get('data_venda') or datetime.utcnow(),
                    quantidade=quantidade,
                    preco_venda=preco,
                    origem=origem,
                    status=status,
                    numero_pedido=numero_pedido,
                    cliente_id=cliente_id,
                    cliente_nome=registro.get('cliente_nome', ''),
                    cliente_email=registro.get('cliente_email', ''),
                    cliente_telefone=registro.get('cliente_telefone', ''),
                )
            except ErroValidacao as e:
                erros.append(f"Linha {numero_linha} ignorada: {e}")
                continue
            criadas.append(venda['id'])

        logger.info(
            "Importação de vendas (%s): %d criadas, %d duplicadas, %d livros não encontrados, %d erros",
            origem, len(criadas), sum(duplicadas.values()), sum(nao_encontrados.values()), len(erros),
        )
        return {
            'vendas_criadas': len(criadas),
            'venda_ids': criadas,
            'duplicadas': duplicadas,
            'canceladas': canceladas,
            'livros_nao_encontrados': nao_encontrados,
            'clientes_criados': clientes_criados,
            'erros': erros,
        }
