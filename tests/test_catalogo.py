"""
Testes de autores e livros.
"""
import pytest
from bson import ObjectId

from editora_app.exceptions import (
    AutorNaoEncontradoError,
    ErroRegraNegocio,
    ErroValidacao,
    LivroNaoEncontradoError,
    NaoEncontradoError,
)
from editora_app.services.autor_service import AutorService
from editora_app.services.livro_service import LivroService


class TestAutores:

    def test_criar_autor(self):
        autor = AutorService().criar_autor('  Carla  ', '12,5', email='Carla@Editora.com.br', bio='Poeta')

        assert autor['nome'] == 'Carla'
        assert autor['email'] == 'carla@editora.com.br'
        assert autor['taxa_comissao'] == 12.5
        assert autor['id'] == autor['_id']

    @pytest.mark.parametrize('dados', [
        {'nome': '', 'taxa_comissao': 10},
        {'nome': 'X', 'taxa_comissao': None},
        {'nome': 'X', 'taxa_comissao': 150},
        {'nome': 'X', 'taxa_comissao': 'Infinity'},
        {'nome': 'X', 'taxa_comissao': 10, 'email': 'sem-arroba'},
    ])
    def test_dados_invalidos(self, dados):
        with pytest.raises(ErroValidacao):
            AutorService().criar_autor(**dados)

    def test_email_duplicado(self, autor):
        with pytest.raises(ErroRegraNegocio):
            AutorService().criar_autor('Outra Ana', 10, email='ana@editora.com.br')

    def test_atualizar_mantem_campos_nao_informados(self, autor):
        atualizado = AutorService().atualizar_autor(autor['id'], taxa_comissao=15)

        assert atualizado['taxa_comissao'] == 15.0
        assert atualizado['nome'] == 'Ana Autora'
        assert atualizado['email'] == 'ana@editora.com.br'

    def test_autor_com_livros_nao_pode_ser_excluido(self, mongo, autor, livro):
        with pytest.raises(ErroRegraNegocio):
            AutorService().excluir_autor(autor['id'])

        assert mongo['autores'].count_documents({}) == 1

    def test_excluir_autor_sem_livros(self, mongo):
        autor = AutorService().criar_autor('Temporário', 10)

        AutorService().excluir_autor(autor['id'])

        assert mongo['autores'].count_documents({}) == 0

    def test_autor_inexistente(self):
        with pytest.raises(AutorNaoEncontradoError):
            AutorService().obter_autor(str(ObjectId()))

    def test_estatisticas_ignoram_canceladas(self, autor, nova_venda):
        nova_venda(quantidade=2, preco=50, plataforma='Amazon')
        nova_venda(quantidade=1, preco=40, plataforma='Mercado Livre')
        nova_venda(quantidade=5, preco=50, status='CANCELADA')

        stats = AutorService().estatisticas_autor(autor['id'])

        assert stats['total_vendas'] == 140.0
        assert stats['quantidade_total'] == 3
        assert stats['vendas_por_plataforma']['Amazon'] == {'quantidade': 2, 'total': 100.0}
        assert stats['vendas_por_livro'][0]['titulo'] == 'Livro A'

    def test_estatisticas_de_autor_sem_livros(self):
        autor = AutorService().criar_autor('Estreante', 10)

        stats = AutorService().estatisticas_autor(autor['id'])

        assert stats['total_vendas'] == 0.0
        assert stats['vendas_por_livro'] == []


class TestLivros:

    def test_criar_livro_resolve_autores(self, autor):
        livro = LivroService().criar_livro('Contos', [autor['id']], '39,90')

        assert livro['preco'] == 39.9
        assert livro['autor_ids'] == [autor['id']]
        assert livro['autores'][0]['nome'] == 'Ana Autora'

    def test_livro_exige_autor_existente(self):
        with pytest.raises(NaoEncontradoError):
            LivroService().criar_livro('Órfão', [str(ObjectId())], 10)

    def test_livro_exige_ao_menos_um_autor(self):
        with pytest.raises(ErroValidacao):
            LivroService().criar_livro('Sem autor', [], 10)

    def test_preco_negativo(self, autor):
        with pytest.raises(ErroValidacao):
            LivroService().criar_livro('Barato', [autor['id']], -1)

    def test_isbn_duplicado(self, autor, livro):
        with pytest.raises(ErroRegraNegocio):
            LivroService().criar_livro('Outro', [autor['id']], 10, isbn=livro['isbn'])

    def test_atualizar_livro_pode_manter_o_proprio_isbn(self, livro):
        atualizado = LivroService().atualizar_livro(livro['id'], titulo='Livro A (2ª edição)', isbn=livro['isbn'])

        assert atualizado['titulo'] == 'Livro A (2ª edição)'
        assert atualizado['isbn'] == livro['isbn']

    def test_livro_com_vendas_nao_pode_ser_excluido(self, mongo, livro, nova_venda):
        nova_venda()

        with pytest.raises(ErroRegraNegocio):
            LivroService().excluir_livro(livro['id'])

        assert mongo['livros'].count_documents({'_id': ObjectId(livro['id'])}) == 1

    def test_excluir_livro_sem_vendas(self, livro):
        service = LivroService()

        service.excluir_livro(livro['id'])

        with pytest.raises(LivroNaoEncontradoError):
            service.obter_livro(livro['id'])
