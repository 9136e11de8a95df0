"""
Testes do livro de vendas.
"""
import pytest
from bson import ObjectId

from editora_app.exceptions import ErroValidacao, LivroNaoEncontradoError, VendaProcessadaError
from editora_app.services import comissao_service
from editora_app.services.venda_service import VendaService, mapear_plataforma, status_da_planilha


def _processar(autor):
    comissao_service.calcular_comissao_autor(autor['id'], '2024-03-01', '2024-03-31')


class TestRegistro:

    def test_venda_nova_nao_processada(self, livro, nova_venda):
        venda = nova_venda()

        assert venda['processada'] is False
        assert venda['comissao_id'] is None
        assert venda['autor_ids'] == livro['autor_ids']
        assert venda['livro']['titulo'] == 'Livro A'

    def test_livro_inexistente(self, nova_venda):
        with pytest.raises(LivroNaoEncontradoError):
            nova_venda(livro_id=str(ObjectId()))

    @pytest.mark.parametrize('campos', [
        {'quantidade': 0},
        {'preco': -5},
        {'preco': 'NaN'},
        {'preco': float('inf')},
        {'origem': 'LIVRARIA'},
        {'plataforma': 'Balcão'},
        {'data': 'ontem'},
    ])
    def test_dados_invalidos(self, nova_venda, campos):
        with pytest.raises(ErroValidacao):
            nova_venda(**campos)


class TestVendaProcessada:

    def test_venda_processada_nao_pode_ser_editada(self, autor, nova_venda):
        venda = nova_venda()
        _processar(autor)

        with pytest.raises(VendaProcessadaError):
            VendaService().atualizar_venda(venda['id'], quantidade=10)

    def test_venda_processada_nao_pode_ser_excluida(self, mongo, autor, nova_venda):
        venda = nova_venda()
        _processar(autor)

        with pytest.raises(VendaProcessadaError):
            VendaService().excluir_venda(venda['id'])

        assert mongo['vendas'].count_documents({}) == 1

    def test_venda_pendente_pode_ser_editada(self, nova_venda):
        venda = nova_venda()

        atualizada = VendaService().atualizar_venda(venda['id'], quantidade=3, origem='PARCEIRA')

        assert atualizada['quantidade'] == 3
        assert atualizada['origem'] == 'PARCEIRA'
        assert atualizada['preco_venda'] == 50.0

    def test_venda_volta_a_ser_editavel_apos_excluir_comissao(self, autor, nova_venda):
        venda = nova_venda()
        comissao = comissao_service.calcular_comissao_autor(autor['id'], '2024-03-01', '2024-03-31')['comissao']
        comissao_service.excluir_comissao(comissao['id'])

        atualizada = VendaService().atualizar_venda(venda['id'], quantidade=4)

        assert atualizada['quantidade'] == 4


class TestConsultas:

    def test_filtrar_por_periodo_e_processamento(self, autor, nova_venda):
        nova_venda(data='2024-03-10')
        nova_venda(data='2024-05-10')
        _processar(autor)
        service = VendaService()

        assert len(service.filtrar_vendas(autor_id=autor['id'])) == 2
        assert len(service.filtrar_vendas(data_inicio='2024-03-01', data_fim='2024-03-31')) == 1
        pendentes = service.filtrar_vendas(processada=False)
        assert [v['data_venda'].month for v in pendentes] == [5]

    def test_estatisticas_por_origem(self, nova_venda):
        nova_venda(quantidade=2, preco=50, data='2024-03-10')
        nova_venda(quantidade=1, preco=200, origem='PARCEIRA', data='2024-04-02')
        nova_venda(quantidade=1, preco=999, status='CANCELADA')

        stats = VendaService().estatisticas_vendas()

        assert stats['total_vendas'] == 300.0
        assert stats['vendas_por_origem']['EDITORA']['receita_autor'] == 9.0
        assert stats['vendas_por_origem']['PARCEIRA']['receita_editora'] == 54.0
        assert [m['mes'] for m in stats['vendas_por_mes']] == ['2024-03', '2024-04']


class TestImportacao:

    def test_importar_linhas(self, mongo, livro):
        linhas = [
            {'titulo': 'Livro A', 'plataforma': 'AMAZON', 'data_venda': '10/03/2024', 'quantidade': 2,
             'preco_venda': '50,00', 'numero_pedido': 'P-1', 'cliente_nome': 'Rita', 'cliente_email': 'rita@mail.com'},
            {'titulo': 'Livro A', 'plataforma': 'Mercado Livre', 'data_venda': '2024-03-11',
             'numero_pedido': 'P-2', 'status': 'Devolvido'},
            {'titulo': 'Livro A', 'numero_pedido': 'P-1'},
            {'titulo': 'Poemas Perdidos', 'numero_pedido': 'P-3'},
        ]

        resumo = VendaService().importar_vendas(linhas, origem='EDITORA')

        assert resumo['vendas_criadas'] == 2
        assert sum(resumo['duplicadas'].values()) == 1
        assert resumo['livros_nao_encontrados'] == {'Poemas Perdidos': 1}
        assert resumo['canceladas'] == {'Livro A': 1}
        assert resumo['clientes_criados'] == 1
        cancelada = mongo['vendas'].find_one({'numero_pedido': 'P-2'})
        assert cancelada['status'] == 'CANCELADA'
        assert cancelada['preco_venda'] == 50.0

    def test_origem_invalida(self):
        with pytest.raises(ErroValidacao):
            VendaService().importar_vendas([], origem='OUTRA')


def test_mapear_plataforma():
    assert mapear_plataforma('AMAZON 2') == 'Amazon'
    assert mapear_plataforma('Estante Virtual') == 'Estante Virtual'
    assert mapear_plataforma('Banca da esquina') == 'Outra plataforma'


def test_status_da_planilha():
    assert status_da_planilha('Cancelado pelo comprador') == 'CANCELADA'
    assert status_da_planilha('Entregue') == 'CONCLUIDA'
    assert status_da_planilha('') == 'CONCLUIDA'
