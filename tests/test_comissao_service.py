"""
Testes do ciclo de vida das comissões (MongoDB em memória).
"""
import pytest
from bson import ObjectId

from editora_app.exceptions import (
    AutorNaoEncontradoError,
    AutorSemLivrosError,
    ComissaoJaPagaError,
    ComissaoNaoEncontradaError,
    ErroValidacao,
    SemVendasPendentesError,
)
from editora_app.services import comissao_service
from editora_app.services.autor_service import AutorService
from editora_app.services.livro_service import LivroService
from editora_app.services.venda_service import VendaService


INICIO = '2024-03-01'
FIM = '2024-03-31'


def _calcular(autor):
    return comissao_service.calcular_comissao_autor(autor['id'], INICIO, FIM)['comissao']


class ColecaoComFalha:
    """Envolve uma collection e falha no método indicado."""

    def __init__(self, colecao, metodo):
        self._colecao = colecao
        self._metodo = metodo

    def __getattr__(self, nome):
        if nome == self._metodo:
            def falhar(*args, **kwargs):
                raise RuntimeError("falha simulada")
            return falhar
        return getattr(self._colecao, nome)


class TestCalcularComissao:

    def test_cria_comissao_pendente_e_marca_vendas(self, mongo, autor, nova_venda):
        direta = nova_venda(quantidade=2, preco=50)
        parceira = nova_venda(quantidade=1, preco=200, origem='PARCEIRA')

        comissao = _calcular(autor)

        assert comissao['status'] == 'PENDENTE'
        assert comissao['valor_comissao'] == 15.0
        assert comissao['valor_comissao_calculado'] == 15.0
        assert comissao['total_vendas'] == 300.0
        assert comissao['taxa_comissao'] == 10.0
        assert sorted(comissao['venda_ids']) == sorted([direta['id'], parceira['id']])
        assert comissao['detalhe_origem']['PARCEIRA']['receita_parceira'] == 140.0
        for venda in mongo['vendas'].find():
            assert venda['processada'] is True
            assert venda['comissao_id'] == ObjectId(comissao['id'])

    def test_resolve_autor_vendas_e_livros(self, autor, nova_venda):
        nova_venda()

        comissao = _calcular(autor)

        assert comissao['autor_id'] == autor['id']
        assert comissao['autor']['nome'] == 'Ana Autora'
        venda, = comissao['vendas']
        assert venda['livro']['titulo'] == 'Livro A'
        assert isinstance(venda['livro_id'], str)

    def test_sem_vendas_no_periodo_nao_grava_nada(self, mongo, autor, nova_venda):
        nova_venda(data='2024-04-02')

        with pytest.raises(SemVendasPendentesError):
            _calcular(autor)

        assert mongo['comissoes'].count_documents({}) == 0
        assert mongo['vendas'].count_documents({'processada': True}) == 0

    def test_segundo_calculo_do_mesmo_periodo_falha(self, mongo, autor, nova_venda):
        nova_venda()
        _calcular(autor)

        with pytest.raises(SemVendasPendentesError):
            _calcular(autor)

        assert mongo['comissoes'].count_documents({}) == 1

    def test_comissoes_nunca_compartilham_vendas(self, autor, nova_venda):
        primeira_venda = nova_venda(data='2024-03-05')
        primeira = _calcular(autor)
        segunda_venda = nova_venda(data='2024-03-20')
        segunda = _calcular(autor)

        assert primeira['venda_ids'] == [primeira_venda['id']]
        assert segunda['venda_ids'] == [segunda_venda['id']]

    def test_calculo_concorrente_leva_todas_as_vendas(self, mongo, monkeypatch, autor, nova_venda):
        nova_venda(data='2024-03-05')
        nova_venda(data='2024-03-20')
        concorrente = ObjectId()
        reivindicar = comissao_service._reivindicar_vendas

        def chega_depois(comissao_id, filtro, session=None):
            mongo['vendas'].update_many(
                {**filtro, 'processada': False},
                {'$set': {'processada': True, 'comissao_id': concorrente}},
            )
            return reivindicar(comissao_id, filtro, session)
        monkeypatch.setattr(comissao_service, '_reivindicar_vendas', chega_depois)

        with pytest.raises(SemVendasPendentesError):
            _calcular(autor)

        assert mongo['comissoes'].count_documents({}) == 0
        for venda in mongo['vendas'].find():
            assert venda['processada'] is True
            assert venda['comissao_id'] == concorrente

    def test_calculo_concorrente_leva_parte_das_vendas(self, mongo, monkeypatch, autor, nova_venda):
        tomada = nova_venda(data='2024-03-05')
        restante = nova_venda(data='2024-03-20', quantidade=1)
        concorrente = ObjectId()
        reivindicar = comissao_service._reivindicar_vendas

        def chega_depois(comissao_id, filtro, session=None):
            mongo['vendas'].update_one(
                {'_id': ObjectId(tomada['id']), 'processada': False},
                {'$set': {'processada': True, 'comissao_id': concorrente}},
            )
            return reivindicar(comissao_id, filtro, session)
        monkeypatch.setattr(comissao_service, '_reivindicar_vendas', chega_depois)

        comissao = _calcular(autor)

        assert comissao['venda_ids'] == [restante['id']]
        assert comissao['total_vendas'] == 50.0
        assert comissao['valor_comissao'] == 4.5
        assert mongo['vendas'].find_one({'_id': ObjectId(tomada['id'])})['comissao_id'] == concorrente
        assert mongo['vendas'].find_one({'_id': ObjectId(restante['id'])})['comissao_id'] == ObjectId(comissao['id'])

    def test_periodo_inclui_o_dia_final_inteiro(self, autor, nova_venda):
        nova_venda(data='2024-03-31T18:45:00')
        nova_venda(data='2024-02-29T23:59:59')

        comissao = _calcular(autor)

        assert len(comissao['venda_ids']) == 1

    def test_vendas_canceladas_ficam_de_fora(self, autor, nova_venda):
        valida = nova_venda()
        nova_venda(status='CANCELADA')

        comissao = _calcular(autor)

        assert comissao['venda_ids'] == [valida['id']]
        assert comissao['valor_comissao'] == 9.0

    def test_data_inicial_posterior_a_final(self, autor):
        with pytest.raises(ErroValidacao):
            comissao_service.calcular_comissao_autor(autor['id'], FIM, INICIO)

    def test_parametros_obrigatorios(self, autor):
        with pytest.raises(ErroValidacao):
            comissao_service.calcular_comissao_autor(autor['id'], INICIO, None)

    def test_autor_inexistente(self):
        with pytest.raises(AutorNaoEncontradoError):
            comissao_service.calcular_comissao_autor(str(ObjectId()), INICIO, FIM)

    def test_autor_sem_livros(self):
        autor = AutorService().criar_autor('Sem Livros', 10)

        with pytest.raises(AutorSemLivrosError):
            _calcular(autor)

    def test_falha_no_calculo_devolve_as_vendas(self, mongo, monkeypatch, autor, nova_venda):
        nova_venda()

        def falhar(*args, **kwargs):
            raise RuntimeError("falha simulada")
        monkeypatch.setattr(comissao_service, 'calcular_comissao', falhar)

        with pytest.raises(RuntimeError):
            _calcular(autor)

        assert mongo['comissoes'].count_documents({}) == 0
        venda = mongo['vendas'].find_one()
        assert venda['processada'] is False
        assert venda['comissao_id'] is None

    def test_taxa_do_autor_quando_configurado(self, settings):
        settings.COMISSAO_SETTINGS = {'USAR_TAXA_DO_AUTOR': True}
        autor = AutorService().criar_autor('Taxa Própria', 20)
        livro = LivroService().criar_livro('Livro C', [autor['id']], 50)
        VendaService().registrar_venda(livro['id'], 'Amazon', '2024-03-10', 2, 50)

        comissao = _calcular(autor)

        assert comissao['valor_comissao'] == 18.0
        assert comissao['taxa_comissao'] == 20.0

    def test_livro_em_coautoria(self, autor, livro, nova_venda):
        coautor = AutorService().criar_autor('Bruno Coautor', 10)
        coautoria = LivroService().criar_livro('Livro Duplo', [autor['id'], coautor['id']], 100)
        nova_venda(quantidade=1, preco=100, livro_id=coautoria['id'])

        comissao = _calcular(autor)

        assert comissao['valor_comissao'] == 4.5
        assert comissao['possui_comissoes_divididas'] is True
        assert comissao['detalhes_comissao_dividida'][0]['coautores'] == ['Bruno Coautor']


class TestPagamento:

    def test_registra_pagamento(self, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)

        paga = comissao_service.registrar_pagamento(comissao['id'], 'pix', 'Pago em março')

        assert paga['status'] == 'PAGA'
        assert paga['forma_pagamento'] == 'PIX'
        assert paga['observacoes'] == 'Pago em março'
        assert paga['data_pagamento'] is not None

    def test_pagar_duas_vezes_mantem_a_data(self, mongo, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)
        comissao_service.registrar_pagamento(comissao['id'])
        data_pagamento = mongo['comissoes'].find_one()['data_pagamento']

        with pytest.raises(ComissaoJaPagaError):
            comissao_service.registrar_pagamento(comissao['id'])

        assert mongo['comissoes'].find_one()['data_pagamento'] == data_pagamento

    def test_forma_de_pagamento_invalida(self, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)

        with pytest.raises(ErroValidacao):
            comissao_service.registrar_pagamento(comissao['id'], 'BITCOIN')

    @pytest.mark.parametrize('campos', [
        {'forma_pagamento': 5},
        {'forma_pagamento': ['PIX']},
        {'observacoes': {'texto': 'pago'}},
    ])
    def test_campos_que_nao_sao_texto(self, mongo, autor, nova_venda, campos):
        nova_venda()
        comissao = _calcular(autor)

        with pytest.raises(ErroValidacao):
            comissao_service.registrar_pagamento(comissao['id'], **campos)

        doc = mongo['comissoes'].find_one()
        assert doc['status'] == 'PENDENTE'
        assert doc['data_pagamento'] is None

    def test_comissao_inexistente(self):
        with pytest.raises(ComissaoNaoEncontradaError):
            comissao_service.registrar_pagamento(str(ObjectId()))


class TestAjuste:

    def test_ajuste_preserva_valor_calculado(self, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)

        ajustada = comissao_service.atualizar_comissao(comissao['id'], valor_comissao='20,00', observacoes='bônus')

        assert ajustada['valor_comissao'] == 20.0
        assert ajustada['valor_comissao_calculado'] == 9.0
        assert ajustada['observacoes'] == 'bônus'
        campos = {a['campo']: a for a in ajustada['ajustes']}
        assert campos['valor_comissao']['valor_anterior'] == 9.0
        assert campos['valor_comissao']['valor_novo'] == 20.0
        assert 'observacoes' in campos

    def test_ajuste_nao_mexe_nas_vendas(self, mongo, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)

        comissao_service.atualizar_comissao(comissao['id'], taxa_comissao=12)

        assert mongo['vendas'].count_documents({'processada': True}) == 1

    def test_sem_alteracao_nao_registra_ajuste(self, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)

        ajustada = comissao_service.atualizar_comissao(comissao['id'], valor_comissao=9)

        assert ajustada['ajustes'] == []

    @pytest.mark.parametrize('campos', [
        {'valor_comissao': -1},
        {'taxa_comissao': 101},
        {'valor_comissao': float('nan')},
        {'valor_comissao': 'Infinity'},
        {'taxa_comissao': 'NaN'},
    ])
    def test_valores_invalidos(self, mongo, autor, nova_venda, campos):
        nova_venda()
        comissao = _calcular(autor)

        with pytest.raises(ErroValidacao):
            comissao_service.atualizar_comissao(comissao['id'], **campos)

        doc = mongo['comissoes'].find_one()
        assert doc['valor_comissao'] == 9.0
        assert doc['ajustes'] == []


class TestExclusao:

    def test_excluir_libera_as_vendas_e_recalculo_reproduz_totais(self, mongo, autor, nova_venda):
        nova_venda(quantidade=2, preco=50)
        nova_venda(quantidade=1, preco=200, origem='PARCEIRA')
        original = _calcular(autor)

        resultado = comissao_service.excluir_comissao(original['id'])

        assert resultado['vendas_liberadas'] == 2
        assert mongo['comissoes'].count_documents({}) == 0
        for venda in mongo['vendas'].find():
            assert venda['processada'] is False
            assert venda['comissao_id'] is None

        recalculada = _calcular(autor)
        assert recalculada['total_vendas'] == original['total_vendas']
        assert recalculada['valor_comissao'] == original['valor_comissao']
        assert sorted(recalculada['venda_ids']) == sorted(original['venda_ids'])

    def test_excluir_comissao_paga(self, mongo, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)
        comissao_service.registrar_pagamento(comissao['id'])

        comissao_service.excluir_comissao(comissao['id'])

        assert mongo['vendas'].count_documents({'processada': False}) == 1

    def test_excluir_nao_toca_vendas_de_outra_comissao(self, mongo, autor, nova_venda):
        nova_venda(data='2024-03-05')
        primeira = _calcular(autor)
        nova_venda(data='2024-03-25')
        segunda = _calcular(autor)

        comissao_service.excluir_comissao(primeira['id'])

        assert mongo['vendas'].count_documents({'comissao_id': ObjectId(segunda['id']), 'processada': True}) == 1

    def test_falha_na_exclusao_mantem_vendas_vinculadas(self, mongo, monkeypatch, autor, nova_venda):
        nova_venda()
        comissao = _calcular(autor)
        colecao = comissao_service.get_comissoes_collection()
        monkeypatch.setattr(comissao_service, 'get_comissoes_collection', lambda: ColecaoComFalha(colecao, 'delete_one'))

        with pytest.raises(RuntimeError):
            comissao_service.excluir_comissao(comissao['id'])

        assert mongo['comissoes'].count_documents({}) == 1
        venda = mongo['vendas'].find_one()
        assert venda['processada'] is True
        assert venda['comissao_id'] == ObjectId(comissao['id'])

    def test_comissao_inexistente(self):
        with pytest.raises(ComissaoNaoEncontradaError):
            comissao_service.excluir_comissao('id-invalido')


class TestConsultas:

    def test_pendentes_e_pagas_com_totais(self, autor, nova_venda):
        nova_venda(data='2024-03-05')
        primeira = _calcular(autor)
        nova_venda(data='2024-03-25', quantidade=1, preco=200, origem='PARCEIRA')
        _calcular(autor)
        comissao_service.registrar_pagamento(primeira['id'])

        pendentes = comissao_service.listar_pendentes()
        pagas = comissao_service.listar_pagas()

        assert pendentes['quantidade'] == 1
        assert pendentes['total'] == 6.0
        assert pagas['quantidade'] == 1
        assert pagas['total'] == 9.0
        assert pagas['comissoes'][0]['id'] == primeira['id']

    def test_listar_comissoes_mais_recentes_primeiro(self, autor, nova_venda):
        nova_venda(data='2024-03-05')
        primeira = _calcular(autor)
        nova_venda(data='2024-03-25')
        segunda = _calcular(autor)

        ids = [c['id'] for c in comissao_service.listar_comissoes()]

        assert ids == [segunda['id'], primeira['id']]
