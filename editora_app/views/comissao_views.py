"""
Views de comissões (API JSON).

Localização: editora_app/views/comissao_views.py

Rotas:
    /api/commissions                         GET lista, POST calcula {authorId, startDate, endDate}
    /api/commissions/pendingCommissions      GET pendentes + total
    /api/commissions/paidCommissions         GET pagas + total
    /api/commissions/author/<id>/calculate   POST calcula {startDate, endDate}
    /api/commissions/<id>                    GET, PUT (ajuste), DELETE (estorno)
    /api/commissions/<id>/payCommission      PUT {paymentMethod, notes}
    /api/commissions/<id>/statement          GET demonstrativo em PDF
"""
from django.http import HttpResponse

from editora_app.services import comissao_service
from editora_app.services.demonstrativo_service import gerar_demonstrativo_pdf
from editora_app.views.api_views import api_json, campo, ler_json, metodo_nao_permitido, resposta_json


def _aviso_coautoria(calculo: dict):
    """Aviso para comissões que incluem vendas de livros em coautoria."""
    if not calculo['possui_comissoes_divididas']:
        return None
    titulos = ', '.join(d['titulo'] for d in calculo['detalhes_comissao_dividida'])
    return (
        f'Vendas de livros em coautoria ({titulos}) foram vinculadas a esta comissão; '
        'a parte dos coautores não será calculada em outra comissão e deve ser acertada manualmente'
    )


def _calcular(autor_id, dados: dict):
    data_inicio = campo(dados, 'startDate', 'data_inicio')
    data_fim = campo(dados, 'endDate', 'data_fim')
    resultado = comissao_service.calcular_comissao_autor(autor_id, data_inicio, data_fim)
    comissao = resultado['comissao']
    calculo = resultado['calculo']
    resposta = {
        'message': 'Comissão calculada com sucesso',
        'salesCount': calculo['quantidade_vendas'],
        'commission': comissao,
        'authorId': comissao['autor_id'],
        'startDate': comissao['data_inicio'],
        'endDate': comissao['data_fim'],
        'totalSales': calculo['total_vendas'],
        'totalQuantity': calculo['quantidade_total'],
        'authorCommission': calculo['comissao_autor'],
        'detail': calculo['detalhe_origem'],
        'salesIds': comissao['venda_ids'],
    }
    aviso = _aviso_coautoria(calculo)
    if aviso:
        resposta['warning'] = aviso
    return resposta_json(resposta, status=201)


@api_json
def comissoes(request):
    if request.method == 'GET':
        return resposta_json(comissao_service.listar_comissoes())
    if request.method == 'POST':
        dados = ler_json(request)
        return _calcular(campo(dados, 'authorId', 'autor_id'), dados)
    return metodo_nao_permitido(request)


@api_json
def comissoes_pendentes(request):
    if request.method != 'GET':
        return metodo_nao_permitido(request)
    resultado = comissao_service.listar_pendentes()
    return resposta_json({
        'pendingCommissions': resultado['comissoes'],
        'totalPending': resultado['total'],
        'count': resultado['quantidade'],
    })


@api_json
def comissoes_pagas(request):
    if request.method != 'GET':
        return metodo_nao_permitido(request)
    resultado = comissao_service.listar_pagas()
    return resposta_json({
        'paidCommissions': resultado['comissoes'],
        'totalPaid': resultado['total'],
        'count': resultado['quantidade'],
    })


@api_json
def comissao_calcular_autor(request, autor_id):
    if request.method != 'POST':
        return metodo_nao_permitido(request)
    return _calcular(autor_id, ler_json(request))


@api_json
def comissao_detalhe(request, comissao_id):
    if request.method == 'GET':
        return resposta_json(comissao_service.obter_comissao(comissao_id))
    if request.method == 'PUT':
        dados = ler_json(request)
        comissao = comissao_service.atualizar_comissao(
            comissao_id,
            valor_comissao=campo(dados, 'commissionAmount', 'valor_comissao'),
            taxa_comissao=campo(dados, 'commissionRate', 'taxa_comissao'),
            observacoes=campo(dados, 'notes', 'observacoes'),
        )
        return resposta_json(comissao)
    if request.method == 'DELETE':
        resultado = comissao_service.excluir_comissao(comissao_id)
        return resposta_json({
            'message': resultado['mensagem'],
            'salesCount': resultado['vendas_liberadas'],
        })
    return metodo_nao_permitido(request)


@api_json
def comissao_pagar(request, comissao_id):
    if request.method != 'PUT':
        return metodo_nao_permitido(request)
    dados = ler_json(request)
    comissao = comissao_service.registrar_pagamento(
        comissao_id,
        forma_pagamento=campo(dados, 'paymentMethod', 'forma_pagamento'),
        observacoes=campo(dados, 'notes', 'observacoes'),
    )
    return resposta_json({
        'message': 'Comissão marcada como paga com sucesso',
        'commission': comissao,
    })


@api_json
def comissao_demonstrativo(request, comissao_id):
    """
    Gera e retorna o demonstrativo PDF da comissão.

    Rota: /api/commissions/<id>/statement
    """
    if request.method != 'GET':
        return metodo_nao_permitido(request)
    comissao = comissao_service.obter_comissao(comissao_id)

    pdf_buffer = gerar_demonstrativo_pdf(comissao)

    response = HttpResponse(pdf_buffer.read(), content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="demonstrativo_comissao_{comissao_id}.pdf"'
    return response
