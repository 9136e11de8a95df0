"""
Views de vendas (API JSON).

Localização: editora_app/views/venda_views.py

Rotas:
    /api/sales          GET lista, POST registra
    /api/sales/stats    GET totais por plataforma, livro, mês e origem
    /api/sales/filter   GET ?authorId=&startDate=&endDate=&processed=&source=
    /api/sales/import   POST {source, rows: [...], allowZeroPrices, importCustomers}
    /api/sales/<id>     GET, PUT, DELETE (PUT/DELETE bloqueados se processada)
"""
from editora_app.exceptions import ErroValidacao
from editora_app.services.venda_service import VendaService
from editora_app.views.api_views import api_json, campo, ler_json, metodo_nao_permitido, resposta_json


def _bool(valor, padrao=None):
    if valor is None or valor == '':
        return padrao
    if isinstance(valor, bool):
        return valor
    return str(valor).strip().lower() in ('1', 'true', 'sim', 'yes')


def _dados_venda(dados: dict) -> dict:
    return {
        'livro_id': campo(dados, 'book', 'livro_id'),
        'plataforma': campo(dados, 'platform', 'plataforma'),
        'data_venda': campo(dados, 'saleDate', 'data_venda'),
        'quantidade': campo(dados, 'quantity', 'quantidade'),
        'preco_venda': campo(dados, 'salePrice', 'preco_venda'),
        'origem': campo(dados, 'source', 'origem'),
        'status': campo(dados, 'status'),
        'numero_pedido': campo(dados, 'orderNumber', 'numero_pedido'),
        'cliente_nome': campo(dados, 'customerName', 'cliente_nome'),
        'cliente_email': campo(dados, 'customerEmail', 'cliente_email'),
        'cliente_telefone': campo(dados, 'customerPhone', 'cliente_telefone'),
    }


@api_json
def vendas(request):
    service = VendaService()
    if request.method == 'GET':
        return resposta_json(service.listar_vendas())
    if request.method == 'POST':
        dados = ler_json(request)
        campos = {k: v for k, v in _dados_venda(dados).items() if v is not None}
        venda = service.registrar_venda(
            livro_id=campos.pop('livro_id', None),
            plataforma=campos.pop('plataforma', None),
            data_venda=campos.pop('data_venda', None),
            quantidade=campos.pop('quantidade', None),
            preco_venda=campos.pop('preco_venda', None),
            cliente_id=campo(dados, 'customer', 'cliente_id'),
            **campos,
        )
        return resposta_json(venda, status=201)
    return metodo_nao_permitido(request)


@api_json
def venda_detalhe(request, venda_id):
    service = VendaService()
    if request.method == 'GET':
        return resposta_json(service.obter_venda(venda_id))
    if request.method == 'PUT':
        return resposta_json(service.atualizar_venda(venda_id, **_dados_venda(ler_json(request))))
    if request.method == 'DELETE':
        service.excluir_venda(venda_id)
        return resposta_json({'message': 'Venda removida com sucesso'})
    return metodo_nao_permitido(request)


@api_json
def vendas_estatisticas(request):
    if request.method != 'GET':
        return metodo_nao_permitido(request)
    return resposta_json(VendaService().estatisticas_vendas())


@api_json
def vendas_filtrar(request):
    if request.method != 'GET':
        return metodo_nao_permitido(request)
    params = request.GET
    return resposta_json(VendaService().filtrar_vendas(
        autor_id=params.get('authorId'),
        data_inicio=params.get('startDate'),
        data_fim=params.get('endDate'),
        processada=_bool(params.get('processed')),
        origem=params.get('source'),
    ))


@api_json
def vendas_importar(request):
    """
    Registro em lote de linhas já extraídas de planilha.

    Cada linha usa as chaves do registro de venda (title/titulo, isbn, book/livro_id,
    platform, saleDate, quantity, salePrice, orderNumber, status, customer*).
    """
    if request.method != 'POST':
        return metodo_nao_permitido(request)
    dados = ler_json(request)
    linhas = campo(dados, 'rows', 'registros')
    if not isinstance(linhas, list) or not linhas:
        raise ErroValidacao("Nenhuma linha informada para importação")

    registros = []
    for linha in linhas:
        if not isinstance(linha, dict):
            raise ErroValidacao("Cada linha deve ser um objeto JSON")
        registro = _dados_venda(linha)
        registro['titulo'] = campo(linha, 'title', 'titulo')
        registro['isbn'] = campo(linha, 'isbn')
        registros.append(registro)

    resumo = VendaService().importar_vendas(
        registros,
        origem=campo(dados, 'source', 'origem', padrao='EDITORA'),
        permitir_preco_zero=_bool(campo(dados, 'allowZeroPrices'), False),
        importar_clientes=_bool(campo(dados, 'importCustomers'), True),
    )
    resumo['message'] = f"{resumo['vendas_criadas']} vendas importadas com sucesso"
    return resposta_json(resumo, status=201)
