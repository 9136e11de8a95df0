"""
Views de clientes (API JSON).

Localização: editora_app/views/cliente_views.py

Rotas:
    /api/customers                    GET lista, POST cria
    /api/customers/import-from-sales  POST cria clientes a partir das vendas
    /api/customers/<id>               GET, PUT, DELETE
"""
from editora_app.services import cliente_service
from editora_app.views.api_views import api_json, campo, ler_json, metodo_nao_permitido, resposta_json


def _dados_cliente(dados: dict) -> dict:
    return {
        'telefone': campo(dados, 'phone', 'telefone'),
        'endereco': campo(dados, 'address', 'endereco'),
        'cidade': campo(dados, 'city', 'cidade'),
        'estado': campo(dados, 'state', 'estado'),
        'cep': campo(dados, 'zipCode', 'cep'),
        'observacoes': campo(dados, 'notes', 'observacoes'),
    }


@api_json
def clientes(request):
    if request.method == 'GET':
        return resposta_json(cliente_service.listar_clientes())
    if request.method == 'POST':
        dados = ler_json(request)
        cliente = cliente_service.criar(
            campo(dados, 'name', 'nome', padrao=''),
            campo(dados, 'email', padrao=''),
            **_dados_cliente(dados),
        )
        return resposta_json(cliente, status=201)
    return metodo_nao_permitido(request)


@api_json
def cliente_detalhe(request, cliente_id):
    if request.method == 'GET':
        return resposta_json(cliente_service.obter_cliente(cliente_id))
    if request.method == 'PUT':
        dados = ler_json(request)
        cliente = cliente_service.atualizar(
            cliente_id,
            nome=campo(dados, 'name', 'nome'),
            email=campo(dados, 'email'),
            **_dados_cliente(dados),
        )
        return resposta_json(cliente)
    if request.method == 'DELETE':
        cliente_service.excluir(cliente_id)
        return resposta_json({'message': 'Cliente removido com sucesso'})
    return metodo_nao_permitido(request)


@api_json
def clientes_importar_de_vendas(request):
    if request.method != 'POST':
        return metodo_nao_permitido(request)
    resultado = cliente_service.importar_de_vendas()
    resultado['message'] = resultado.pop('mensagem')
    return resposta_json(resultado, status=201)
