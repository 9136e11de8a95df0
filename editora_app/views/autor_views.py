"""
Views de autores (API JSON).

Localização: editora_app/views/autor_views.py

Rotas:
    /api/authors              GET lista, POST cria
    /api/authors/<id>         GET, PUT, DELETE
    /api/authors/<id>/stats   GET estatísticas de vendas
"""
from editora_app.services.autor_service import AutorService
from editora_app.views.api_views import api_json, campo, ler_json, metodo_nao_permitido, resposta_json


@api_json
def autores(request):
    service = AutorService()
    if request.method == 'GET':
        return resposta_json(service.listar_autores())
    if request.method == 'POST':
        dados = ler_json(request)
        autor = service.criar_autor(
            nome=campo(dados, 'name', 'nome', padrao=''),
            taxa_comissao=campo(dados, 'commissionRate', 'taxa_comissao'),
            email=campo(dados, 'email', padrao=''),
            bio=campo(dados, 'bio', padrao=''),
        )
        return resposta_json(autor, status=201)
    return metodo_nao_permitido(request)


@api_json
def autor_detalhe(request, autor_id):
    service = AutorService()
    if request.method == 'GET':
        return resposta_json(service.obter_autor(autor_id))
    if request.method == 'PUT':
        dados = ler_json(request)
        autor = service.atualizar_autor(
            autor_id,
            nome=campo(dados, 'name', 'nome'),
            taxa_comissao=campo(dados, 'commissionRate', 'taxa_comissao'),
            email=campo(dados, 'email'),
            bio=campo(dados, 'bio'),
        )
        return resposta_json(autor)
    if request.method == 'DELETE':
        service.excluir_autor(autor_id)
        return resposta_json({'message': 'Autor removido com sucesso'})
    return metodo_nao_permitido(request)


@api_json
def autor_estatisticas(request, autor_id):
    if request.method != 'GET':
        return metodo_nao_permitido(request)
    return resposta_json(AutorService().estatisticas_autor(autor_id))
