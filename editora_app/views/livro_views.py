"""
Views de livros (API JSON).

Localização: editora_app/views/livro_views.py

Rotas:
    /api/books        GET lista, POST cria
    /api/books/<id>   GET, PUT, DELETE
"""
from editora_app.services.livro_service import LivroService
from editora_app.views.api_views import api_json, campo, ler_json, metodo_nao_permitido, resposta_json


def _dados_livro(dados: dict) -> dict:
    return {
        'titulo': campo(dados, 'title', 'titulo'),
        'autor_ids': campo(dados, 'authors', 'author', 'autor_ids'),
        'preco': campo(dados, 'price', 'preco'),
        'isbn': campo(dados, 'isbn'),
        'descricao': campo(dados, 'description', 'descricao'),
        'data_publicacao': campo(dados, 'publishDate', 'data_publicacao'),
    }


@api_json
def livros(request):
    service = LivroService()
    if request.method == 'GET':
        return resposta_json(service.listar_livros())
    if request.method == 'POST':
        livro = service.criar_livro(**_dados_livro(ler_json(request)))
        return resposta_json(livro, status=201)
    return metodo_nao_permitido(request)


@api_json
def livro_detalhe(request, livro_id):
    service = LivroService()
    if request.method == 'GET':
        return resposta_json(service.obter_livro(livro_id))
    if request.method == 'PUT':
        return resposta_json(service.atualizar_livro(livro_id, **_dados_livro(ler_json(request))))
    if request.method == 'DELETE':
        service.excluir_livro(livro_id)
        return resposta_json({'message': 'Livro removido com sucesso'})
    return metodo_nao_permitido(request)
