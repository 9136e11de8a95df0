"""
Infraestrutura comum das views JSON.

Localização: editora_app/views/api_views.py

- api_json: converte exceções dos services em respostas JSON
  ({'message', 'stack'}; stack apenas com DEBUG)
- resposta_json: JsonResponse com encoder para Decimal/ObjectId/datetime
- ler_json: lê o corpo da requisição
"""
from decimal import Decimal
from functools import wraps
import json
import logging
import traceback

from bson import ObjectId
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from editora_app.exceptions import ErroEditora, ErroValidacao


logger = logging.getLogger(__name__)


class EditoraJSONEncoder(DjangoJSONEncoder):
    """DjangoJSONEncoder com Decimal como número e ObjectId como string."""

    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, ObjectId):
            return str(o)
        return super().default(o)


def resposta_json(dados, status: int = 200) -> JsonResponse:
    return JsonResponse(dados, status=status, safe=False, encoder=EditoraJSONEncoder)


def resposta_erro(mensagem: str, status: int, exc: Exception = None) -> JsonResponse:
    corpo = {'message': mensagem}
    if settings.DEBUG and exc is not None:
        corpo['stack'] = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JsonResponse(corpo, status=status)


def ler_json(request) -> dict:
    """Corpo JSON da requisição como dict (vazio quando não há corpo)."""
    if not request.body:
        return {}
    try:
        dados = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ErroValidacao("Corpo da requisição não é um JSON válido")
    if not isinstance(dados, dict):
        raise ErroValidacao("Corpo da requisição deve ser um objeto JSON")
    return dados


def campo(dados: dict, *chaves, padrao=None):
    """Primeira chave presente no corpo (aceita o nome da API e o nome interno)."""
    for chave in chaves:
        if dados.get(chave) is not None:
            return dados[chave]
    return padrao


def api_json(view):
    """
    Decorator das views da API: csrf_exempt e tradução de erros.

    ErroEditora -> status_code da exceção com a mensagem;
    qualquer outra exceção -> 500, registrada com logger.exception.
    """
    @csrf_exempt
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ErroEditora as e:
            if e.status_code >= 500:
                logger.exception("Erro em %s %s", request.method, request.path)
            return resposta_erro(e.mensagem, e.status_code, e)
        except Exception as e:
            logger.exception("Erro inesperado em %s %s", request.method, request.path)
            return resposta_erro(str(e) or "Erro interno do servidor", 500, e)
    return wrapper


def metodo_nao_permitido(request) -> JsonResponse:
    return JsonResponse({'message': f"Método {request.method} não permitido"}, status=405)


@api_json
def raiz(request):
    """Rota: / (verificação de funcionamento)"""
    return resposta_json({'message': 'API da editora funcionando'})


@api_json
def rota_nao_encontrada(request):
    return resposta_erro(f"Rota não encontrada - {request.path}", 404)
