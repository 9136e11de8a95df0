"""
Service para comissões de autores (livro de comissões e ciclo de vida).

Localização: editora_app/services/comissao_service.py
Collection: comissoes

Ciclo de vida:
    PENDENTE -> PAGA               (registrar_pagamento)
    PENDENTE/PAGA -> excluída      (excluir_comissao; libera as vendas)

Cada venda pertence a no máximo uma comissão. A venda é reivindicada com
update condicional (processada=False no filtro, processada=True e comissao_id
no $set) antes de a comissão ser gravada; duas execuções concorrentes para o
mesmo autor nunca ficam com a mesma venda. Falha após a reivindicação devolve
as vendas ao conjunto pendente (ou aborta a transação, quando habilitada).
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Any
import logging

from bson import ObjectId
from django.conf import settings

from core.database import get_database, transacao
from editora_app.exceptions import (
    AutorSemLivrosError,
    ComissaoJaPagaError,
    ComissaoNaoEncontradaError,
    ErroIntegridade,
    ErroValidacao,
    SemVendasPendentesError,
)
from editora_app.services.autor_service import AutorService, get_autores_collection
from editora_app.services.calculo_comissao_service import (
    TAXA_AUTOR_PADRAO,
    calcular_comissao,
)
from editora_app.services.documentos import (
    centavos,
    dinheiro,
    fim_do_dia,
    normalizar,
    object_id_ou_none,
    para_datetime,
    para_decimal,
    para_object_id,
)
from editora_app.services.livro_service import get_livros_collection, resolver_autores
from editora_app.services.venda_service import (
    CAMPOS_ID as CAMPOS_ID_VENDA,
    STATUS_CANCELADA,
    get_vendas_collection,
    resolver_livro,
)


logger = logging.getLogger(__name__)

STATUS_PENDENTE = "PENDENTE"
STATUS_PAGA = "PAGA"

FORMAS_PAGAMENTO = ("TRANSFERENCIA", "PIX", "CHEQUE", "DINHEIRO", "OUTRO")


def get_comissoes_collection():
    """Retorna a collection comissoes."""
    return get_database()["comissoes"]


def _sessao(session) -> Dict[str, Any]:
    """kwargs de sessão para o pymongo (vazio fora de transação)."""
    return {"session": session} if session is not None else {}


def _para_documento(valor):
    """Converte Decimal (inclusive aninhado) em float com 2 casas para gravação."""
    if isinstance(valor, Decimal):
        return dinheiro(valor)
    if isinstance(valor, dict):
        return {k: _para_documento(v) for k, v in valor.items()}
    if isinstance(valor, list):
        return [_para_documento(v) for v in valor]
    return valor


def taxa_autor_efetiva(autor: Dict[str, Any]) -> Decimal:
    """
    Fração da parte da editora que cabe ao autor.
    Padrão: política da casa (10%). Com COMISSAO_SETTINGS['USAR_TAXA_DO_AUTOR'],
    usa a taxa_comissao cadastrada no autor.
    """
    config = getattr(settings, "COMISSAO_SETTINGS", {}) or {}
    if config.get("USAR_TAXA_DO_AUTOR") and autor.get("taxa_comissao") is not None:
        return para_decimal(autor["taxa_comissao"]) / 100
    return TAXA_AUTOR_PADRAO


def _resolver_autor(comissao: Dict[str, Any]) -> Dict[str, Any]:
    autor = get_autores_collection().find_one(
        {"_id": para_object_id(comissao["autor_id"])},
        {"nome": 1, "email": 1, "taxa_comissao": 1},
    )
    comissao["autor"] = {
        "id": str(autor["_id"]),
        "nome": autor.get("nome", ""),
        "email": autor.get("email"),
        "taxa_comissao": autor.get("taxa_comissao"),
    } if autor else None
    return comissao


def _resolver_vendas(comissao: Dict[str, Any], com_livro: bool = False) -> Dict[str, Any]:
    ids = [para_object_id(v) for v in comissao.get("venda_ids", [])]
    vendas = []
    for venda in get_vendas_collection().find({"_id": {"$in": ids}}).sort("data_venda", 1):
        if com_livro:
            resolver_livro(venda)
        vendas.append(normalizar(venda, CAMPOS_ID_VENDA))
    comissao["vendas"] = vendas
    return comissao


def _normalizar_comissao(doc: Dict[str, Any], com_vendas: bool = False, com_livro: bool = False) -> Dict[str, Any]:
    _resolver_autor(doc)
    if com_vendas:
        _resolver_vendas(doc, com_livro=com_livro)
    return normalizar(doc, ["autor_id", "venda_ids"])


def _buscar_comissao(comissao_id: str) -> Dict[str, Any]:
    oid = object_id_ou_none(comissao_id)
    doc = get_comissoes_collection().find_one({"_id": oid}) if oid else None
    if not doc:
        raise ComissaoNaoEncontradaError()
    return doc


def _liberar_vendas(comissao_id: ObjectId, venda_ids=None, session=None) -> int:
    """
    Devolve ao conjunto pendente as vendas desta comissão: as que apontam para
    ela (comissao_id) e as listadas em venda_ids ainda sem referência de volta.
    Vendas de outra comissão nunca são tocadas.
    """
    filtro: Dict[str, Any] = {"comissao_id": comissao_id}
    if venda_ids:
        filtro = {"$or": [
            filtro,
            {"_id": {"$in": list(venda_ids)}, "processada": True, "comissao_id": None},
        ]}
    result = get_vendas_collection().update_many(
        filtro,
        {"$set": {"processada": False, "comissao_id": None, "updated_at": datetime.utcnow()}},
        **_sessao(session),
    )
    return result.modified_count


def _reivindicar_vendas(comissao_id: ObjectId, filtro: Dict[str, Any], session=None) -> List[Dict[str, Any]]:
    """
    Marca como processadas, em nome da comissão, as vendas do filtro que ainda
    estão pendentes e devolve exatamente as que ficaram com esta comissão.
    """
    vendas = get_vendas_collection()
    vendas.update_many(
        {**filtro, "processada": False},
        {"$set": {"processada": True, "comissao_id": comissao_id, "updated_at": datetime.utcnow()}},
        **_sessao(session),
    )
    return list(vendas.find({"comissao_id": comissao_id}, **_sessao(session)).sort("data_venda", 1))


def calcular_comissao_autor(autor_id: str, data_inicio, data_fim) -> Dict[str, Any]:
    """
    Calcula e grava a comissão do autor sobre as vendas pendentes do período.

    Args:
        autor_id: ID do autor
        data_inicio: início do período (inclusivo)
        data_fim: fim do período (inclusivo, dia inteiro)

    Returns:
        {'comissao': documento gravado, 'calculo': resultado do cálculo}

    Raises:
        ErroValidacao: Parâmetros ausentes ou período inválido
        AutorNaoEncontradoError / AutorSemLivrosError
        SemVendasPendentesError: Nenhuma venda pendente no período (nada é gravado)
    """
    if not autor_id or not data_inicio or not data_fim:
        raise ErroValidacao("ID do autor, data inicial e final são obrigatórios")
    inicio = para_datetime(data_inicio, "data inicial")
    fim = para_datetime(data_fim, "data final")
    if inicio > fim:
        raise ErroValidacao("A data inicial deve ser anterior ou igual à data final")

    autor = AutorService().obter_autor(autor_id)
    autor_oid = para_object_id(autor["id"])

    livros = list(get_livros_collection().find({"autor_ids": autor_oid}))
    if not livros:
        raise AutorSemLivrosError()
    for livro in livros:
        resolver_autores(livro)
    livros_por_id = {livro["_id"]: livro for livro in livros}

    filtro = {
        "livro_id": {"$in": list(livros_por_id)},
        "data_venda": {"$gte": inicio, "$lte": fim_do_dia(fim)},
        "status": {"$ne": STATUS_CANCELADA},
    }
    if get_vendas_collection().count_documents({**filtro, "processada": False}) == 0:
        raise SemVendasPendentesError()

    taxa_autor = taxa_autor_efetiva(autor)
    comissao_oid = ObjectId()

    with transacao() as session:
        try:
            vendas = _reivindicar_vendas(comissao_oid, filtro, session)
            if not vendas:
                # Outra execução reivindicou todas as vendas entre a contagem e o update
                raise SemVendasPendentesError()

            calculo = calcular_comissao(autor["id"], inicio, fim, vendas, livros_por_id, taxa_autor)

            now = datetime.utcnow()
            valor = dinheiro(calculo["comissao_autor"])
            comissao_doc = {
                "_id": comissao_oid,
                "autor_id": autor_oid,
                "data_inicio": inicio,
                "data_fim": fim,
                "taxa_comissao": float(taxa_autor * 100),
                "valor_comissao": valor,
                "valor_comissao_calculado": valor,
                "total_vendas": dinheiro(calculo["total_vendas"]),
                "quantidade_total": calculo["quantidade_total"],
                "quantidade_vendas": calculo["quantidade_vendas"],
                "status": STATUS_PENDENTE,
                "data_pagamento": None,
                "forma_pagamento": None,
                "observacoes": "",
                "venda_ids": [v["_id"] for v in vendas],
                "detalhe_origem": _para_documento(calculo["detalhe_origem"]),
                "possui_comissoes_divididas": calculo["possui_comissoes_divididas"],
                "detalhes_comissao_dividida": _para_documento(calculo["detalhes_comissao_dividida"]),
                "detalhes_comissao_integral": _para_documento(calculo["detalhes_comissao_integral"]),
                "ajustes": [],
                "created_at": now,
                "updated_at": now,
            }
            get_comissoes_collection().insert_one(comissao_doc, **_sessao(session))
        except Exception:
            if session is None:
                liberadas = _liberar_vendas(comissao_oid)
                if liberadas:
                    logger.warning(
                        "Cálculo de comissão do autor %s falhou; %d vendas devolvidas ao conjunto pendente",
                        autor["id"], liberadas,
                    )
            raise

    logger.info(
        "Comissão %s criada: autor=%s vendas=%d total=%s comissao=%s",
        comissao_oid, autor["id"], len(vendas), calculo["total_vendas"], calculo["comissao_autor"],
    )
    if calculo["possui_comissoes_divididas"]:
        logger.warning(
            "Comissão %s inclui vendas em coautoria; a parte dos coautores deve ser acertada manualmente",
            comissao_oid,
        )
    return {
        "comissao": obter_comissao(comissao_oid),
        "calculo": calculo,
    }


def registrar_pagamento(comissao_id: str, forma_pagamento: str = None, observacoes: str = None) -> Dict[str, Any]:
    """
    Marca a comissão como PAGA e registra a data de pagamento (agora).

    Raises:
        ComissaoNaoEncontradaError
        ComissaoJaPagaError: Se já estava paga (data_pagamento não é alterada)
        ErroValidacao: Forma de pagamento desconhecida ou campos que não são texto
    """
    doc = _buscar_comissao(comissao_id)
    if doc.get("status") == STATUS_PAGA:
        raise ComissaoJaPagaError()

    update: Dict[str, Any] = {
        "status": STATUS_PAGA,
        "data_pagamento": datetime.utcnow(),
        "updated_at": datetime.utcnow(),
    }
    if forma_pagamento is not None and not isinstance(forma_pagamento, str):
        raise ErroValidacao(f"Forma de pagamento inválida: {forma_pagamento}")
    if observacoes is not None and not isinstance(observacoes, str):
        raise ErroValidacao("As observações devem ser texto")
    if forma_pagamento:
        forma = forma_pagamento.strip().upper()
        if forma not in FORMAS_PAGAMENTO:
            raise ErroValidacao(f"Forma de pagamento inválida: {forma_pagamento}")
        update["forma_pagamento"] = forma
    if observacoes:
        update["observacoes"] = observacoes.strip()

    # status no filtro: dois pagamentos simultâneos não sobrescrevem data_pagamento
    result = get_comissoes_collection().update_one(
        {"_id": doc["_id"], "status": STATUS_PENDENTE},
        {"$set": update},
    )
    if result.matched_count == 0:
        raise ComissaoJaPagaError()

    logger.info("Comissão %s paga (%s)", doc["_id"], update.get("forma_pagamento", "-"))
    return obter_comissao(doc["_id"])


def atualizar_comissao(comissao_id: str, **campos) -> Dict[str, Any]:
    """
    Corrige valor_comissao, taxa_comissao e/ou observacoes sem recalcular nem
    tocar nas vendas. Cada alteração fica registrada em 'ajustes'; o valor
    calculado original (valor_comissao_calculado) não muda.
    """
    doc = _buscar_comissao(comissao_id)

    update: Dict[str, Any] = {}
    if campos.get("valor_comissao") is not None:
        valor = para_decimal(campos["valor_comissao"], "valor da comissão")
        if valor < 0:
            raise ErroValidacao("O valor da comissão não pode ser negativo")
        update["valor_comissao"] = dinheiro(valor)
    if campos.get("taxa_comissao") is not None:
        taxa = para_decimal(campos["taxa_comissao"], "taxa de comissão")
        if taxa < 0 or taxa > 100:
            raise ErroValidacao("A taxa de comissão deve estar entre 0 e 100")
        update["taxa_comissao"] = float(taxa)
    if campos.get("observacoes") is not None:
        update["observacoes"] = str(campos["observacoes"]).strip()

    now = datetime.utcnow()
    ajustes = [
        {"campo": campo, "valor_anterior": doc.get(campo), "valor_novo": novo, "data": now}
        for campo, novo in update.items()
        if doc.get(campo) != novo
    ]
    if not ajustes:
        return obter_comissao(doc["_id"])

    update["updated_at"] = now
    get_comissoes_collection().update_one(
        {"_id": doc["_id"]},
        {"$set": update, "$push": {"ajustes": {"$each": ajustes}}},
    )
    logger.info("Comissão %s ajustada: %s", doc["_id"], ", ".join(a["campo"] for a in ajustes))
    return obter_comissao(doc["_id"])


def excluir_comissao(comissao_id: str) -> Dict[str, Any]:
    """
    Exclui a comissão e devolve todas as suas vendas ao conjunto pendente
    (processada=False, comissao_id=None).

    Returns:
        {'mensagem', 'vendas_liberadas'}
    """
    doc = _buscar_comissao(comissao_id)
    oid = doc["_id"]

    with transacao() as session:
        liberadas = _liberar_vendas(oid, doc.get("venda_ids"), session)
        try:
            result = get_comissoes_collection().delete_one({"_id": oid}, **_sessao(session))
        except Exception:
            if session is None:
                # Sem transação: a comissão continua existindo, então as vendas voltam para ela
                get_vendas_collection().update_many(
                    {"_id": {"$in": doc.get("venda_ids", [])}, "processada": False},
                    {"$set": {"processada": True, "comissao_id": oid}},
                )
            raise
        if result.deleted_count != 1:
            raise ErroIntegridade("Comissão removida por outra operação durante a exclusão")

    logger.info("Comissão %s excluída; %d vendas liberadas", oid, liberadas)
    return {
        "mensagem": "Comissão excluída com sucesso e vendas liberadas",
        "vendas_liberadas": liberadas,
    }


def obter_comissao(comissao_id) -> Dict[str, Any]:
    """Comissão com autor, vendas e livro de cada venda resolvidos."""
    doc = _buscar_comissao(comissao_id)
    return _normalizar_comissao(doc, com_vendas=True, com_livro=True)


def listar_comissoes() -> List[Dict[str, Any]]:
    """Lista todas as comissões, mais recentes primeiro."""
    cursor = get_comissoes_collection().find().sort([("created_at", -1), ("_id", -1)])
    return [_normalizar_comissao(doc) for doc in cursor]


def _somar_valores(comissoes: List[Dict[str, Any]]) -> float:
    total = sum((para_decimal(c.get("valor_comissao") or 0) for c in comissoes), Decimal(0))
    return float(centavos(total))


def listar_pendentes() -> Dict[str, Any]:
    """Comissões PENDENTE (mais recentes primeiro) com soma e quantidade."""
    cursor = get_comissoes_collection().find({"status": STATUS_PENDENTE}).sort([("created_at", -1), ("_id", -1)])
    comissoes = [_normalizar_comissao(doc, com_vendas=True) for doc in cursor]
    return {
        "comissoes": comissoes,
        "total": _somar_valores(comissoes),
        "quantidade": len(comissoes),
    }


def listar_pagas() -> Dict[str, Any]:
    """Comissões PAGA ordenadas por data_pagamento desc, com soma e quantidade."""
    cursor = get_comissoes_collection().find({"status": STATUS_PAGA}).sort([("data_pagamento", -1), ("_id", -1)])
    comissoes = [_normalizar_comissao(doc, com_vendas=True) for doc in cursor]
    return {
        "comissoes": comissoes,
        "total": _somar_valores(comissoes),
        "quantidade": len(comissoes),
    }
