"""
Service para clientes (compradores).
Acesso direto ao MongoDB via pymongo.
Collection: clientes
Documento: nome, email (opcional, único), telefone, endereco, cidade, estado, cep,
observacoes, created_at, updated_at
"""
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple
import logging

from core.database import get_database
from editora_app.exceptions import (
    ClienteNaoEncontradoError,
    ErroRegraNegocio,
    ErroValidacao,
    NaoEncontradoError,
)
from editora_app.services.documentos import normalizar, object_id_ou_none


logger = logging.getLogger(__name__)

CAMPOS_TEXTO = ("telefone", "endereco", "cidade", "estado", "cep", "observacoes")


def get_clientes_collection():
    """Retorna a collection clientes."""
    return get_database()["clientes"]


def _email_em_uso(email: str, exceto_id=None) -> bool:
    filtro: Dict[str, Any] = {"email": email}
    if exceto_id is not None:
        filtro["_id"] = {"$ne": exceto_id}
    return get_clientes_collection().find_one(filtro, {"_id": 1}) is not None


def listar_clientes() -> List[Dict[str, Any]]:
    """Lista clientes ordenados por nome. Normaliza _id para id."""
    coll = get_clientes_collection()
    return [normalizar(doc) for doc in coll.find().sort("nome", 1)]


def obter_por_id(cliente_id: str) -> Optional[Dict[str, Any]]:
    """Retorna um cliente por id ou None. Normaliza _id para id."""
    oid = object_id_ou_none(cliente_id)
    if oid is None:
        return None
    return normalizar(get_clientes_collection().find_one({"_id": oid}))


def obter_cliente(cliente_id: str) -> Dict[str, Any]:
    cliente = obter_por_id(cliente_id)
    if not cliente:
        raise ClienteNaoEncontradoError()
    return cliente


def criar(nome: str, email: str = "", **campos) -> Dict[str, Any]:
    """Cria um cliente. Retorna o documento com id (string)."""
    nome = (nome or "").strip()
    email = (email or "").strip().lower()
    if not nome:
        raise ErroValidacao("O nome do cliente é obrigatório")
    if email and _email_em_uso(email):
        raise ErroRegraNegocio("Já existe um cliente com este email")
    now = datetime.utcnow()
    doc = {
        "nome": nome,
        "email": email or None,
        **{c: (campos.get(c) or "").strip() for c in CAMPOS_TEXTO},
        "created_at": now,
        "updated_at": now,
    }
    result = get_clientes_collection().insert_one(doc)
    doc["_id"] = result.inserted_id
    return normalizar(doc)


def atualizar(cliente_id: str, nome: str = None, email: str = None, **campos) -> Dict[str, Any]:
    """Atualiza um cliente. Campos None mantêm o valor atual. Atualiza updated_at."""
    oid = object_id_ou_none(cliente_id)
    doc = get_clientes_collection().find_one({"_id": oid}) if oid else None
    if not doc:
        raise ClienteNaoEncontradoError()
    update: Dict[str, Any] = {"updated_at": datetime.utcnow()}
    if nome is not None:
        if not nome.strip():
            raise ErroValidacao("O nome do cliente é obrigatório")
        update["nome"] = nome.strip()
    if email is not None:
        email = email.strip().lower()
        if email and email != doc.get("email") and _email_em_uso(email, exceto_id=oid):
            raise ErroRegraNegocio("Este email já está sendo usado por outro cliente")
        update["email"] = email or None
    for campo in CAMPOS_TEXTO:
        if campos.get(campo) is not None:
            update[campo] = str(campos[campo]).strip()
    get_clientes_collection().update_one({"_id": oid}, {"$set": update})
    return obter_cliente(cliente_id)


def excluir(cliente_id: str) -> None:
    """Remove o cliente; bloqueado se alguma venda o referencia."""
    oid = object_id_ou_none(cliente_id)
    if oid is None or not get_clientes_collection().find_one({"_id": oid}, {"_id": 1}):
        raise ClienteNaoEncontradoError()
    if get_database()["vendas"].count_documents({"cliente_id": oid}, limit=1) > 0:
        raise ErroRegraNegocio("Não é possível excluir um cliente que possui vendas associadas")
    get_clientes_collection().delete_one({"_id": oid})


def obter_ou_criar_por_contato(nome: str, email: str, telefone: str) -> Tuple[Optional[Dict[str, Any]], bool]:
    """
    Localiza cliente pelo email (ou nome + telefone) e cria se não existir.
    Retorna (cliente, criado). Sem email e sem nome+telefone: (None, False).
    """
    nome = (nome or "").strip()
    email = (email or "").strip().lower()
    telefone = (telefone or "").strip()
    coll = get_clientes_collection()

    if email:
        doc = coll.find_one({"email": email})
    elif nome and telefone:
        doc = coll.find_one({"nome": nome, "telefone": telefone})
    else:
        return None, False

    if doc:
        return normalizar(doc), False
    return criar(nome or "Cliente sem nome", email, telefone=telefone), True


def importar_de_vendas() -> Dict[str, Any]:
    """
    Cria clientes a partir dos dados de contato gravados nas vendas.
    Deduplica por email; sem email, por nome (ignora se já há cliente sem email com o mesmo nome).
    Vendas importadas passam a referenciar o cliente (cliente_id).
    """
    vendas_coll = get_database()["vendas"]
    vendas = list(vendas_coll.find(
        {"$or": [
            {"cliente_nome": {"$exists": True, "$ne": ""}},
            {"cliente_email": {"$exists": True, "$ne": ""}},
        ]},
        {"cliente_nome": 1, "cliente_email": 1, "cliente_telefone": 1, "cliente_id": 1},
    ))
    if not vendas:
        raise NaoEncontradoError("Não foram encontradas vendas com informações de clientes")

    coll = get_clientes_collection()
    criados: List[Dict[str, Any]] = []
    emails_duplicados: List[str] = []

    for venda in vendas:
        if venda.get("cliente_id"):
            continue
        nome = (venda.get("cliente_nome") or "").strip()
        email = (venda.get("cliente_email") or "").strip().lower()
        telefone = (venda.get("cliente_telefone") or "").strip()

        if email:
            doc = coll.find_one({"email": email})
            if doc is None:
                doc = criar(nome or "Cliente sem nome", email, telefone=telefone)
                criados.append(doc)
            elif email not in emails_duplicados and not any(c.get("email") == email for c in criados):
                emails_duplicados.append(email)
        elif nome:
            doc = coll.find_one({"nome": nome, "email": None})
            if doc is None:
                doc = criar(nome, "", telefone=telefone)
                criados.append(doc)
        else:
            continue

        vendas_coll.update_one(
            {"_id": venda["_id"]},
            {"$set": {"cliente_id": object_id_ou_none(doc["_id"])}},
        )

    logger.info("Clientes importados das vendas: %d criados, %d já existentes", len(criados), len(emails_duplicados))
    return {
        "mensagem": f"{len(criados)} clientes importados com sucesso",
        "clientes_criados": criados,
        "clientes_duplicados": emails_duplicados,
    }
