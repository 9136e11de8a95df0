"""
Funções auxiliares comuns aos services: conversão de ids e datas,
normalização de documentos para JSON e valores monetários.
"""
from datetime import datetime, date, time
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from bson import ObjectId
from bson.errors import InvalidId

from editora_app.exceptions import ErroValidacao


CENTAVOS = Decimal("0.01")


def para_object_id(valor, campo: str = "id") -> ObjectId:
    """Converte str/ObjectId em ObjectId; ErroValidacao se inválido."""
    if isinstance(valor, ObjectId):
        return valor
    try:
        return ObjectId(str(valor).strip())
    except (InvalidId, TypeError):
        raise ErroValidacao(f"ID inválido para {campo}: {valor}")


def object_id_ou_none(valor) -> Optional[ObjectId]:
    """Como para_object_id, mas devolve None para ids inválidos (buscas)."""
    try:
        return para_object_id(valor)
    except ErroValidacao:
        return None


def para_datetime(valor, campo: str = "data") -> datetime:
    """
    Aceita datetime, date ou string (YYYY-MM-DD, ISO 8601 ou DD/MM/YYYY).
    """
    if isinstance(valor, datetime):
        return valor.replace(tzinfo=None)
    if isinstance(valor, date):
        return datetime.combine(valor, time.min)
    texto = str(valor or "").strip()
    if not texto:
        raise ErroValidacao(f"{campo} é obrigatória")
    if "/" in texto:
        try:
            return datetime.strptime(texto[:10], "%d/%m/%Y")
        except ValueError:
            raise ErroValidacao(f"{campo} inválida: {texto}")
    try:
        return datetime.fromisoformat(texto.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        try:
            return datetime.strptime(texto[:10], "%Y-%m-%d")
        except ValueError:
            raise ErroValidacao(f"{campo} inválida: {texto}")


def fim_do_dia(valor: datetime) -> datetime:
    """Último instante do dia (janela de datas inclusiva)."""
    return datetime.combine(valor.date(), time.max).replace(microsecond=999000)


def para_decimal(valor, campo: str = "valor") -> Decimal:
    """Converte número/str em Decimal sem passar por representação binária."""
    if valor is None or valor == "":
        raise ErroValidacao(f"{campo} é obrigatório")
    if isinstance(valor, Decimal):
        d = valor
    else:
        try:
            d = Decimal(str(valor).replace(",", ".").strip())
        except (InvalidOperation, ValueError):
            raise ErroValidacao(f"{campo} inválido: {valor}")
    # NaN e Infinity não são valores monetários
    if not d.is_finite():
        raise ErroValidacao(f"{campo} inválido: {valor}")
    return d


def centavos(valor: Decimal) -> Decimal:
    return valor.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def dinheiro(valor: Decimal) -> float:
    """Valor monetário para gravação/JSON (2 casas)."""
    return float(centavos(valor))


def normalizar(doc: Optional[Dict[str, Any]], campos_id: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """
    Normaliza _id para id e converte ObjectId (simples ou listas) dos campos
    informados para string, para serialização em JSON.
    """
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    doc["id"] = doc["_id"]
    for campo in campos_id:
        valor = doc.get(campo)
        if isinstance(valor, ObjectId):
            doc[campo] = str(valor)
        elif isinstance(valor, list):
            doc[campo] = [str(v) if isinstance(v, ObjectId) else v for v in valor]
    return doc
