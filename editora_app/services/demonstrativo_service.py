"""
Service para geração do demonstrativo de comissão em PDF.

Localização: editora_app/services/demonstrativo_service.py

Gera o demonstrativo usando reportlab (canvas), a partir da comissão já
normalizada por comissao_service.obter_comissao.
"""
from io import BytesIO
from datetime import datetime
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from typing import Dict, Any


ROTULOS_ORIGEM = {
    "EDITORA": "Vendas diretas (editora)",
    "PARCEIRA": "Vendas por parceira",
}


def _data(valor) -> str:
    if isinstance(valor, datetime):
        return valor.strftime("%d/%m/%Y")
    if isinstance(valor, str) and len(valor) >= 10:
        return f"{valor[8:10]}/{valor[5:7]}/{valor[0:4]}"
    return "-"


def _moeda(valor) -> str:
    return f"R$ {float(valor or 0):.2f}"


def gerar_demonstrativo_pdf(comissao: Dict[str, Any]) -> BytesIO:
    """
    Gera o demonstrativo de uma comissão em PDF.

    Args:
        comissao: Dict com autor resolvido, data_inicio, data_fim, detalhe_origem,
            detalhes_comissao_dividida, detalhes_comissao_integral, totais e status

    Returns:
        BytesIO com o conteúdo do PDF
    """
    buffer = BytesIO()
    p = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    margin_left = 20 * mm
    line_height = 6 * mm
    current_y = height - 30 * mm

    def nova_linha(fator=1.0):
        nonlocal current_y
        current_y -= line_height * fator
        if current_y < 30 * mm:
            p.showPage()
            current_y = height - 30 * mm

    def separador():
        p.line(margin_left, current_y, width - margin_left, current_y)
        nova_linha()

    # Título
    p.setFont("Helvetica-Bold", 18)
    p.drawString(margin_left, current_y, "DEMONSTRATIVO DE COMISSÃO")
    nova_linha(1.5)

    autor = comissao.get("autor") or {}
    p.setFont("Helvetica", 10)
    p.drawString(margin_left, current_y, f"Autor: {autor.get('nome', '-')}")
    nova_linha()
    if autor.get("email"):
        p.drawString(margin_left, current_y, f"Email: {autor['email']}")
        nova_linha()
    p.drawString(
        margin_left, current_y,
        f"Período: {_data(comissao.get('data_inicio'))} a {_data(comissao.get('data_fim'))}",
    )
    nova_linha()
    p.drawString(margin_left, current_y, f"Taxa aplicada: {float(comissao.get('taxa_comissao') or 0):.2f}% da parte da editora")
    nova_linha(1.5)
    separador()

    # Subtotais por origem
    p.setFont("Helvetica-Bold", 10)
    p.drawString(margin_left, current_y, "ORIGEM")
    p.drawString(margin_left + 70 * mm, current_y, "QTD")
    p.drawString(margin_left + 90 * mm, current_y, "TOTAL")
    p.drawString(margin_left + 125 * mm, current_y, "COMISSÃO")
    nova_linha()
    p.setFont("Helvetica", 9)
    for origem, subtotal in (comissao.get("detalhe_origem") or {}).items():
        if not subtotal.get("vendas"):
            continue
        p.drawString(margin_left, current_y, ROTULOS_ORIGEM.get(origem, origem))
        p.drawString(margin_left + 70 * mm, current_y, str(subtotal.get("quantidade", 0)))
        p.drawString(margin_left + 90 * mm, current_y, _moeda(subtotal.get("total")))
        p.drawString(margin_left + 125 * mm, current_y, _moeda(subtotal.get("comissao_autor")))
        nova_linha()
    nova_linha(0.5)
    separador()

    # Detalhe por livro
    p.setFont("Helvetica-Bold", 10)
    p.drawString(margin_left, current_y, "LIVRO")
    p.drawString(margin_left + 80 * mm, current_y, "TAXA")
    p.drawString(margin_left + 100 * mm, current_y, "VENDAS")
    p.drawString(margin_left + 135 * mm, current_y, "COMISSÃO")
    nova_linha()
    p.setFont("Helvetica", 9)
    for item in comissao.get("detalhes_comissao_integral") or []:
        p.drawString(margin_left, current_y, (item.get("titulo") or "")[:45])
        p.drawString(margin_left + 80 * mm, current_y, f"{float(item.get('taxa') or 0):.2f}%")
        p.drawString(margin_left + 100 * mm, current_y, _moeda(item.get("total_vendas")))
        p.drawString(margin_left + 135 * mm, current_y, _moeda(item.get("comissao")))
        nova_linha()
    for item in comissao.get("detalhes_comissao_dividida") or []:
        p.drawString(margin_left, current_y, (item.get("titulo") or "")[:45])
        p.drawString(margin_left + 80 * mm, current_y, f"{float(item.get('taxa_dividida') or 0):.2f}%")
        p.drawString(margin_left + 100 * mm, current_y, _moeda(item.get("total_vendas")))
        p.drawString(margin_left + 135 * mm, current_y, _moeda(item.get("comissao")))
        nova_linha()
        coautores = ", ".join(item.get("coautores") or [])
        p.setFont("Helvetica-Oblique", 8)
        p.drawString(
            margin_left + 5 * mm, current_y,
            f"Dividido entre {item.get('numero_autores')} autores" + (f" (com {coautores})" if coautores else ""),
        )
        p.setFont("Helvetica", 9)
        nova_linha()
    nova_linha(0.5)
    separador()

    # Totais
    p.setFont("Helvetica-Bold", 11)
    p.drawString(margin_left, current_y, f"Total de vendas: {_moeda(comissao.get('total_vendas'))}")
    p.drawString(margin_left + 95 * mm, current_y, f"Exemplares: {comissao.get('quantidade_total', 0)}")
    nova_linha()
    p.setFont("Helvetica-Bold", 12)
    p.drawString(margin_left, current_y, f"COMISSÃO: {_moeda(comissao.get('valor_comissao'))}")
    nova_linha()
    if comissao.get("valor_comissao") != comissao.get("valor_comissao_calculado"):
        p.setFont("Helvetica", 8)
        p.drawString(margin_left, current_y, f"Valor calculado originalmente: {_moeda(comissao.get('valor_comissao_calculado'))}")
        nova_linha()
    nova_linha(0.5)

    # Situação
    p.setFont("Helvetica", 10)
    if comissao.get("status") == "PAGA":
        situacao = f"PAGA em {_data(comissao.get('data_pagamento'))}"
        if comissao.get("forma_pagamento"):
            situacao += f" ({comissao['forma_pagamento']})"
    else:
        situacao = "PENDENTE"
    p.drawString(margin_left, current_y, f"Situação: {situacao}")
    nova_linha()
    if comissao.get("observacoes"):
        p.setFont("Helvetica", 8)
        p.drawString(margin_left, current_y, f"Observações: {comissao['observacoes'][:110]}")
        nova_linha()

    p.showPage()
    p.save()

    buffer.seek(0)
    return buffer
