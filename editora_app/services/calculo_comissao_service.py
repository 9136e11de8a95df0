"""
Cálculo de comissão de autor.

Localização: editora_app/services/calculo_comissao_service.py

Funções puras: não leem nem gravam no MongoDB. Recebem as vendas já
filtradas (autor, período, não processadas, não canceladas) e os livros
envolvidos, e devolvem os totais e o detalhamento da comissão.

Divisão da receita de cada venda (total_linha = quantidade * preco_venda):

    PARCEIRA: editora fica com 30%; autor recebe taxa_autor (10%) desses 30% = 3%;
              editora 27%; parceira 70%.
    EDITORA:  editora fica com 90%; autor recebe taxa_autor (10%) desses 90% = 9%;
              editora 81%; 10% custos de plataforma/transação.

Todos os valores em Decimal; arredondamento para centavos apenas nos totais.
"""
from decimal import Decimal
from typing import Any, Dict, List, Mapping

from editora_app.exceptions import SemVendasNoPeriodoError
from editora_app.services.documentos import centavos, para_decimal


ORIGEM_EDITORA = "EDITORA"
ORIGEM_PARCEIRA = "PARCEIRA"
ORIGENS = (ORIGEM_EDITORA, ORIGEM_PARCEIRA)

PARTE_EDITORA = {
    ORIGEM_EDITORA: Decimal("0.90"),
    ORIGEM_PARCEIRA: Decimal("0.30"),
}

TAXA_AUTOR_PADRAO = Decimal("0.10")

CEM = Decimal(100)


def dividir_receita(total_linha: Decimal, origem: str, taxa_autor: Decimal = TAXA_AUTOR_PADRAO) -> Dict[str, Decimal]:
    """
    Divide o total de uma linha de venda entre autor, editora e parceira/plataforma.

    Returns:
        {parte_editora, comissao_autor, receita_editora, receita_parceira, custos_plataforma}
        onde comissao_autor + receita_editora + receita_parceira + custos_plataforma == total_linha
    """
    if origem not in PARTE_EDITORA:
        raise ValueError(f"Origem de venda desconhecida: {origem}")
    total_linha = para_decimal(total_linha)
    parte_editora = total_linha * PARTE_EDITORA[origem]
    comissao_autor = parte_editora * taxa_autor
    restante = total_linha - parte_editora
    return {
        'parte_editora': parte_editora,
        'comissao_autor': comissao_autor,
        'receita_editora': parte_editora - comissao_autor,
        'receita_parceira': restante if origem == ORIGEM_PARCEIRA else Decimal(0),
        'custos_plataforma': restante if origem == ORIGEM_EDITORA else Decimal(0),
    }


def _subtotal_vazio(origem: str) -> Dict[str, Any]:
    subtotal = {
        'vendas': 0,
        'quantidade': 0,
        'total': Decimal(0),
        'comissao_autor': Decimal(0),
        'receita_editora': Decimal(0),
    }
    if origem == ORIGEM_PARCEIRA:
        subtotal['receita_parceira'] = Decimal(0)
    else:
        subtotal['custos_plataforma'] = Decimal(0)
    return subtotal


def calcular_comissao(
    autor_id,
    data_inicio,
    data_fim,
    vendas: List[Mapping[str, Any]],
    livros: Mapping[Any, Mapping[str, Any]],
    taxa_autor: Decimal = TAXA_AUTOR_PADRAO,
) -> Dict[str, Any]:
    """
    Calcula a comissão de um autor sobre um conjunto de vendas.

    Args:
        autor_id: autor beneficiário (str ou ObjectId)
        data_inicio, data_fim: janela informada (apenas repassada ao resultado)
        vendas: documentos de venda (_id, livro_id, quantidade, preco_venda, origem)
        livros: livro_id -> documento do livro (titulo, autor_ids, autores opcional
            com {'id', 'nome'} para listar coautores)
        taxa_autor: fração da parte da editora que cabe ao autor (padrão 10%)

    Returns:
        Dict com total_vendas, quantidade_total, comissao_autor (Decimal, centavos),
        detalhe_origem, possui_comissoes_divididas, detalhes_comissao_dividida,
        detalhes_comissao_integral e venda_ids.

    Raises:
        SemVendasNoPeriodoError: Se não há vendas
    """
    if not vendas:
        raise SemVendasNoPeriodoError()

    autor_id = str(autor_id)
    taxa_autor = para_decimal(taxa_autor, "taxa do autor")

    total_vendas = Decimal(0)
    quantidade_total = 0
    comissao_autor = Decimal(0)
    detalhe_origem = {origem: _subtotal_vazio(origem) for origem in ORIGENS}
    por_livro: Dict[str, Dict[str, Any]] = {}

    for venda in vendas:
        quantidade = int(venda['quantidade'])
        total_linha = para_decimal(venda['preco_venda']) * quantidade
        origem = venda.get('origem') or ORIGEM_EDITORA
        divisao = dividir_receita(total_linha, origem, taxa_autor)

        livro_id = str(venda['livro_id'])
        livro = livros.get(venda['livro_id']) or livros.get(livro_id) or {}
        numero_autores = max(len(livro.get('autor_ids') or []), 1)
        comissao_linha = divisao['comissao_autor'] / numero_autores

        total_vendas += total_linha
        quantidade_total += quantidade
        comissao_autor += comissao_linha

        subtotal = detalhe_origem[origem]
        subtotal['vendas'] += 1
        subtotal['quantidade'] += quantidade
        subtotal['total'] += total_linha
        subtotal['comissao_autor'] += comissao_linha
        subtotal['receita_editora'] += divisao['receita_editora']
        if origem == ORIGEM_PARCEIRA:
            subtotal['receita_parceira'] += divisao['receita_parceira']
        else:
            subtotal['custos_plataforma'] += divisao['custos_plataforma']

        item = por_livro.get(livro_id)
        if item is None:
            coautores = [
                a.get('nome', '') for a in livro.get('autores') or []
                if str(a.get('id')) != autor_id
            ]
            item = por_livro[livro_id] = {
                'livro_id': livro_id,
                'titulo': livro.get('titulo', ''),
                'numero_autores': numero_autores,
                'coautores': coautores,
                'total_vendas': Decimal(0),
                'comissao': Decimal(0),
            }
        item['total_vendas'] += total_linha
        item['comissao'] += comissao_linha

    taxa_percentual = taxa_autor * CEM
    detalhes_divididos = []
    detalhes_integrais = []
    for item in por_livro.values():
        if item['numero_autores'] > 1:
            detalhes_divididos.append({
                'livro_id': item['livro_id'],
                'titulo': item['titulo'],
                'numero_autores': item['numero_autores'],
                'coautores': item['coautores'],
                'total_vendas': centavos(item['total_vendas']),
                'taxa_original': taxa_percentual,
                'taxa_dividida': centavos(taxa_percentual / item['numero_autores']),
                'comissao': centavos(item['comissao']),
            })
        else:
            detalhes_integrais.append({
                'livro_id': item['livro_id'],
                'titulo': item['titulo'],
                'total_vendas': centavos(item['total_vendas']),
                'taxa': taxa_percentual,
                'comissao': centavos(item['comissao']),
            })

    for subtotal in detalhe_origem.values():
        for campo, valor in subtotal.items():
            if isinstance(valor, Decimal):
                subtotal[campo] = centavos(valor)

    return {
        'autor_id': autor_id,
        'data_inicio': data_inicio,
        'data_fim': data_fim,
        'taxa_autor': taxa_autor,
        'total_vendas': centavos(total_vendas),
        'quantidade_total': quantidade_total,
        'quantidade_vendas': len(vendas),
        'comissao_autor': centavos(comissao_autor),
        'detalhe_origem': detalhe_origem,
        'possui_comissoes_divididas': bool(detalhes_divididos),
        'detalhes_comissao_dividida': detalhes_divididos,
        'detalhes_comissao_integral': detalhes_integrais,
        'venda_ids': [venda['_id'] for venda in vendas],
    }
