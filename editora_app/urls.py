"""
URLs do app editora.

Localização: editora_app/urls.py

Define as rotas da API (montadas em /api/ por core/urls.py).
Rotas fixas vêm antes das rotas com <id>.
"""
from django.urls import path
from editora_app.views import autor_views, livro_views, venda_views, cliente_views, comissao_views

app_name = 'editora_app'

urlpatterns = [
    # Comissões
    path('commissions', comissao_views.comissoes, name='comissoes'),
    path('commissions/pendingCommissions', comissao_views.comissoes_pendentes, name='comissoes_pendentes'),
    path('commissions/paidCommissions', comissao_views.comissoes_pagas, name='comissoes_pagas'),
    path('commissions/author/<str:autor_id>/calculate', comissao_views.comissao_calcular_autor, name='comissao_calcular_autor'),
    path('commissions/<str:comissao_id>', comissao_views.comissao_detalhe, name='comissao_detalhe'),
    path('commissions/<str:comissao_id>/payCommission', comissao_views.comissao_pagar, name='comissao_pagar'),
    path('commissions/<str:comissao_id>/statement', comissao_views.comissao_demonstrativo, name='comissao_demonstrativo'),

    # Autores
    path('authors', autor_views.autores, name='autores'),
    path('authors/<str:autor_id>', autor_views.autor_detalhe, name='autor_detalhe'),
    path('authors/<str:autor_id>/stats', autor_views.autor_estatisticas, name='autor_estatisticas'),

    # Livros
    path('books', livro_views.livros, name='livros'),
    path('books/<str:livro_id>', livro_views.livro_detalhe, name='livro_detalhe'),

    # Clientes
    path('customers', cliente_views.clientes, name='clientes'),
    path('customers/import-from-sales', cliente_views.clientes_importar_de_vendas, name='clientes_importar_de_vendas'),
    path('customers/<str:cliente_id>', cliente_views.cliente_detalhe, name='cliente_detalhe'),

    # Vendas
    path('sales', venda_views.vendas, name='vendas'),
    path('sales/stats', venda_views.vendas_estatisticas, name='vendas_estatisticas'),
    path('sales/filter', venda_views.vendas_filtrar, name='vendas_filtrar'),
    path('sales/import', venda_views.vendas_importar, name='vendas_importar'),
    path('sales/<str:venda_id>', venda_views.venda_detalhe, name='venda_detalhe'),
]
