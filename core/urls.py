"""
URLs raiz do projeto.

Localização: core/urls.py
"""
from django.urls import path, include, re_path
from editora_app.views import api_views

urlpatterns = [
    path('', api_views.raiz, name='raiz'),
    path('api/', include('editora_app.urls')),
    re_path(r'^.*$', api_views.rota_nao_encontrada, name='rota_nao_encontrada'),
]
