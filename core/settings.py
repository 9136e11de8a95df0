"""
Configurações do projeto Django (API da editora).

Localização: core/settings.py

Valores sensíveis e de ambiente vêm de variáveis de ambiente (arquivo .env
carregado com python-dotenv). Não há ORM: os dados ficam no MongoDB,
acessado via pymongo em core/database.py.
"""
import os
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def _env_bool(nome: str, padrao: bool = False) -> bool:
    valor = os.environ.get(nome)
    if valor is None:
        return padrao
    return valor.strip().lower() in ('1', 'true', 'yes', 'sim', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-insecure-editora-key')

DEBUG = _env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [
    h.strip() for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')
    if h.strip()
]

INSTALLED_APPS = [
    'editora_app',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'core.urls'

WSGI_APPLICATION = 'core.wsgi.application'

# Sem ORM: nenhum banco relacional configurado
DATABASES = {}

# Rotas da API não usam barra final (/api/commissions/pendingCommissions)
APPEND_SLASH = False

LANGUAGE_CODE = 'pt-br'
TIME_ZONE = 'America/Sao_Paulo'
USE_I18N = True
USE_TZ = False

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

MONGODB_SETTINGS = {
    'URI': os.environ.get('MONGODB_URI', 'mongodb://localhost:27017/'),
    'DB_NAME': os.environ.get('MONGODB_DB_NAME', 'editora'),
    # Exige replica set; sem ele a criação/estorno de comissões usa compensação
    'TRANSACTIONS': _env_bool('MONGODB_TRANSACTIONS', False),
}

COMISSAO_SETTINGS = {
    # False: política da casa (10% da parte da editora). True: usa taxa_comissao do autor.
    'USAR_TAXA_DO_AUTOR': _env_bool('COMISSAO_USAR_TAXA_DO_AUTOR', False),
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'padrao': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'padrao',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}
