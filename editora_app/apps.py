from django.apps import AppConfig


class EditoraAppConfig(AppConfig):
    name = 'editora_app'
    verbose_name = 'Editora - comissões de autores'
