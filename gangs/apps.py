from django.apps import AppConfig


class GangsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'gangs'
    verbose_name = 'Gangs'
