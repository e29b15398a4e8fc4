from django.apps import AppConfig


class IdcardsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "idcards"
    verbose_name = "ID cards"
