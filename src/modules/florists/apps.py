from django.apps import AppConfig


class FloristsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.florists"
    label = "florists"
