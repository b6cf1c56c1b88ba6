from django.apps import AppConfig


class DebenturesConfig(AppConfig):
    name = "debentures"
    verbose_name = "Debêntures"
