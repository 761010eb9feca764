from django.apps import AppConfig


class StoresConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'shopadmin.stores'

    def ready(self):
        """Register the store collection with the record services"""
        import shopadmin.stores.resources  # noqa: F401
