from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'shopadmin.catalog'

    def ready(self):
        """Register the catalog collections with the record services"""
        import shopadmin.catalog.resources  # noqa: F401
