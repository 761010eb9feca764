"""
WSGI config for the shopadmin project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'shopadmin.config.settings')

application = get_wsgi_application()
