"""
WSGI config for the nexor project.
"""

import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'nexor.settings')
application = get_wsgi_application()
