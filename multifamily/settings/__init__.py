"""
Django settings package for the multifamily backend.
Settings are chosen depending on the Environment.

The module contains multiple configurations, in addition to a base configuration.
wsgi/asgi/celery point DJANGO_SETTINGS_MODULE at the concrete module directly;
importing the package itself dispatches on ENVIRONMENT when it is set.
"""

import os

ENVIRONMENT = os.environ.get("ENVIRONMENT")

if ENVIRONMENT == "production":
    from .production import *
elif ENVIRONMENT == "staging":
    from .staging import *
elif ENVIRONMENT == "development":
    from .development import *
elif ENVIRONMENT == "testing":
    from .testing import *
