# wsgi.py: WSGI entry point (e.g. `gunicorn wsgi:app`); settings come from the environment / .env.
from app import create_app
from config import Settings, configure_logging

settings = Settings.from_env()
configure_logging(settings.log_level)

app = create_app(settings)
