# wsgi.py (at repo root), e.g. ``gunicorn wsgi:app``
from sampaguita import create_app

app = create_app()
