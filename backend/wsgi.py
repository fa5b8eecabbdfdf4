# backend/wsgi.py
from petros import create_app

app = create_app()
