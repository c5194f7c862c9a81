# backend/wsgi.py
from colporter import create_app

app = create_app()
