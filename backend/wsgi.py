# backend/wsgi.py
from siliconpos import create_app

app = create_app()
