# backend/wsgi.py
from dualpos import create_app

app = create_app()
