# backend/wsgi.py
from seller_inventory import create_app

app = create_app()
