"""
staybook.db

Persistence package (SQLAlchemy async).

Responsibilities:
- ORM models for accounts, listings, bookings, payments and messaging (`models`).
- Engine/session setup (`session`) and dev/test table creation (`init_db`).
- One repository module per aggregate (`repositories`).
"""
