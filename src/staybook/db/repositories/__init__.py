"""
staybook.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer.
- Keep SQL in one place; services own transactions and business rules.
"""

# Package marker; repositories are imported directly from submodules.
