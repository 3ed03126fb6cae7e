"""
bulletin_service package

Backend for the bulletin board: user accounts and messages.
It includes:

- FastAPI application factory (`main.py`)
- SQLAlchemy models and database integration (`models.py`, `db.py`)
- Password hashing and JWT logic (`auth.py`)
- Account and message use-cases (`accounts.py`, `messages.py`)
- Pydantic schemas (`schemas.py`) and settings (`config.py`)
"""
