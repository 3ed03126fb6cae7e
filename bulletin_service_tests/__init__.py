"""
Tests for the bulletin_service package.

- Password hashing and tokens (`test_passwords.py`, `test_tokens.py`)
- Registration, login and user listing (`test_auth.py`)
- Message routes and the bearer-token gate (`test_messages.py`)
- Startup initialization and seed accounts (`test_db_init.py`)
"""
