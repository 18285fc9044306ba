"""
pglit.db
========

Database administration on top of psycopg (async) and psycopg_pool.

- identifier.py: database name validation and optional quoting
- statements.py: CREATE / DROP DATABASE text
- admin.py: create_db, drop_db, forcedrop_db, ensure_db, connect
- pool.py: pool_create_db (ensure the database, then open a pool on it)
"""
