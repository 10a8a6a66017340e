"""
Shared infrastructure: settings, SQLite access and migrations, security
helpers, the service error taxonomy and logging setup.
"""
