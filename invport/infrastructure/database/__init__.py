"""Database access: ODBC helpers and the never-throwing query executor."""
