# Services package.
#
# Each module exposes async functions that own all database access for
# one table:
#
#   blog_service : queries and mutations for BlogPost
#   user_service : identity upsert and lookup for User
#
# Every function takes the request's AsyncSession as its first argument
# (the ``get_db`` dependency owns commit/rollback).  The session is None
# when no database is configured: reads then return empty results,
# best-effort writes are skipped and post mutations raise
# DatabaseUnavailableError.
