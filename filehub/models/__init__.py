"""SQLAlchemy models for the file catalog.

_embedding_dims is set at runtime by FileHub.__init__() before init_db().
"""

_embedding_dims: int = 768
