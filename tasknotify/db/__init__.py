"""Database engine and schema initialization."""
