from .postgres import PostgresConnectionTester

__all__ = ["PostgresConnectionTester"]
