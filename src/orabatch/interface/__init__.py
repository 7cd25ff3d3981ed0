from .oracle import OracleConnection, OraclePool

__all__ = ("OracleConnection", "OraclePool")
