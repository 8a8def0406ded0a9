"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: the model HTTP gateway (requests),
SQLite persistence (aiosqlite) and environment configuration (dotenv).
Depends on domain/ only (implements ports). Never imported by application/.
"""
