"""SQL Server to PostgreSQL assistant: overview, ERD, conversion and verification via an LLM"""

__version__ = "0.1.0"
