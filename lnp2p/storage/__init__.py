"""Persistence layer: SQLAlchemy engine, declarative base and sessions."""
