"""Database layer: declarative base, types, session and models."""
