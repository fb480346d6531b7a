"""Service layer: domain operations over an explicit SQLAlchemy session."""
