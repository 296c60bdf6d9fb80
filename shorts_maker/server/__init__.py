"""HTTP service: in-memory job store, Pydantic schemas, FastAPI routes."""
