"""api/ -- FastAPI application, transport models and routes."""
