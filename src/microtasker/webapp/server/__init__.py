"""FastAPI server: storage, authentication and routes."""
