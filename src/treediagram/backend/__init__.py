"""Live editing backend: session state, persistence and the FastAPI app."""
