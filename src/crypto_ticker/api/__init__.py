"""HTTP surface: FastAPI app factory, routes, and schemas."""
