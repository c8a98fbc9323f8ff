"""HTTP server: FastAPI application, routers, services and dependencies."""
