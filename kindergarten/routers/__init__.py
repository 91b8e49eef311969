"""FastAPI routers for the public site and the admin panel."""
