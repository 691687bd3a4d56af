"""api/ -- FastAPI application, request/response models, and route handlers."""
