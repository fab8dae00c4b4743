"""
FastAPI routers for the import workflow endpoints.
"""
