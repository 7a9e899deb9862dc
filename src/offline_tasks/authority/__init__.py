"""
Reference task authority service.

A FastAPI application serving the REST contract that HttpRemoteAuthority
speaks. Run it with:

    uvicorn offline_tasks.authority.main:app
"""
from .main import create_app
from .store import TaskAuthorityStore

__all__ = ["TaskAuthorityStore", "create_app"]
