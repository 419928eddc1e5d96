"""
Dependency injection helpers.
"""
from .services import ServiceContainer, get_services, set_services, get_db

__all__ = ['ServiceContainer', 'get_services', 'set_services', 'get_db']
