"""Configuration module for the bookstore migration scripts.

Supports multiple environments:
- development (default)
- staging
- production

Usage:
    from config import config

    mongo_uri = config.MONGO_URI
    db_name = config.MONGO_DB

Set environment via:
- APP_ENV=production
"""
from .settings import config, Config, configure_logging

__all__ = ['config', 'Config', 'configure_logging']
