"""
DB SaaS Backend
Per-tenant MySQL/PostgreSQL databases with pgAdmin/phpMyAdmin consoles on Kubernetes
"""

__version__ = "1.0.0"
