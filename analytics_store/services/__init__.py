# analytics_store/services/__init__.py
"""
Business logic services.
"""
