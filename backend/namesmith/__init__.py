"""
namesmith - multi-model business name generation service
"""

__version__ = "0.1.0"
