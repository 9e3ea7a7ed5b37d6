"""
Provider connections and social sign-in for FastAPI applications.
"""
__version__ = "1.0.0"
