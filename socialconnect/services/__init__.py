"""
Application services and FastAPI dependencies.
"""
