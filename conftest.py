"""
Pytest configuration shared by the whole repository.
Sets the testing environment before the app is imported so the module-level
engine points at in-memory SQLite.
"""
import os

os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ.setdefault("JWT_SECRET", "test-secret")
