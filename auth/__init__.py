"""auth/ -- Token lifecycle, credential policy and account storage.

Layer rule: auth/ imports from core/ and third-party libraries only.
Callers (an HTTP layer, main.py) import from auth/, not the other way around.
AuthCoordinator in auth/coordinator.py is the entry point.
"""
