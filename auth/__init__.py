"""auth/ -- Client authentication and session package for Billarpro.

Layer rule: auth/ imports only stdlib, third-party libraries, and storage/.
It does NOT import from api/ or web/. core.config is imported lazily for
factory helpers only. api/, web/ and main.py import from auth/, not the
other way around.
"""
