"""storage/ -- Durable client-side key/value storage.

Layer rule: storage/ imports only stdlib + third-party libraries.
auth/ imports from storage/, not the other way around.
"""
