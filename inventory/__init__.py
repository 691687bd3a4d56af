"""inventory/ -- Vehicle listing domain model and persistence.

Layer rule: inventory/ imports only stdlib, third-party libraries, and core/.
"""
