"""core/ -- Kernel layer: configuration and the domain error taxonomy.

Layer rule: core/ imports nothing from the other packages.
"""
