"""media/ -- Image host client, upload validation, and Cloudinary URL helpers.

Layer rule: media/ imports only stdlib, third-party libraries, core/, and
inventory.models (for the VehicleImage value it produces).
"""
