"""
Utilities Package

Small helpers shared across services and routers:
- categories.py: local category slug -> Open Library subject mapping
- pagination.py: page/limit clamping and paginated response envelopes
"""
