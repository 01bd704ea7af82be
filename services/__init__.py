"""
Business logic layer.
Can import from: repositories, models, utils
Must NOT import from: routers
"""
