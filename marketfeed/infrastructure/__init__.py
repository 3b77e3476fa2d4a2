"""
Infrastructure Layer.

Implementaciones concretas de los ports: red, persistencia y event bus.
"""
