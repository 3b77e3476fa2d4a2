"""
Application Layer.

Casos de uso que orquestan dominio e infraestructura a través de ports.
"""
