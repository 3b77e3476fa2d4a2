"""
Shared Kernel.

Configuración y logging compartidos por todas las capas.
"""
