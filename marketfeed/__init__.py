"""
MarketFeed – reconciliación de velas (kline) y profundidad de mercado.

Combina un snapshot histórico REST con el stream push del venue en una
única ventana ordenada y acotada, con cache local para arranque en caliente.
"""

__version__ = "0.3.0"
