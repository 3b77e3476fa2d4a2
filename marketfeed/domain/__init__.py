"""
Domain Layer.

Entidades, value objects y servicios puros del feed de mercado.
No depende de ninguna librería de red ni de persistencia.
"""
