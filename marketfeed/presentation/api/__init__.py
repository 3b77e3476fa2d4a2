from marketfeed.presentation.api.routes import init_routes, router

__all__ = ["init_routes", "router"]
