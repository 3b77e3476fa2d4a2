from marketfeed.presentation.websocket.websocket_manager import WebSocketManager

__all__ = ["WebSocketManager"]
