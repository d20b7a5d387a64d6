from trivia.api.ws.routes import router

__all__ = ["router"]
