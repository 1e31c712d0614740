from stacksave.bot.handlers.router import router

__all__ = ["router"]
