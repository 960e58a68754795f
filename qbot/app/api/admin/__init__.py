from qbot.app.api.admin.router import router

__all__ = ["router"]
