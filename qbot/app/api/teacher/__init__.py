from qbot.app.api.teacher.router import router

__all__ = ["router"]
