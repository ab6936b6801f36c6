from app.models.job import Job
from app.models.favorite import Favorite
from app.models.setting import Setting

__all__ = ["Job", "Favorite", "Setting"]
