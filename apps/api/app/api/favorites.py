from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.favorites import add_favorite, favorite_to_dict, list_favorites, remove_favorite

router = APIRouter(prefix="/api/favorites", tags=["favorites"])


class FavoriteCreateRequest(BaseModel):
    drive_file_id: str
    name: str | None = None
    thumbnail_link: str | None = None


@router.get("")
def get_favorites(db: Session = Depends(get_db)):
    return {"ok": True, "favorites": [favorite_to_dict(f) for f in list_favorites(db)]}


@router.post("")
def create_favorite(req: FavoriteCreateRequest, db: Session = Depends(get_db)):
    drive_file_id = req.drive_file_id.strip()
    if not drive_file_id:
        raise HTTPException(status_code=400, detail="drive_file_id is required")
    fav = add_favorite(db, drive_file_id, req.name, req.thumbnail_link)
    return {"ok": True, "favorite": favorite_to_dict(fav)}


@router.delete("/{drive_file_id}")
def delete_favorite(drive_file_id: str, db: Session = Depends(get_db)):
    removed = remove_favorite(db, drive_file_id)
    return {"ok": True, "removed": removed}
