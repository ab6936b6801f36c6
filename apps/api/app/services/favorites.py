from sqlalchemy.orm import Session

from app.models.favorite import Favorite


def list_favorites(db: Session) -> list[Favorite]:
    return db.query(Favorite).order_by(Favorite.id.asc()).all()


def add_favorite(db: Session, drive_file_id: str, name: str | None, thumbnail_link: str | None) -> Favorite:
    # idempotent on drive_file_id
    fav = db.query(Favorite).filter(Favorite.drive_file_id == drive_file_id).first()
    if fav is None:
        fav = Favorite(drive_file_id=drive_file_id, name=name, thumbnail_link=thumbnail_link)
        db.add(fav)
    else:
        fav.name = name or fav.name
        fav.thumbnail_link = thumbnail_link or fav.thumbnail_link
    db.commit()
    db.refresh(fav)
    return fav


def remove_favorite(db: Session, drive_file_id: str) -> int:
    n = db.query(Favorite).filter(Favorite.drive_file_id == drive_file_id).delete()
    db.commit()
    return n


def favorite_to_dict(fav: Favorite) -> dict:
    return {
        "id": fav.id,
        "drive_file_id": fav.drive_file_id,
        "name": fav.name,
        "thumbnail_link": fav.thumbnail_link,
    }
