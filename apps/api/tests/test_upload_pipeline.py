import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services import upload_pipeline as up
from app.services.google_auth import GoogleAuthRequired, load_credentials
from app.services.metadata import DEFAULT_DESCRIPTION

client = TestClient(app)

PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class _Call:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.result


class FakeDriveFiles:
    def get(self, **kwargs):
        return _Call({"id": kwargs["fileId"], "name": "clip.mp4", "mimeType": "video/mp4", "size": "4"})


class FakeDrive:
    def files(self):
        return FakeDriveFiles()


class FakeYouTube:
    def __init__(self, thumbnail_error=None, comment_error=None):
        self.thumbnail_error = thumbnail_error
        self.comment_error = comment_error
        self.thumbnails_set = []
        self.comments_posted = []
        self.moderated = []

    def thumbnails(self):
        outer = self

        class _T:
            def set(self, videoId, media_body):
                outer.thumbnails_set.append((videoId, media_body.mimetype()))
                return _Call({}, outer.thumbnail_error)

        return _T()

    def commentThreads(self):
        outer = self

        class _C:
            def insert(self, part, body):
                outer.comments_posted.append(body)
                return _Call({"snippet": {"topLevelComment": {"id": "c-1"}}}, outer.comment_error)

        return _C()

    def comments(self):
        outer = self

        class _M:
            def setModerationStatus(self, id, moderationStatus):
                outer.moderated.append((id, moderationStatus))
                return _Call({})

        return _M()


@pytest.fixture
def pipeline(monkeypatch):
    youtube = FakeYouTube()
    inserted = []

    def fake_download(drive, file_id, fh, **kw):
        fh.write(b"data")
        fh.seek(0)
        return 4

    def fake_insert(yt, body, fh, mimetype):
        inserted.append((body, fh.read(), mimetype))
        return "yt-new"

    monkeypatch.setattr(up, "load_credentials", lambda db: object())
    monkeypatch.setattr(up, "build_drive_service", lambda creds: FakeDrive())
    monkeypatch.setattr(up, "build_youtube_service", lambda creds: youtube)
    monkeypatch.setattr(up, "download_drive_file", fake_download)
    monkeypatch.setattr(up, "_insert_video", fake_insert)
    return youtube, inserted


def test_full_pipeline(pipeline, db):
    youtube, inserted = pipeline
    req = up.UploadRequest(
        job_id=1,
        drive_file_id="drive-1",
        title="My video",
        description="About it",
        tags=["travel"],
        hashtags=["beach"],
        thumbnail=PNG_DATA_URL,
        first_comment="Thanks for watching",
    )

    assert up.process_upload(req, db=db) == "yt-new"

    body, data, mimetype = inserted[0]
    assert data == b"data"
    assert mimetype == "video/mp4"
    assert body["snippet"]["title"] == "My video"
    assert body["snippet"]["tags"] == ["travel"]
    assert body["snippet"]["description"].endswith("#beach")
    assert youtube.thumbnails_set == [("yt-new", "image/png")]
    assert youtube.comments_posted[0]["snippet"]["videoId"] == "yt-new"
    assert youtube.moderated == [("c-1", "published")]


def test_thumbnail_and_comment_failures_do_not_fail_upload(pipeline, db):
    youtube, _ = pipeline
    youtube.thumbnail_error = RuntimeError("thumbnail rejected")
    youtube.comment_error = RuntimeError("comments disabled")
    req = up.UploadRequest(job_id=1, drive_file_id="d", thumbnail=PNG_DATA_URL, first_comment="hi")

    assert up.process_upload(req, db=db) == "yt-new"


def test_optional_steps_are_skipped(pipeline, db):
    youtube, _ = pipeline
    up.process_upload(up.UploadRequest(job_id=1, drive_file_id="d"), db=db)
    assert youtube.thumbnails_set == []
    assert youtube.comments_posted == []


def test_defaults_for_empty_title_and_description():
    body = up.build_video_body(up.UploadRequest(job_id=1, drive_file_id="d", title="  ", description=""))
    assert body["snippet"]["title"] == "Untitled Video"
    assert body["snippet"]["description"] == DEFAULT_DESCRIPTION
    assert body["status"]["privacyStatus"] == "private"


def test_title_is_clipped_to_youtube_limit():
    assert len(up.clip_title("x" * 250)) == 100


def test_hashtags_already_in_description_are_not_repeated():
    assert up.build_description("Summer #beach", ["beach", "#sun"]) == "Summer #beach\n\n#sun"


def test_decode_data_url():
    mime, raw = up.decode_data_url(PNG_DATA_URL)
    assert mime == "image/png"
    assert raw.startswith(b"\x89PNG")
    assert up.decode_data_url("https://example.com/thumb.jpg") is None
    assert up.decode_data_url("") is None


def test_missing_tokens_require_auth(db):
    with pytest.raises(GoogleAuthRequired):
        load_credentials(db)


def test_drive_listing_without_tokens_is_401():
    r = client.get("/api/drive/videos")
    assert r.status_code == 401


def test_auth_status_reports_disconnected():
    r = client.get("/api/auth/status")
    assert r.status_code == 200
    assert r.json()["connected"] is False
