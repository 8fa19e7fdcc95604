# tests/conftest.py
import os
import sys
import asyncio
import json
from urllib.parse import urlencode

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MAIL_ENABLED"] = "false"
os.environ["APP_ENV"] = "dev"
os.environ.pop("CLOUDINARY_URL", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath("."))

from app.database import Base, get_db
from app.errors import InternalError
from app.media import get_storage
from main import app


# DB (SQLite in-memory for tests)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def prepare_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# One event loop for the WHOLE pytest session
@pytest.fixture(scope="session")
def session_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


class FakeStorage:
    """In-memory stand-in for Cloudinary that records every call."""

    root_folder = "test"

    def __init__(self):
        self.uploads: list[str] = []
        self.destroyed: list[str] = []
        self.deleted_resources: list[list[str]] = []
        self.deleted_folders: list[str] = []
        self.fail_upload_after: int | None = None
        self.fail_deletes = False
        self.fail_folder_delete = False

    def folder_for(self, animal_id: int) -> str:
        return f"{self.root_folder}/animals/{animal_id}"

    def upload(self, content: bytes, folder: str) -> dict:
        if self.fail_upload_after is not None and len(self.uploads) >= self.fail_upload_after:
            raise InternalError("Could not upload the photo.")
        public_id = f"{folder}/photo{len(self.uploads) + 1}"
        self.uploads.append(public_id)
        return {"url": f"https://img.example.com/{public_id}.jpg", "public_id": public_id}

    def destroy(self, public_id: str) -> None:
        if self.fail_deletes:
            raise InternalError("Could not delete the photo.")
        self.destroyed.append(public_id)

    def delete_resources(self, public_ids: list[str]) -> None:
        if self.fail_deletes:
            raise InternalError("Could not delete the photos.")
        self.deleted_resources.append(list(public_ids))

    def delete_folder(self, folder: str) -> None:
        if self.fail_folder_delete:
            raise InternalError("Could not delete the folder.")
        self.deleted_folders.append(folder)


@pytest.fixture()
def storage():
    return FakeStorage()


# Simple ASGI response/client
class SimpleResponse:
    def __init__(
        self, status_code: int, body: bytes, headers: list[tuple[bytes, bytes]]
    ):
        self.status_code = status_code
        self._body = body
        self.headers = {k.decode(): v.decode() for k, v in headers}

    def json(self):
        return json.loads(self._body.decode())


class SimpleClient:
    """
    Important:
    - uses ONE shared session loop (passed from fixture)
    - does NOT call asyncio.run()
    - does NOT close the loop
    """

    def __init__(self, app, loop):
        self.app = app
        self.loop = loop

    def close(self):
        # do not close the loop here (session fixture closes it)
        pass

    def request(
        self,
        method: str,
        path: str,
        json_body=None,
        data=None,
        headers=None,
        files=None,
        params=None,
    ):
        headers = dict(headers or {})
        body_bytes = b""
        path, _, query_string = path.partition("?")
        if params:
            encoded = urlencode(params, doseq=True)
            query_string = f"{query_string}&{encoded}" if query_string else encoded

        if files:
            boundary = "TESTBOUNDARY"
            parts: list[bytes] = []
            items = files.items() if isinstance(files, dict) else files
            for name, (filename, content, content_type) in items:
                disposition = f'form-data; name="{name}"; filename="{filename}"'
                part_headers = (
                    f"--{boundary}\r\n"
                    f"Content-Disposition: {disposition}\r\n"
                    f"Content-Type: {content_type or 'application/octet-stream'}\r\n\r\n"
                )
                parts.append(part_headers.encode() + content + b"\r\n")
            parts.append(f"--{boundary}--\r\n".encode())
            body_bytes = b"".join(parts)
            headers["content-type"] = f"multipart/form-data; boundary={boundary}"

        elif json_body is not None:
            body_bytes = json.dumps(json_body).encode()
            headers.setdefault("content-type", "application/json")

        elif data is not None:
            if isinstance(data, dict):
                body_bytes = urlencode(data, doseq=True).encode()
            elif isinstance(data, bytes):
                body_bytes = data
            else:
                body_bytes = str(data).encode()
            headers.setdefault("content-type", "application/x-www-form-urlencoded")

        if body_bytes:
            headers["content-length"] = str(len(body_bytes))
        raw_headers = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "headers": raw_headers,
            "query_string": query_string.encode(),
            "client": ("testclient", 5000),
            "server": ("testserver", 80),
        }

        async def receive():
            nonlocal body_bytes
            chunk, body_bytes = body_bytes, b""
            return {"type": "http.request", "body": chunk, "more_body": False}

        response_body = bytearray()
        response_status = 500
        response_headers: list[tuple[bytes, bytes]] = []

        async def send(message):
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = message.get("headers", [])
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))

        # ensure the loop is the current one
        asyncio.set_event_loop(self.loop)
        self.loop.run_until_complete(self.app(scope, receive, send))
        return SimpleResponse(response_status, bytes(response_body), response_headers)

    def get(self, path: str, headers=None, params=None):
        return self.request("GET", path, headers=headers, params=params)

    def post(self, path: str, json=None, data=None, headers=None, files=None):
        return self.request(
            "POST", path, json_body=json, data=data, headers=headers, files=files
        )

    def put(self, path: str, json=None, data=None, headers=None, files=None):
        return self.request(
            "PUT", path, json_body=json, data=data, headers=headers, files=files
        )

    def patch(self, path: str, json=None, headers=None):
        return self.request("PATCH", path, json_body=json, headers=headers)

    def delete(self, path: str, json=None, headers=None):
        return self.request("DELETE", path, json_body=json, headers=headers)


# Client fixture: override DB and storage dependencies per test
@pytest.fixture()
def client(db_session, storage, session_loop):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    c = SimpleClient(app, loop=session_loop)
    try:
        yield c
    finally:
        app.dependency_overrides.clear()
        c.close()
