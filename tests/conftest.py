import os
import time
import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace

os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("SUPABASE_URL", "https://fake.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

import db.supabase as supabase_db
from core.config import settings
from dependencies.chat import get_session_factory
from main import app
from models.chat import ChatAnswer, Message, SourceDocument
from rag_services.llm import normalize_level
from rag_services.state import session_store


# ---------------------------------------------------------------------------
# In-memory stand-in for the async Supabase client
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, fake, table):
        self.fake = fake
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.limit_to = None
        self.count_mode = None

    def select(self, *columns, count=None):
        self.op = "select"
        self.count_mode = count
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, size):
        self.limit_to = size
        return self

    def _matches(self, row):
        return all(str(row.get(column)) == str(value) for column, value in self.filters)

    async def execute(self):
        if (self.table, self.op) in self.fake.failures:
            raise RuntimeError(f"{self.op} on {self.table} failed")
        rows = self.fake.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", (datetime(2024, 1, 1) + timedelta(seconds=len(rows))).isoformat())
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]
        if self.op == "delete":
            self.fake.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(matched)

        if self.order_by:
            matched.sort(key=lambda row: row.get(self.order_by), reverse=self.descending)
        count = len(matched) if self.count_mode else None
        if self.limit_to is not None:
            matched = matched[:self.limit_to]
        return FakeResponse([dict(row) for row in matched], count=count)


class FakeBucket:
    def __init__(self, fake, name):
        self.fake = fake
        self.name = name

    @property
    def objects(self):
        return self.fake.objects.setdefault(self.name, {})

    def _check(self, op):
        if ("storage", op) in self.fake.failures:
            raise RuntimeError(f"storage {op} failed")

    async def upload(self, path, content, file_options=None):
        self._check("upload")
        if path in self.objects:
            raise RuntimeError("The resource already exists")
        self.objects[path] = content
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    async def download(self, path):
        self._check("download")
        if path not in self.objects:
            raise RuntimeError("Object not found")
        return self.objects[path]

    async def get_public_url(self, path):
        return f"https://fake.supabase.co/storage/v1/object/public/{self.name}/{path}"

    async def create_signed_url(self, path, expires_in):
        self._check("sign")
        return {"signedURL": f"https://fake.supabase.co/storage/v1/object/sign/{self.name}/{path}?expires={expires_in}"}

    async def remove(self, paths):
        self._check("remove")
        return [{"name": path} for path in paths if self.objects.pop(path, None) is not None]


class FakeStorage:
    def __init__(self, fake):
        self.fake = fake

    def from_(self, name):
        return FakeBucket(self.fake, name)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.objects = {}
        self.failures = set()
        self.storage = FakeStorage(self)

    def table(self, name):
        return FakeQuery(self, name)


# ---------------------------------------------------------------------------
# Chat session stand-in
# ---------------------------------------------------------------------------

class FakeChatSession:
    def __init__(self, parsed):
        self.parsed = parsed
        self.chunks_count = len(parsed.chunks)
        self.history = []
        self.closed = False

    async def ask(self, question, level=None):
        answer = f"[{normalize_level(level)}] {question}"
        self.history.append(Message(role="user", content=question))
        self.history.append(Message(role="assistant", content=answer))
        first_chunk = self.parsed.chunks[0] if self.parsed.chunks else ""
        return ChatAnswer(
            answer=answer,
            sourceDocuments=[SourceDocument(pageContent=first_chunk[:80], metadata={"pageNumber": 1, "chunk": 0})],
        )

    def get_chat_history(self):
        return list(self.history)

    def close(self):
        self.closed = True


# ---------------------------------------------------------------------------
# PDF builder
# ---------------------------------------------------------------------------

def _pdf_string(text):
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages, title=None, author=None, creation_date="D:20240102030405Z"):
    """Write a small valid PDF with one line of Helvetica text per page."""
    objects = []
    page_count = len(pages)
    font_id = 3
    first_page_id = 4
    kids = " ".join(f"{first_page_id + 2 * i} 0 R" for i in range(page_count))

    objects.append("<< /Type /Catalog /Pages 2 0 R >>")
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>")
    objects.append("<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")
    for i, text in enumerate(pages):
        content_id = first_page_id + 2 * i + 1
        objects.append(
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {content_id} 0 R >>"
        )
        stream = f"BT /F1 12 Tf 72 720 Td ({_pdf_string(text)}) Tj ET"
        objects.append(f"<< /Length {len(stream.encode('latin-1'))} >>\nstream\n{stream}\nendstream")

    info = []
    if title:
        info.append(f"/Title ({_pdf_string(title)})")
    if author:
        info.append(f"/Author ({_pdf_string(author)})")
    if creation_date:
        info.append(f"/CreationDate ({creation_date})")
    objects.append("<< " + " ".join(info) + " >>")
    info_id = len(objects)

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")
    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("latin-1")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R /Info {info_id} 0 R >>\n"
        f"startxref\n{xref_at}\n%%EOF\n"
    ).encode("latin-1")
    return bytes(out)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def make_token(user_id, email=None, expires_in=3600):
    now = int(time.time())
    claims = {
        "sub": user_id,
        "email": email or f"{user_id}@example.com",
        "aud": settings.supabase_jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, settings.supabase_jwt_secret, algorithm="HS256")


@pytest.fixture
def fake_supabase(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr(supabase_db, "client", fake)
    return fake


@pytest.fixture(autouse=True)
def clean_sessions():
    session_store.clear()
    yield
    session_store.clear()


@pytest.fixture
def fake_sessions():
    created = []

    async def factory(parsed):
        session = FakeChatSession(parsed)
        created.append(session)
        return session

    app.dependency_overrides[get_session_factory] = lambda: factory
    yield created
    app.dependency_overrides.pop(get_session_factory, None)


@pytest.fixture
def client(fake_supabase):
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token('user-1')}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {make_token('user-2')}"}


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def sample_pdf():
    return build_pdf(
        [
            "Photosynthesis converts light energy into chemical energy stored in glucose.",
            "Chlorophyll absorbs mostly blue and red light. Green light is reflected by leaves.",
        ],
        title="Plant Biology",
        author="A. Botanist",
    )
