import io

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfWriter
from sqlalchemy.orm import sessionmaker
from werkzeug.security import generate_password_hash

from signflow import models
from signflow.database import Base, get_db, make_engine
from signflow.main import app
from signflow.services import lifecycle, storage

# 1x1 PNG as the browser signature pad sends it
SIGNATURE_PNG = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def make_pdf_bytes(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


@pytest.fixture()
def session_factory(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "UPLOAD_DIR", str(tmp_path / "uploads"))
    engine = make_engine(f"sqlite:///{tmp_path/'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    def _make(name: str, email: str = None, password: str = "pw") -> models.User:
        u = models.User(
            name=name,
            email=email or f"{name.lower()}@example.com",
            hashed_password=generate_password_hash(password),
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture()
def make_document(db, tmp_path):
    def _make(owner: models.User, signer: models.User = None, title: str = "Contract") -> models.Document:
        path = tmp_path / f"{title.lower().replace(' ', '_')}_{owner.id}.pdf"
        path.write_bytes(make_pdf_bytes())
        file_meta = {
            "filename": path.name,
            "original_name": f"{title}.pdf",
            "file_path": str(path),
            "file_size": path.stat().st_size,
            "mime_type": "application/pdf",
        }
        return lifecycle.create_document(
            db, owner.id, file_meta, title=title,
            signer_name=signer.name if signer else None,
            signer_email=signer.email if signer else None,
        )

    return _make


@pytest.fixture()
def users(make_user):
    return {
        "alice": make_user("Alice"),
        "bob": make_user("Bob"),
        "carol": make_user("Carol"),
        "dave": make_user("Dave"),
    }
