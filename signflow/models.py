from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from .database import Base


class DocumentStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PENDING_SIGNATURE = "pending_signature"
    SIGNED = "signed"
    COMPLETED = "completed"


class Permission(str, enum.Enum):
    VIEW = "view"
    SIGN = "sign"
    EDIT = "edit"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, default="")
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String)
    api_token = Column(String, unique=True, index=True, nullable=True)
    api_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    documents = relationship("Document", back_populates="owner", foreign_keys="Document.owner_id")


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    filename = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String, nullable=False, default="application/pdf")

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    signer_name = Column(String, nullable=True)
    signer_email = Column(String, nullable=True, index=True)
    signer_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    status = Column(String, nullable=False, default=DocumentStatus.DRAFT.value, index=True)
    is_public = Column(Boolean, default=False)
    share_token = Column(String, unique=True, nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Bumped on every UPDATE; a concurrent writer holding a stale copy gets StaleDataError
    version = Column(Integer, nullable=False, default=1)

    owner = relationship("User", back_populates="documents", foreign_keys=[owner_id])
    signer_user = relationship("User", foreign_keys=[signer_user_id])
    collaborators = relationship(
        "Collaborator", back_populates="document",
        cascade="all, delete-orphan", order_by="Collaborator.id",
    )
    signatures = relationship(
        "Signature", back_populates="document",
        cascade="all, delete-orphan", order_by="Signature.id",
    )
    audit_logs = relationship("AuditLog", back_populates="document", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    @property
    def has_signer_assigned(self) -> bool:
        return bool(self.signer_email and self.signer_name)

    @property
    def signature_ids(self):
        return [s.id for s in self.signatures]


class Collaborator(Base):
    __tablename__ = "collaborators"
    __table_args__ = (UniqueConstraint("document_id", "user_id", name="uq_collaborator_document_user"),)

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    permission = Column(String, nullable=False, default=Permission.VIEW.value)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="collaborators")
    user = relationship("User")

    @property
    def email(self):
        return self.user.email if self.user else None

    @property
    def name(self):
        return self.user.name if self.user else None


class Signature(Base):
    __tablename__ = "signatures"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    signer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    signature_data = Column(Text, nullable=False)  # base64 image data URL

    x = Column(Float, nullable=True)
    y = Column(Float, nullable=True)
    page = Column(Integer, nullable=True)
    width = Column(Float, nullable=True)
    height = Column(Float, nullable=True)

    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    is_valid = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="signatures")
    signer = relationship("User")

    @property
    def position(self):
        return {"x": self.x, "y": self.y, "page": self.page, "width": self.width, "height": self.height}


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"))
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())
    ip_address = Column(String)
    user_agent = Column(String)

    document = relationship("Document", back_populates="audit_logs")
