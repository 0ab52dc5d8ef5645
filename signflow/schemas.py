from pydantic import BaseModel, Field as PydanticField
from typing import List, Optional
from datetime import datetime
from .models import Permission


class UserBase(BaseModel):
    email: str


class UserCreate(UserBase):
    name: str = ""
    password: str


class User(UserBase):
    id: int
    name: str
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str


class Collaborator(BaseModel):
    user_id: int
    email: Optional[str] = None
    name: Optional[str] = None
    permission: str
    added_at: Optional[datetime] = None
    class Config:
        from_attributes = True


class CollaboratorCreate(BaseModel):
    email: str
    permission: Permission = Permission.VIEW


class ShareRequest(BaseModel):
    emails: List[str]
    permission: Permission = Permission.VIEW
    message: Optional[str] = None


class ShareEntry(BaseModel):
    email: str
    name: Optional[str] = None


class ShareResults(BaseModel):
    added: List[ShareEntry] = []
    existing: List[ShareEntry] = []
    not_found: List[str] = []


class DocumentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None


class Document(BaseModel):
    id: int
    title: str
    description: str = ""
    filename: str
    original_name: str
    file_size: int
    mime_type: str
    status: str
    owner_id: int
    signer_name: Optional[str] = None
    signer_email: Optional[str] = None
    signer_user_id: Optional[int] = None
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    collaborators: List[Collaborator] = []
    signature_ids: List[int] = []
    class Config:
        from_attributes = True


class DocumentWithRole(Document):
    user_role: Optional[str] = None


class ShareResponse(BaseModel):
    document: Document
    results: ShareResults
    message: str


class DocumentForSigning(BaseModel):
    id: int
    title: str
    filename: str
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None


class Position(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None
    page: Optional[int] = PydanticField(None, ge=1)
    width: Optional[float] = PydanticField(None, gt=0)
    height: Optional[float] = PydanticField(None, gt=0)


class SignatureCreate(BaseModel):
    document_id: int
    signature_data: str
    position: Position = Position()


class Signature(BaseModel):
    id: int
    document_id: int
    signer_id: int
    signature_data: str
    position: Position
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_valid: bool
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True
