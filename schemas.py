"""
Database Schemas for the blog backend

Each Pydantic model represents a collection in MongoDB.
Class name lowercased = collection name.

The constrained field types below are shared with the request bodies in the
route modules, so a limit is declared once for both the API and the store.
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints

Role = Literal["user", "admin"]
PostStatus = Literal["draft", "published", "archived"]

Username = Annotated[str, StringConstraints(min_length=3, max_length=30, pattern=r"^[a-zA-Z0-9_]+$")]
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
Bio = Annotated[str, StringConstraints(max_length=500)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
PostBody = Annotated[str, StringConstraints(min_length=1, max_length=10000)]
Excerpt = Annotated[str, StringConstraints(max_length=500)]
Category = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
CommentBody = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]


class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    username: Username
    email: EmailStr
    password: str = Field(..., description="Hashed password (bcrypt)")
    firstName: PersonName
    lastName: PersonName
    avatar: Optional[str] = None
    bio: Optional[Bio] = None
    role: Role = Field("user")
    isActive: bool = True


class Session(BaseModel):
    """
    Login sessions, one per issued bearer token
    Collection name: "session"
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    token: str
    userId: ObjectId
    expiresAt: datetime


class Like(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    user: ObjectId
    createdAt: datetime


class Comment(BaseModel):
    """Embedded in Post.comments; _id is generated on append."""
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    user: ObjectId
    content: CommentBody
    createdAt: datetime

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class Post(BaseModel):
    """
    Posts collection schema
    Collection name: "post"
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: Title
    content: PostBody
    excerpt: Optional[Excerpt] = None
    category: Category
    status: PostStatus = Field("draft")
    tags: List[str] = Field(default_factory=list)
    featuredImage: Optional[str] = None
    author: ObjectId
    views: int = Field(0, ge=0)
    likes: List[Like] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)
