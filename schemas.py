"""
Database Schemas

MongoDB collection schemas defined as Pydantic models.
They validate request payloads and the documents read back from the store.

Collection names:
- Post -> "posts"
- Comment -> "comments"
- Category -> "categories"
- Event -> "events"
- Testimony -> "testimonies"
- PrayerRequest -> "prayerRequests"
- ContactMessage -> "contactMessages"
- Subscriber -> "subscribers"
- User -> "users"
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class PostStatus(str, Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ContentType(str, Enum):
    text = "text"
    video = "video"
    audio = "audio"


class ModerationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Role(str, Enum):
    admin = "admin"
    collaborator = "collaborator"
    reader = "reader"


class Schema(BaseModel):
    # Enums are stored as their plain string values
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class StoredDocument(Schema):
    """Base for documents read back from the store; unknown fields are kept."""
    model_config = ConfigDict(extra="allow", use_enum_values=True, validate_default=True)

    id: Optional[str] = None
    created_at: Optional[datetime] = None


# --------------------------------------------------
# Content

class Category(Schema):
    """
    Categories for grouping posts
    Collection name: "categories"
    """
    name: str = Field(..., min_length=1, description="Category name")
    slug: Optional[str] = Field(None, description="URL-safe slug, derived from name when omitted")
    description: Optional[str] = Field(None, description="Category description")
    icon: Optional[str] = Field(None, description="Display icon")
    order: int = Field(0, description="Display order")


class CategoryUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    order: Optional[int] = None


class Post(Schema):
    """
    Post content schema
    Collection name: "posts"
    """
    title: str = Field(..., min_length=1, description="Post title")
    content: str = Field("", description="Rich content (HTML/Markdown)")
    excerpt: Optional[str] = Field(None, description="Short summary, defaults to the start of the content")
    content_type: ContentType = Field(ContentType.text, description="text | video | audio")
    media_url: Optional[str] = Field(None, description="Video or audio URL")
    thumbnail: Optional[str] = Field(None, description="Lead image URL")
    category: Optional[str] = Field(None, description="Category slug")
    tags: List[str] = Field(default_factory=list, description="List of tags")
    status: PostStatus = Field(PostStatus.draft, description="draft | published | archived")
    featured: bool = Field(False, description="Show on the home page")
    duration: Optional[int] = Field(None, ge=0, description="Media duration in seconds")
    scripture1_reference: Optional[str] = None
    scripture1_text: Optional[str] = None
    scripture2_reference: Optional[str] = None
    scripture2_text: Optional[str] = None
    short_prayer: Optional[str] = None


class PostUpdate(Schema):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    content_type: Optional[ContentType] = None
    media_url: Optional[str] = None
    thumbnail: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[PostStatus] = None
    featured: Optional[bool] = None
    duration: Optional[int] = Field(None, ge=0)
    scripture1_reference: Optional[str] = None
    scripture1_text: Optional[str] = None
    scripture2_reference: Optional[str] = None
    scripture2_text: Optional[str] = None
    short_prayer: Optional[str] = None


class PostDocument(StoredDocument):
    title: str
    slug: str = ""
    content: str = ""
    excerpt: str = ""
    content_type: ContentType = ContentType.text
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.draft
    featured: bool = False
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    views: int = 0
    likes: int = 0
    reading_time: int = 0
    published_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CommentSubmission(Schema):
    """
    Comments on a post, moderated before they are shown
    Collection name: "comments"
    """
    author_name: str = Field(..., min_length=1, description="Display name")
    author_email: EmailStr = Field(..., description="Contact email, never shown publicly")
    content: str = Field(..., min_length=1, description="Comment body")


class CommentDocument(StoredDocument):
    post_id: str
    author_name: str
    author_email: Optional[str] = None
    content: str
    user_id: Optional[str] = None
    status: ModerationStatus = ModerationStatus.pending


class ModerationUpdate(Schema):
    status: ModerationStatus


class Event(Schema):
    """
    Church events and meetings
    Collection name: "events"
    """
    title: str = Field(..., min_length=1, description="Event title")
    description: str = Field("", description="Event description")
    date: datetime = Field(..., description="Start date and time")
    end_date: Optional[datetime] = Field(None, description="End date and time")
    location: Optional[str] = Field(None, description="Venue")
    is_online: bool = Field(False, description="Held online")
    link: Optional[str] = Field(None, description="Online meeting link")
    image_url: Optional[str] = Field(None, description="Banner image URL")


class EventUpdate(Schema):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    is_online: Optional[bool] = None
    link: Optional[str] = None
    image_url: Optional[str] = None


class EventDocument(StoredDocument):
    title: str
    description: str = ""
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    is_online: bool = False
    link: Optional[str] = None


# --------------------------------------------------
# Submissions from visitors

class Testimony(Schema):
    """
    Testimonies submitted by visitors
    Collection name: "testimonies"
    """
    author_name: str = Field(..., min_length=1)
    author_email: Optional[EmailStr] = None
    content: str = Field(..., min_length=1)


class TestimonyDocument(StoredDocument):
    author_name: str
    author_email: Optional[str] = None
    content: str
    status: ModerationStatus = ModerationStatus.pending


class PrayerRequest(Schema):
    """
    Collection name: "prayerRequests"
    """
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    request: str = Field(..., min_length=1)
    is_private: bool = Field(False, description="Only the prayer team may read it")


class ContactMessage(Schema):
    """
    Collection name: "contactMessages"
    """
    name: str = Field(..., min_length=1)
    email: EmailStr
    subject: Optional[str] = None
    message: str = Field(..., min_length=1)


class Subscription(Schema):
    """
    Newsletter sign-up
    Collection name: "subscribers"
    """
    email: EmailStr
    name: Optional[str] = None


class Unsubscription(Schema):
    email: EmailStr


# --------------------------------------------------
# Accounts

class Permissions(Schema):
    can_publish: bool = False
    can_edit_own_posts: bool = False
    can_edit_all_posts: bool = False
    can_manage_users: bool = False


class UserRegistration(Schema):
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: str = Field(..., min_length=1)


class UserDocument(StoredDocument):
    """
    Users collection schema
    Collection name: "users"
    """
    email: str
    display_name: str = "User"
    role: Role = Role.reader
    permissions: Permissions = Field(default_factory=Permissions)
    is_active: bool = True
    photo_url: Optional[str] = None
    password_hash: Optional[str] = None


class RoleUpdate(Schema):
    role: Role


class ActiveUpdate(Schema):
    is_active: bool


class Token(Schema):
    access_token: str
    token_type: str
