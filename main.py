import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.security import OAuth2PasswordRequestForm
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import (
    create_access_token,
    get_current_user,
    get_optional_user,
    hash_password,
    require_permission,
    verify_password,
)
from config import Settings, get_settings
from content import ContentQuery, count_query, default_excerpt, reading_time, run_query, slugify
from database import (
    CATEGORIES,
    COLLECTIONS,
    COMMENTS,
    CONTACT_MESSAGES,
    EVENTS,
    POSTS,
    PRAYER_REQUESTS,
    SUBSCRIBERS,
    TESTIMONIES,
    USERS,
    create_document,
    get_db,
    get_documents,
    get_or_404,
    now_utc,
    object_id,
    parse_document,
    serialize_doc,
)
from permissions import can_edit_post, has_permission, role_fields
from schemas import (
    ActiveUpdate,
    Category,
    CategoryUpdate,
    CommentDocument,
    CommentSubmission,
    ContactMessage,
    Event,
    EventDocument,
    EventUpdate,
    ModerationStatus,
    ModerationUpdate,
    Post,
    PostDocument,
    PostStatus,
    PostUpdate,
    PrayerRequest,
    Role,
    RoleUpdate,
    Subscription,
    Testimony,
    TestimonyDocument,
    Token,
    Unsubscription,
    UserDocument,
    UserRegistration,
)
import sharing

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Ministry Content Hub API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable"})


def find(db: Database, settings: Settings, collection_name: str, query: ContentQuery, model=None) -> List[dict]:
    docs = run_query(db, collection_name, query, model=model, mode=settings.CONTENT_QUERY_MODE)
    return [serialize_doc(d) for d in docs]


@app.get("/")
def read_root():
    return {"message": "Ministry Content Hub API running"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["database_name"] = db.name
        collections = db.list_collection_names()
        response["collections"] = collections[:10]
        response["connection_status"] = "Connected"
        response["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        logger.warning("Database check failed: %s", e)
        response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    return response


@app.get("/api/site")
def site_info(settings: Settings = Depends(get_settings)):
    return {
        "name": settings.SITE_NAME,
        "tagline": settings.SITE_TAGLINE,
        "description": settings.SITE_DESCRIPTION,
        "url": settings.SITE_URL,
        "contact": {
            "whatsapp": sharing.whatsapp_link(settings),
            "phone": sharing.phone_link(settings),
            "email": sharing.email_link(settings),
        },
    }


# ----------------------
# Accounts
# ----------------------

@app.post("/api/auth/register")
def register(
    payload: UserRegistration,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    email = payload.email.lower()
    if db[USERS].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="Email already registered")
    role = Role.admin if settings.BOOTSTRAP_ADMIN_EMAIL and email == settings.BOOTSTRAP_ADMIN_EMAIL else Role.reader
    now = now_utc()
    data = {
        "email": email,
        "display_name": payload.display_name,
        "password_hash": hash_password(payload.password),
        "is_active": True,
        "created_at": now,
        "updated_at": now,
        **role_fields(role),
    }
    user_id = create_document(db, USERS, data)
    logger.info("Registered user %s with role %s", user_id, role.value)
    return serialize_doc(db[USERS].find_one({"_id": object_id(user_id)}))


@app.post("/api/auth/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    doc = db[USERS].find_one({"email": form_data.username.lower()})
    if not doc or not doc.get("password_hash") or not verify_password(form_data.password, doc["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not doc.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account is disabled")
    db[USERS].update_one({"_id": doc["_id"]}, {"$set": {"last_login": now_utc()}})
    access_token = create_access_token(data={"sub": str(doc["_id"])}, settings=settings)
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/api/auth/me")
def me(user: Dict[str, Any] = Depends(get_current_user)):
    return serialize_doc(user)


# ----------------------
# Public API endpoints
# ----------------------

def published_posts(**kwargs) -> ContentQuery:
    return ContentQuery(status=PostStatus.published.value, **kwargs)


@app.get("/api/posts")
def list_posts_public(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    content_type: Optional[str] = None,
    author_id: Optional[str] = None,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    skip = (page - 1) * page_size
    query = published_posts(
        category=category, content_type=content_type, author_id=author_id, skip=skip, limit=page_size
    )
    items = find(db, settings, POSTS, query, PostDocument)
    total = count_query(db, POSTS, query, PostDocument, mode=settings.CONTENT_QUERY_MODE)
    return {"items": items, "page": page, "page_size": page_size, "total": total}


@app.get("/api/posts/recent")
def recent_posts(
    limit: int = Query(6, ge=1, le=50),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return find(db, settings, POSTS, published_posts(limit=limit), PostDocument)


@app.get("/api/posts/featured")
def featured_posts(
    limit: int = Query(3, ge=1, le=50),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return find(db, settings, POSTS, published_posts(featured=True, limit=limit), PostDocument)


@app.get("/api/posts/trending")
def trending_posts(
    limit: int = Query(5, ge=1, le=50),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return find(db, settings, POSTS, published_posts(sort_field="views", limit=limit), PostDocument)


@app.get("/api/posts/search")
def search_posts(
    q: str = Query("", description="Text matched against title, excerpt, content and tags"),
    category: Optional[str] = None,
    content_type: Optional[str] = None,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    query = published_posts(search=q.strip() or None, category=category, content_type=content_type)
    results = find(db, settings, POSTS, query, PostDocument)
    return {"query": q, "total": len(results), "items": results}


@app.get("/api/posts/{slug}")
def get_post_by_slug(
    slug: str,
    db: Database = Depends(get_db),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    doc = db[POSTS].find_one_and_update(
        {"slug": slug, "status": PostStatus.published.value},
        {"$inc": {"views": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise HTTPException(status_code=404, detail="Post not found")
    liked = bool(user) and user["id"] in (doc.get("liked_by") or [])
    post = serialize_doc(parse_document(PostDocument, doc).model_dump())
    post["liked"] = liked
    return post


def _published_post_by_slug(db: Database, slug: str) -> dict:
    doc = db[POSTS].find_one({"slug": slug, "status": PostStatus.published.value})
    if not doc:
        raise HTTPException(status_code=404, detail="Post not found")
    return serialize_doc(parse_document(PostDocument, doc).model_dump())


@app.get("/api/posts/{slug}/related")
def related_posts(
    slug: str,
    limit: int = Query(4, ge=1, le=20),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    post = _published_post_by_slug(db, slug)
    if not post.get("category"):
        return []
    query = published_posts(category=post["category"], exclude_id=post["id"], limit=limit)
    return find(db, settings, POSTS, query, PostDocument)


@app.get("/api/posts/{slug}/share")
def share_post(
    slug: str,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    post = _published_post_by_slug(db, slug)
    return {
        "url": sharing.post_url(settings, post["slug"]),
        "links": sharing.share_urls(post, settings),
        "meta": sharing.og_tags(post, settings),
    }


def _published_post_or_404(db: Database, id: str) -> dict:
    doc = db[POSTS].find_one({"_id": object_id(id), "status": PostStatus.published.value})
    if not doc:
        raise HTTPException(status_code=404, detail="Post not found")
    return doc


@app.get("/api/posts/{id}/like")
def like_state(
    id: str,
    db: Database = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
):
    doc = _published_post_or_404(db, id)
    return {"liked": user["id"] in (doc.get("liked_by") or []), "likes": doc.get("likes", 0)}


@app.post("/api/posts/{id}/like")
def like_post(
    id: str,
    db: Database = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
):
    doc = _published_post_or_404(db, id)
    # No-op when this user already liked the post
    db[POSTS].update_one(
        {"_id": doc["_id"], "liked_by": {"$ne": user["id"]}},
        {"$addToSet": {"liked_by": user["id"]}, "$inc": {"likes": 1}},
    )
    doc = db[POSTS].find_one({"_id": doc["_id"]})
    return {"liked": True, "likes": doc.get("likes", 0)}


@app.delete("/api/posts/{id}/like")
def unlike_post(
    id: str,
    db: Database = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
):
    doc = _published_post_or_404(db, id)
    db[POSTS].update_one(
        {"_id": doc["_id"], "liked_by": user["id"]},
        {"$pull": {"liked_by": user["id"]}, "$inc": {"likes": -1}},
    )
    doc = db[POSTS].find_one({"_id": doc["_id"]})
    return {"liked": False, "likes": doc.get("likes", 0)}


@app.get("/api/posts/{id}/comments")
def list_comments_public(
    id: str,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    query = ContentQuery(post_id=id, status=ModerationStatus.approved.value, descending=False)
    comments = find(db, settings, COMMENTS, query, CommentDocument)
    for c in comments:
        c.pop("author_email", None)
    return comments


@app.get("/api/posts/{id}/comments/count")
def comment_count(id: str, db: Database = Depends(get_db)):
    count = db[COMMENTS].count_documents({"post_id": id, "status": ModerationStatus.approved.value})
    return {"post_id": id, "count": count}


@app.post("/api/posts/{id}/comments", status_code=201)
def submit_comment(
    id: str,
    payload: CommentSubmission,
    db: Database = Depends(get_db),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    data = payload.model_dump()
    data["post_id"] = id
    data["user_id"] = user["id"] if user else None
    # Always held for moderation
    data["status"] = ModerationStatus.pending.value
    comment_id = create_document(db, COMMENTS, data)
    return {"id": comment_id, "status": data["status"]}


DEFAULT_CATEGORIES = [
    {"name": "Bible Study", "slug": "bible-study", "description": "In-depth Bible studies and teachings", "order": 1},
    {"name": "Devotionals", "slug": "devotionals", "description": "Daily devotionals and spiritual reflections", "order": 2},
    {"name": "Sermons", "slug": "sermons", "description": "Sermon recordings and transcripts", "order": 3},
    {"name": "Testimonies", "slug": "testimonies", "description": "Inspiring testimonies from believers", "order": 4},
    {"name": "Christian Living", "slug": "christian-living", "description": "Practical guides for Christian life", "order": 5},
    {"name": "Prayer", "slug": "prayer", "description": "Prayer guides and resources", "order": 6},
    {"name": "Worship", "slug": "worship", "description": "Worship music and resources", "order": 7},
    {"name": "Events", "slug": "events", "description": "Church events and announcements", "order": 8},
]


def _categories(db: Database) -> List[dict]:
    docs = [serialize_doc(d) for d in db[CATEGORIES].find({}).sort("name", 1)]
    if not docs:
        # Nothing stored yet, serve the defaults
        docs = [{**c, "id": f"default-{i}"} for i, c in enumerate(DEFAULT_CATEGORIES)]
        docs.sort(key=lambda c: c["name"])
    for c in docs:
        c["post_count"] = db[POSTS].count_documents(
            {"category": c["slug"], "status": PostStatus.published.value}
        )
    return docs


@app.get("/api/categories")
def list_categories_public(db: Database = Depends(get_db)):
    return _categories(db)


@app.get("/api/categories/{slug}")
def get_category(slug: str, db: Database = Depends(get_db)):
    for c in _categories(db):
        if c["slug"] == slug:
            return c
    raise HTTPException(status_code=404, detail="Category not found")


@app.get("/api/categories/{slug}/posts")
def category_posts(
    slug: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    category = get_category(slug, db)
    posts = find(db, settings, POSTS, published_posts(category=slug, limit=limit), PostDocument)
    return {"category": category, "items": posts}


@app.get("/api/events")
def list_events(db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    query = ContentQuery(sort_field="date", descending=False)
    return find(db, settings, EVENTS, query, EventDocument)


@app.get("/api/events/upcoming")
def upcoming_events(
    limit: int = Query(5, ge=1, le=50),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    query = ContentQuery(since=now_utc(), sort_field="date", descending=False, limit=limit)
    return find(db, settings, EVENTS, query, EventDocument)


def _event(db: Database, id: str) -> dict:
    doc = get_or_404(db, EVENTS, id, detail="Event not found")
    return parse_document(EventDocument, doc).model_dump()


@app.get("/api/events/{id}")
def get_event(id: str, db: Database = Depends(get_db)):
    return serialize_doc(_event(db, id))


@app.get("/api/events/{id}/calendar")
def event_calendar_links(id: str, db: Database = Depends(get_db)):
    event = _event(db, id)
    return {
        "google": sharing.google_calendar_link(event),
        "ics": f"/api/events/{id}/ics",
    }


@app.get("/api/events/{id}/ics")
def event_ics(id: str, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    event = _event(db, id)
    filename = f"{slugify(event['title']) or 'event'}.ics"
    return Response(
        content=sharing.ics_calendar(event, settings),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/testimonies", status_code=201)
def submit_testimony(payload: Testimony, db: Database = Depends(get_db)):
    data = payload.model_dump()
    data["status"] = ModerationStatus.pending.value
    testimony_id = create_document(db, TESTIMONIES, data)
    return {"id": testimony_id, "status": data["status"]}


@app.get("/api/testimonies")
def approved_testimonies(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    query = ContentQuery(status=ModerationStatus.approved.value, limit=limit)
    testimonies = find(db, settings, TESTIMONIES, query, TestimonyDocument)
    for t in testimonies:
        t.pop("author_email", None)
    return testimonies


@app.post("/api/prayer-requests", status_code=201)
def submit_prayer_request(payload: PrayerRequest, db: Database = Depends(get_db)):
    request_id = create_document(db, PRAYER_REQUESTS, payload)
    return {"id": request_id}


@app.post("/api/contact", status_code=201)
def submit_contact_message(payload: ContactMessage, db: Database = Depends(get_db)):
    data = payload.model_dump()
    data["is_read"] = False
    message_id = create_document(db, CONTACT_MESSAGES, data)
    return {"id": message_id}


@app.post("/api/newsletter/subscribe")
def subscribe(payload: Subscription, db: Database = Depends(get_db)):
    email = payload.email.lower()
    existing = db[SUBSCRIBERS].find_one({"email": email})
    if existing:
        if existing.get("is_confirmed") and not existing.get("unsubscribed_at"):
            return {"success": False, "message": "You are already subscribed!"}
        db[SUBSCRIBERS].update_one(
            {"_id": existing["_id"]},
            {"$set": {"is_confirmed": True, "unsubscribed_at": None, "subscribed_at": now_utc()}},
        )
        return {"success": True, "message": "Welcome back! You have been resubscribed."}

    db[SUBSCRIBERS].insert_one({
        "email": email,
        "name": payload.name,
        # Addresses count as confirmed on sign-up, no confirmation mail is sent
        "is_confirmed": True,
        "subscribed_at": now_utc(),
        "unsubscribed_at": None,
    })
    return {"success": True, "message": "Thank you for subscribing!"}


@app.post("/api/newsletter/unsubscribe")
def unsubscribe(payload: Unsubscription, db: Database = Depends(get_db)):
    res = db[SUBSCRIBERS].update_one(
        {"email": payload.email.lower()},
        {"$set": {"unsubscribed_at": now_utc()}},
    )
    if not res.matched_count:
        return {"success": False, "message": "Email not found in our subscribers list."}
    return {"success": True, "message": "You have been unsubscribed successfully."}


# ----------------------
# Admin (CRUD) endpoints
# ----------------------

editor = require_permission("can_edit_own_posts")
moderator = require_permission("can_publish")
user_manager = require_permission("can_manage_users")


@app.get("/api/admin/stats")
def stats(db: Database = Depends(get_db), user: dict = Depends(editor)):
    total_views = sum(d.get("views", 0) for d in db[POSTS].find({}, {"views": 1}))
    return {
        "posts": db[POSTS].count_documents({}),
        "published": db[POSTS].count_documents({"status": PostStatus.published.value}),
        "drafts": db[POSTS].count_documents({"status": PostStatus.draft.value}),
        "pending_comments": db[COMMENTS].count_documents({"status": ModerationStatus.pending.value}),
        "pending_testimonies": db[TESTIMONIES].count_documents({"status": ModerationStatus.pending.value}),
        "unread_messages": db[CONTACT_MESSAGES].count_documents({"is_read": False}),
        "users": db[USERS].count_documents({}),
        "views": total_views,
        "collections": COLLECTIONS,
    }


def _post_fields(data: dict, current: Optional[dict] = None) -> dict:
    """Derived fields kept in step with title, content and content type."""
    merged = {**(current or {}), **data}
    if "title" in data:
        data["slug"] = slugify(data["title"])
    if "content" in data or "content_type" in data:
        text = merged.get("content") or ""
        data["reading_time"] = reading_time(text) if merged.get("content_type") == "text" else 0
    if "excerpt" in data and not data["excerpt"]:
        data["excerpt"] = default_excerpt(merged.get("content") or "")
    return data


def _check_publish(user: dict, status: Optional[str]):
    if status == PostStatus.published.value and not has_permission(user, "can_publish"):
        raise HTTPException(status_code=403, detail="Not allowed to publish")


@app.post("/api/admin/posts", status_code=201)
def create_post(payload: Post, db: Database = Depends(get_db), user: dict = Depends(editor)):
    _check_publish(user, payload.status)
    now = now_utc()
    data = _post_fields(payload.model_dump())
    data.update({
        "author_id": user["id"],
        "author_name": user.get("display_name") or user["email"],
        "views": 0,
        "likes": 0,
        "liked_by": [],
        "created_at": now,
        "updated_at": now,
    })
    if data["status"] == PostStatus.published.value:
        data["published_at"] = now
    post_id = create_document(db, POSTS, data)
    logger.info("Post %s created by %s (%s)", post_id, user["id"], data["status"])
    return serialize_doc(db[POSTS].find_one({"_id": object_id(post_id)}))


@app.get("/api/admin/posts")
def list_posts_admin(
    status: Optional[PostStatus] = Query(None),
    q: Optional[str] = Query(None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: dict = Depends(editor),
):
    query = ContentQuery(status=status, search=q or None)
    return find(db, settings, POSTS, query, PostDocument)


@app.get("/api/admin/posts/{id}")
def get_post_admin(id: str, db: Database = Depends(get_db), user: dict = Depends(editor)):
    return serialize_doc(get_or_404(db, POSTS, id))


@app.patch("/api/admin/posts/{id}")
def update_post(
    id: str,
    payload: PostUpdate,
    db: Database = Depends(get_db),
    user: dict = Depends(editor),
):
    current = get_or_404(db, POSTS, id)
    if not can_edit_post(user, serialize_doc(current)):
        raise HTTPException(status_code=403, detail="Not allowed to edit this post")
    update = {k: v for k, v in payload.model_dump(exclude_unset=True).items()}
    if not update:
        return {"updated": False}
    _check_publish(user, update.get("status"))
    update = _post_fields(update, current)
    if update.get("status") == PostStatus.published.value and not current.get("published_at"):
        update["published_at"] = now_utc()
    update["updated_at"] = now_utc()
    db[POSTS].update_one({"_id": current["_id"]}, {"$set": update})
    return serialize_doc(db[POSTS].find_one({"_id": current["_id"]}))


@app.delete("/api/admin/posts/{id}")
def delete_post(id: str, db: Database = Depends(get_db), user: dict = Depends(editor)):
    current = get_or_404(db, POSTS, id)
    if not can_edit_post(user, serialize_doc(current)):
        raise HTTPException(status_code=403, detail="Not allowed to delete this post")
    res = db[POSTS].delete_one({"_id": current["_id"]})
    return {"deleted": res.deleted_count == 1}


def _moderation_listing(db, settings, collection_name, model, status):
    query = ContentQuery(status=status)
    items = find(db, settings, collection_name, query, model)
    counts = {s.value: db[collection_name].count_documents({"status": s.value}) for s in ModerationStatus}
    counts["all"] = sum(counts.values())
    return {"items": items, "counts": counts}


def _set_moderation_status(db, collection_name, id, status, user):
    # Any status may follow any other
    res = db[collection_name].update_one({"_id": object_id(id)}, {"$set": {"status": status}})
    if not res.matched_count:
        raise HTTPException(status_code=404, detail="Not found")
    logger.info("%s %s marked %s by %s", collection_name, id, status, user["id"])
    return serialize_doc(db[collection_name].find_one({"_id": object_id(id)}))


@app.get("/api/admin/comments")
def list_comments_admin(
    status: Optional[ModerationStatus] = Query(None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: dict = Depends(moderator),
):
    return _moderation_listing(db, settings, COMMENTS, CommentDocument, status)


@app.patch("/api/admin/comments/{id}/status")
def moderate_comment(
    id: str,
    payload: ModerationUpdate,
    db: Database = Depends(get_db),
    user: dict = Depends(moderator),
):
    return _set_moderation_status(db, COMMENTS, id, payload.status, user)


@app.delete("/api/admin/comments/{id}")
def delete_comment(id: str, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    res = db[COMMENTS].delete_one({"_id": object_id(id)})
    return {"deleted": res.deleted_count == 1}


@app.get("/api/admin/testimonies")
def list_testimonies_admin(
    status: Optional[ModerationStatus] = Query(None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: dict = Depends(moderator),
):
    return _moderation_listing(db, settings, TESTIMONIES, TestimonyDocument, status)


@app.patch("/api/admin/testimonies/{id}/status")
def moderate_testimony(
    id: str,
    payload: ModerationUpdate,
    db: Database = Depends(get_db),
    user: dict = Depends(moderator),
):
    return _set_moderation_status(db, TESTIMONIES, id, payload.status, user)


@app.delete("/api/admin/testimonies/{id}")
def delete_testimony(id: str, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    res = db[TESTIMONIES].delete_one({"_id": object_id(id)})
    return {"deleted": res.deleted_count == 1}


@app.post("/api/admin/categories", status_code=201)
def create_category(payload: Category, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    data = payload.model_dump()
    data["slug"] = slugify(data.get("slug") or data["name"])
    if not data["slug"]:
        raise HTTPException(status_code=400, detail="Category name must contain letters or digits")
    if db[CATEGORIES].find_one({"slug": data["slug"]}):
        raise HTTPException(status_code=400, detail="Category slug already exists")
    data["post_count"] = 0
    cat_id = create_document(db, CATEGORIES, data)
    return serialize_doc(db[CATEGORIES].find_one({"_id": object_id(cat_id)}))


@app.post("/api/admin/categories/seed")
def seed_categories(db: Database = Depends(get_db), user: dict = Depends(moderator)):
    if db[CATEGORIES].count_documents({}):
        return {"seeded": False, "message": "Already seeded"}
    for c in DEFAULT_CATEGORIES:
        create_document(db, CATEGORIES, {**c, "post_count": 0})
    return {"seeded": True, "count": len(DEFAULT_CATEGORIES)}


@app.patch("/api/admin/categories/{id}")
def update_category(
    id: str,
    payload: CategoryUpdate,
    db: Database = Depends(get_db),
    user: dict = Depends(moderator),
):
    oid = object_id(id)
    update = {k: v for k, v in payload.model_dump(exclude_unset=True).items()}
    if not update:
        return {"updated": False}
    if "slug" in update:
        update["slug"] = slugify(update["slug"] or update.get("name") or "")
    res = db[CATEGORIES].update_one({"_id": oid}, {"$set": update})
    if not res.matched_count:
        raise HTTPException(status_code=404, detail="Not found")
    return serialize_doc(db[CATEGORIES].find_one({"_id": oid}))


@app.delete("/api/admin/categories/{id}")
def delete_category(id: str, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    res = db[CATEGORIES].delete_one({"_id": object_id(id)})
    return {"deleted": res.deleted_count == 1}


@app.post("/api/admin/events", status_code=201)
def create_event(payload: Event, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    event_id = create_document(db, EVENTS, payload)
    return serialize_doc(db[EVENTS].find_one({"_id": object_id(event_id)}))


@app.patch("/api/admin/events/{id}")
def update_event(
    id: str,
    payload: EventUpdate,
    db: Database = Depends(get_db),
    user: dict = Depends(moderator),
):
    oid = object_id(id)
    update = {k: v for k, v in payload.model_dump(exclude_unset=True).items()}
    if not update:
        return {"updated": False}
    res = db[EVENTS].update_one({"_id": oid}, {"$set": update})
    if not res.matched_count:
        raise HTTPException(status_code=404, detail="Event not found")
    return serialize_doc(db[EVENTS].find_one({"_id": oid}))


@app.delete("/api/admin/events/{id}")
def delete_event(id: str, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    res = db[EVENTS].delete_one({"_id": object_id(id)})
    return {"deleted": res.deleted_count == 1}


@app.get("/api/admin/prayer-requests")
def list_prayer_requests(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: dict = Depends(moderator),
):
    return find(db, settings, PRAYER_REQUESTS, ContentQuery())


@app.delete("/api/admin/prayer-requests/{id}")
def delete_prayer_request(id: str, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    res = db[PRAYER_REQUESTS].delete_one({"_id": object_id(id)})
    return {"deleted": res.deleted_count == 1}


@app.get("/api/admin/contact-messages")
def list_contact_messages(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: dict = Depends(moderator),
):
    return find(db, settings, CONTACT_MESSAGES, ContentQuery())


@app.patch("/api/admin/contact-messages/{id}/read")
def mark_message_read(id: str, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    res = db[CONTACT_MESSAGES].update_one({"_id": object_id(id)}, {"$set": {"is_read": True}})
    if not res.matched_count:
        raise HTTPException(status_code=404, detail="Message not found")
    return {"updated": True}


@app.delete("/api/admin/contact-messages/{id}")
def delete_contact_message(id: str, db: Database = Depends(get_db), user: dict = Depends(moderator)):
    res = db[CONTACT_MESSAGES].delete_one({"_id": object_id(id)})
    return {"deleted": res.deleted_count == 1}


@app.get("/api/admin/subscribers")
def active_subscribers(db: Database = Depends(get_db), user: dict = Depends(moderator)):
    docs = get_documents(db, SUBSCRIBERS, {"is_confirmed": True, "unsubscribed_at": None})
    return [serialize_doc(d) for d in docs]


@app.get("/api/admin/users")
def list_users(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    user: dict = Depends(user_manager),
):
    return find(db, settings, USERS, ContentQuery(), UserDocument)


@app.patch("/api/admin/users/{id}/role")
def update_user_role(
    id: str,
    payload: RoleUpdate,
    db: Database = Depends(get_db),
    user: dict = Depends(user_manager),
):
    oid = object_id(id)
    update = role_fields(payload.role)
    update["updated_at"] = now_utc()
    res = db[USERS].update_one({"_id": oid}, {"$set": update})
    if not res.matched_count:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("User %s given role %s by %s", id, update["role"], user["id"])
    return serialize_doc(db[USERS].find_one({"_id": oid}))


@app.patch("/api/admin/users/{id}/active")
def update_user_active(
    id: str,
    payload: ActiveUpdate,
    db: Database = Depends(get_db),
    user: dict = Depends(user_manager),
):
    oid = object_id(id)
    res = db[USERS].update_one(
        {"_id": oid}, {"$set": {"is_active": payload.is_active, "updated_at": now_utc()}}
    )
    if not res.matched_count:
        raise HTTPException(status_code=404, detail="User not found")
    return serialize_doc(db[USERS].find_one({"_id": oid}))


@app.delete("/api/admin/users/{id}")
def delete_user(id: str, db: Database = Depends(get_db), user: dict = Depends(user_manager)):
    if id == user["id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    res = db[USERS].delete_one({"_id": object_id(id)})
    return {"deleted": res.deleted_count == 1}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
