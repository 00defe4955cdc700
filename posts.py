"""
Post routes: listing, single fetch, CRUD, like toggle and comments.

Likes and comments live embedded in the post document, so deleting a post
removes them with it. Mutations of the embedded lists go through MongoDB
update operators ($push/$pull/$inc) instead of whole-document saves.
"""
import logging
import math
import re
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pymongo import ReturnDocument

from database import create_document, get_db, oid, serialize, utcnow
from errors import NotFoundError
from schemas import Category, Comment, CommentBody, Excerpt, Like, Post, PostBody, PostStatus, Title
from security import ensure_owner_or_admin, get_current_user
from users import DISPLAY_FIELDS, display_users
from validation import validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
AUTHOR_DETAIL_FIELDS = DISPLAY_FIELDS + ("bio",)
LIKE_USER_FIELDS = ("username", "firstName", "lastName")
# a null for these is ignored on update; the optional ones may be cleared
REQUIRED_FIELDS = ("title", "content", "category", "status")
CLEARABLE_FIELDS = ("excerpt", "featuredImage")
LEADING_INT = re.compile(r"\s*([+-]?\d+)")


# -----------------
# Models
# -----------------
class PostCreate(BaseModel):
    title: Title
    content: PostBody
    category: Category
    excerpt: Optional[Excerpt] = None
    tags: Optional[str] = None
    status: Optional[PostStatus] = None
    featuredImage: Optional[str] = None


class PostUpdate(BaseModel):
    title: Optional[Title] = None
    content: Optional[PostBody] = None
    excerpt: Optional[Excerpt] = None
    category: Optional[Category] = None
    tags: Optional[str] = None
    status: Optional[PostStatus] = None
    featuredImage: Optional[str] = None


class CommentCreate(BaseModel):
    content: CommentBody


# -----------------
# Helpers
# -----------------
def split_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


def positive_int(raw: Optional[str], default: int) -> int:
    """Read the leading integer of a query value ("2.0" and "2abc" are 2)."""
    match = LEADING_INT.match(raw or "")
    if not match:
        return default
    value = int(match.group(1))
    return value if value >= 1 else default


def build_query(category=None, tags=None, status="published", author=None) -> dict:
    query = {}
    if status:
        query["status"] = status
    if category:
        query["category"] = {"$regex": re.escape(category), "$options": "i"}
    wanted_tags = split_tags(tags)
    if wanted_tags:
        query["tags"] = {"$in": wanted_tags}
    if author:
        query["author"] = oid(author)
    return query


def find_post(db, post_id: str) -> dict:
    post = db["post"].find_one({"_id": oid(post_id)})
    if not post:
        raise NotFoundError("Post not found")
    return post


def populate(db, posts: List[dict], author_fields=DISPLAY_FIELDS, with_likes: bool = False) -> List[dict]:
    """Serialize posts with author, comment users (and optionally like users) resolved."""
    authors = display_users(db, {p.get("author") for p in posts}, author_fields)
    commenters = display_users(db, {c.get("user") for p in posts for c in p.get("comments", [])})
    likers = {}
    if with_likes:
        likers = display_users(db, {like.get("user") for p in posts for like in p.get("likes", [])}, LIKE_USER_FIELDS)

    shaped = []
    for p in posts:
        data = serialize(p)
        data["author"] = authors.get(p.get("author"))
        for out, c in zip(data.get("comments", []), p.get("comments", [])):
            out["user"] = commenters.get(c.get("user"))
        if with_likes:
            for out, like in zip(data.get("likes", []), p.get("likes", [])):
                out["user"] = likers.get(like.get("user"))
        shaped.append(data)
    return shaped


# -----------------
# Routes
# -----------------
@router.get("")
def list_posts(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    status: str = "published",
    author: Optional[str] = None,
    db=Depends(get_db),
):
    page_no = positive_int(page, DEFAULT_PAGE)
    per_page = positive_int(limit, DEFAULT_LIMIT)
    query = build_query(category=category, tags=tags, status=status, author=author)

    items = list(
        db["post"].find(query)
        .sort([("createdAt", -1), ("_id", -1)])
        .skip((page_no - 1) * per_page)
        .limit(per_page)
    )
    total = db["post"].count_documents(query)

    return {
        "success": True,
        "data": {
            "posts": populate(db, items),
            "pagination": {
                "current": page_no,
                "pages": math.ceil(total / per_page),
                "total": total,
            },
        },
    }


@router.get("/{post_id}")
def get_post(post_id: str, db=Depends(get_db)):
    post = db["post"].find_one_and_update(
        {"_id": oid(post_id)},
        {"$inc": {"views": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not post:
        raise NotFoundError("Post not found")
    return {
        "success": True,
        "data": {"post": populate(db, [post], AUTHOR_DETAIL_FIELDS, with_likes=True)[0]},
    }


@router.post("", status_code=201)
def create_post(
    payload: PostCreate = Depends(validate(PostCreate)),
    db=Depends(get_db),
    user: dict = Depends(get_current_user),
):
    post = Post(
        title=payload.title,
        content=payload.content,
        excerpt=payload.excerpt,
        category=payload.category,
        tags=split_tags(payload.tags),
        status=payload.status or "draft",
        featuredImage=payload.featuredImage,
        author=user["_id"],
    )
    doc = create_document(db, "post", post.to_document())
    logger.info("Post %s created by %s", doc["_id"], user["_id"])
    return {
        "success": True,
        "message": "Post created successfully",
        "data": {"post": populate(db, [doc])[0]},
    }


@router.put("/{post_id}")
def update_post(
    post_id: str,
    payload: PostUpdate = Depends(validate(PostUpdate)),
    db=Depends(get_db),
    user: dict = Depends(get_current_user),
):
    post = find_post(db, post_id)
    ensure_owner_or_admin(post["author"], user, "update this post")

    provided = payload.model_dump(exclude_unset=True)
    changes = {k: provided[k] for k in REQUIRED_FIELDS if provided.get(k) is not None}
    changes.update({k: provided[k] for k in CLEARABLE_FIELDS if k in provided})
    # an empty tags string keeps the current list
    if provided.get("tags"):
        changes["tags"] = split_tags(provided["tags"])

    # Run the document validators against the merged result before writing.
    Post.model_validate({**post, **changes})

    changes["updatedAt"] = utcnow()
    updated = db["post"].find_one_and_update(
        {"_id": post["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError("Post not found")
    logger.info("Post %s updated by %s", post["_id"], user["_id"])
    return {
        "success": True,
        "message": "Post updated successfully",
        "data": {"post": populate(db, [updated])[0]},
    }


@router.delete("/{post_id}")
def delete_post(post_id: str, db=Depends(get_db), user: dict = Depends(get_current_user)):
    post = find_post(db, post_id)
    ensure_owner_or_admin(post["author"], user, "delete this post")

    db["post"].delete_one({"_id": post["_id"]})
    logger.info("Post %s deleted by %s", post["_id"], user["_id"])
    return {"success": True, "message": "Post deleted successfully"}


@router.post("/{post_id}/like")
def toggle_like(post_id: str, db=Depends(get_db), user: dict = Depends(get_current_user)):
    pid = oid(post_id)
    uid = user["_id"]

    # unlike
    updated = db["post"].find_one_and_update(
        {"_id": pid, "likes.user": uid},
        {"$pull": {"likes": {"user": uid}}},
        return_document=ReturnDocument.AFTER,
    )
    liked = False
    if updated is None:
        # like; the $ne guard keeps one entry per user under concurrent toggles
        updated = db["post"].find_one_and_update(
            {"_id": pid, "likes.user": {"$ne": uid}},
            {"$push": {"likes": Like(user=uid, createdAt=utcnow()).model_dump()}},
            return_document=ReturnDocument.AFTER,
        )
        liked = True
        if updated is None:
            updated = find_post(db, post_id)

    return {
        "success": True,
        "message": "Post liked" if liked else "Post unliked",
        "data": {"likes": len(updated.get("likes", [])), "isLiked": liked},
    }


@router.post("/{post_id}/comment", status_code=201)
def add_comment(
    post_id: str,
    payload: CommentCreate = Depends(validate(CommentCreate)),
    db=Depends(get_db),
    user: dict = Depends(get_current_user),
):
    pid = oid(post_id)
    comment = Comment(user=user["_id"], content=payload.content, createdAt=utcnow()).to_document()

    result = db["post"].update_one({"_id": pid}, {"$push": {"comments": comment}})
    if result.matched_count == 0:
        raise NotFoundError("Post not found")

    data = serialize(comment)
    data["user"] = display_users(db, [user["_id"]]).get(user["_id"])
    return {
        "success": True,
        "message": "Comment added successfully",
        "data": {"comment": data},
    }


@router.delete("/{post_id}/comment/{comment_id}")
def delete_comment(post_id: str, comment_id: str, db=Depends(get_db), user: dict = Depends(get_current_user)):
    post = find_post(db, post_id)
    cid = oid(comment_id)

    comment = next((c for c in post.get("comments", []) if c.get("_id") == cid), None)
    if comment is None:
        raise NotFoundError("Comment not found")
    ensure_owner_or_admin(comment["user"], user, "delete this comment")

    db["post"].update_one({"_id": post["_id"]}, {"$pull": {"comments": {"_id": cid}}})
    return {"success": True, "message": "Comment deleted successfully"}
